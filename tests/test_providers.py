"""
Tests for provisioning engines applying a run.
"""

import threading
import time

import pytest

from moraine.config.provider import LocalConfig, ProviderConfig
from moraine.core.deferred import DeferredValue
from moraine.core.errors import (
    AlreadyResolvedError,
    DependencyFailedError,
    ProvisioningError,
    RunCancelledError,
)
from moraine.core.run import ProvisioningRun
from moraine.providers import LocalProvider, Provider


def to_url(name):
    return f"https://{name}.vercel.app"


class RecordingProvider(Provider):
    """Provider that records creation order and thread."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.created = []
        self.threads = set()
        self._lock = threading.Lock()

    def _load_config_from_env(self, **kwargs):
        return ProviderConfig(**kwargs)

    def create(self, handle, inputs):
        with self._lock:
            self.created.append(handle.logical_name)
            self.threads.add(threading.current_thread().name)
        return {"id": f"id-{handle.logical_name}", "name": inputs.get("name", handle.logical_name)}

    def get_provider_type(self):
        return "recording"


class TestLocalProvider:
    """Tests for LocalProvider."""

    def test_apply_resolves_attributes(self):
        """Applying a run resolves every attribute and export."""
        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "church-sas-api-preprod", {"name": "church-sas-api-preprod"})
        run.export("apiPreprodUrl", api.name.map(to_url))

        report = LocalProvider(config=LocalConfig()).apply(run)
        result = run.complete()

        assert report.ok
        assert report.created == [api.urn]
        assert result.outputs == {"apiPreprodUrl": "https://church-sas-api-preprod.vercel.app"}
        assert api.id.result().startswith("prj_")

    def test_assigned_ids_are_deterministic(self):
        """The same resource gets the same id in every run."""
        provider = LocalProvider(config=LocalConfig())
        first = ProvisioningRun(name="a").declare("vercel:Project", "api")
        second = ProvisioningRun(name="b").declare("vercel:Project", "api")

        assert provider.assign_id(first) == provider.assign_id(second)

    def test_state_records_created_resources(self):
        """The provider keeps the attributes of what it created."""
        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "api", {"name": "api", "framework": "other"})
        provider = LocalProvider(config=LocalConfig())

        provider.apply(run)

        assert provider.state[api.urn]["framework"] == "other"

    def test_injected_failure(self):
        """A failed creation fails the resource's exports with the same message."""
        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "church-sas-api-prod", {"name": "church-sas-api-prod"})
        run.export("apiProdUrl", api.name.map(to_url))
        provider = LocalProvider(
            config=LocalConfig(failures={"church-sas-api-prod": "creation quota exceeded"})
        )

        report = provider.apply(run)
        result = run.complete()

        assert report.failed == {api.urn: "creation quota exceeded"}
        assert result.failures == {"apiProdUrl": "creation quota exceeded"}
        assert isinstance(result.results["apiProdUrl"].error, ProvisioningError)

    def test_dependency_failure_skips_dependent(self):
        """A resource reading a failed attribute is never created."""
        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "api", {"name": "api"})
        web = run.declare("vercel:Project", "web", {
            "name": "web",
            "environment": {"VITE_API_URL": api.name.map(to_url)},
        })
        run.export("webUrl", web.name.map(to_url))
        provider = LocalProvider(config=LocalConfig(failures={"api": "creation quota exceeded"}))

        report = provider.apply(run)
        result = run.complete()

        assert web.urn not in provider.state
        assert isinstance(web.name.error, DependencyFailedError)
        assert report.failed[web.urn] == "creation quota exceeded"
        assert result.failures == {"webUrl": "creation quota exceeded"}

    def test_from_env(self, monkeypatch):
        """Provider config falls back to MORAINE_* variables."""
        monkeypatch.setenv("MORAINE_MAX_WORKERS", "2")

        provider = LocalProvider()

        assert provider.config.max_workers == 2

    def test_wrong_config_type(self):
        """LocalProvider requires a LocalConfig."""
        with pytest.raises(TypeError):
            LocalProvider(config=ProviderConfig())


class TestOrdering:
    """Tests for creation-before-use ordering."""

    def test_dependents_created_after_dependencies(self):
        """Resources reading attributes are created after their sources."""
        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "api")
        web = run.declare("vercel:Project", "web", {"environment": {"API": api.name.map(to_url)}})
        run.declare("vercel:Project", "docs", {"links": [web.name, api.id]})
        provider = RecordingProvider(max_workers=4)

        provider.apply(run)

        assert provider.created.index("api") < provider.created.index("web")
        assert provider.created.index("web") < provider.created.index("docs")

    def test_explicit_dependency_created_first(self):
        """A resource declared with depends_on waits for that resource's creation."""
        events = []
        lock = threading.Lock()

        class Slow(RecordingProvider):
            def create(self, handle, inputs):
                with lock:
                    events.append(("start", handle.logical_name))
                if handle.logical_name == "api":
                    time.sleep(0.1)
                result = super().create(handle, inputs)
                with lock:
                    events.append(("end", handle.logical_name))
                return result

        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "api")
        run.declare("vercel:Project", "web", depends_on=[api])

        Slow(max_workers=4).apply(run)

        assert events == [("start", "api"), ("end", "api"), ("start", "web"), ("end", "web")]

    def test_explicit_dependency_failure_skips_dependent(self):
        """A failed depends_on resource fails the dependent with its message."""
        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "api", {"name": "api"})
        web = run.declare("vercel:Project", "web", {"name": "web"}, depends_on=[api])
        run.export("webUrl", web.name.map(to_url))
        provider = LocalProvider(config=LocalConfig(failures={"api": "creation quota exceeded"}))

        report = provider.apply(run)
        result = run.complete()

        assert web.urn not in provider.state
        assert isinstance(web.name.error, DependencyFailedError)
        assert report.failed == {
            api.urn: "creation quota exceeded",
            web.urn: "creation quota exceeded",
        }
        assert result.failures == {"webUrl": "creation quota exceeded"}

    def test_inputs_resolved_before_create(self):
        """create() receives plain values, never deferred ones."""
        seen = {}

        class Capturing(RecordingProvider):
            def create(self, handle, inputs):
                seen[handle.logical_name] = inputs
                return super().create(handle, inputs)

        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "api")
        run.declare("vercel:Project", "web", {"environment": {"API": api.name.map(to_url)}})

        Capturing().apply(run)

        assert seen["web"] == {"environment": {"API": "https://api.vercel.app"}}

    def test_resolution_happens_on_worker_threads(self):
        """Attributes are resolved from the engine's threads, not the caller's."""
        run = ProvisioningRun(name="church-sas")
        for name in ["a", "b", "c"]:
            run.declare("vercel:Project", name)
        provider = RecordingProvider(max_workers=2)

        provider.apply(run)

        assert threading.current_thread().name not in provider.threads
        assert all(name.startswith("moraine") for name in provider.threads)

    def test_empty_run(self):
        """Applying a run with nothing declared returns immediately."""
        report = RecordingProvider().apply(ProvisioningRun(name="empty"))

        assert report.ok
        assert report.created == []


class TestTimeout:
    """Tests for aborting when resources never become creatable."""

    def test_timeout_aborts_run(self):
        """A resource waiting on a value that never resolves is cancelled."""
        run = ProvisioningRun(name="church-sas")
        never = DeferredValue.pending(description="external.name")
        web = run.declare("vercel:Project", "web", {"api": never})
        run.export("webUrl", web.name.map(to_url))
        provider = RecordingProvider(timeout=0.05)

        report = provider.apply(run)
        result = run.registry.settle()

        assert report.aborted is not None
        assert isinstance(web.name.error, RunCancelledError)
        assert isinstance(never.error, RunCancelledError)
        assert not result["webUrl"].ok
        assert provider.created == []

    def test_hung_create_does_not_block_past_timeout(self):
        """apply() returns once the timeout elapses, even if create() never does."""
        release = threading.Event()

        class Hanging(RecordingProvider):
            def create(self, handle, inputs):
                release.wait(5)
                return super().create(handle, inputs)

        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "api")
        run.export("apiUrl", api.name.map(to_url))

        try:
            started = time.monotonic()
            report = Hanging(timeout=0.1).apply(run)
            elapsed = time.monotonic() - started
        finally:
            release.set()

        assert elapsed < 2
        assert report.aborted is not None
        assert isinstance(api.name.error, RunCancelledError)


class TestWorkerErrors:
    """Tests for programming errors raised on worker threads."""

    def test_double_resolution_reaches_caller(self):
        """AlreadyResolvedError from a worker thread is not swallowed."""
        run = ProvisioningRun(name="church-sas")
        api = run.declare("vercel:Project", "api")
        api.name.map(lambda n: api.id.resolve("hijacked"))

        with pytest.raises(AlreadyResolvedError):
            RecordingProvider().apply(run)
