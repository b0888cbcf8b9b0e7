"""
End-to-end tests for the church-sas stack.
"""

import pytest

from moraine.config.provider import LocalConfig
from moraine.core.deferred import DeferredValue
from moraine.core.errors import DuplicateNameError
from moraine.core.resource import ResourceHandle
from moraine.core.run import ProvisioningRun
from moraine.providers import LocalProvider
from moraine.stacks import church_sas_config, declare_church_sas, vercel_url


EXPECTED_URLS = {
    "apiPreprodUrl": "https://church-sas-api-preprod.vercel.app",
    "apiProdUrl": "https://church-sas-api-prod.vercel.app",
    "webPreprodUrl": "https://church-sas-web-preprod.vercel.app",
    "webProdUrl": "https://church-sas-web-prod.vercel.app",
}


class TestStackDefinition:
    """Tests for the declared projects."""

    def test_four_projects(self):
        config = church_sas_config()

        assert [p.name for p in config.projects] == [
            "church-sas-api-preprod",
            "church-sas-api-prod",
            "church-sas-web-preprod",
            "church-sas-web-prod",
        ]
        assert [e.name for e in config.exports] == list(EXPECTED_URLS)

    def test_app_settings(self):
        projects = {p.name: p for p in church_sas_config(api_framework="hono").projects}

        assert projects["church-sas-api-prod"].root_directory == "apps/api"
        assert projects["church-sas-api-prod"].framework == "hono"
        assert projects["church-sas-web-prod"].root_directory == "apps/web"
        assert projects["church-sas-web-prod"].framework == "vite"

    def test_no_git_wiring_by_default(self):
        assert all(p.git_repository is None for p in church_sas_config().projects)

    def test_git_wiring(self):
        """Preprod deploys main, prod deploys release."""
        projects = {p.name: p for p in church_sas_config(repository="PabloReca/church-sas").projects}

        assert projects["church-sas-api-preprod"].git_repository.production_branch == "main"
        assert projects["church-sas-web-prod"].git_repository.production_branch == "release"
        assert projects["church-sas-web-prod"].git_repository.repo == "PabloReca/church-sas"

    def test_vercel_url(self):
        assert vercel_url("church-sas-api-preprod") == "https://church-sas-api-preprod.vercel.app"


class TestScenarios:
    """End-to-end scenarios."""

    def test_name_maps_to_url(self):
        """A resolved project name maps to its vercel.app URL."""
        handle = ResourceHandle("vercel:Project", "church-sas-api-preprod")
        url = handle.name.map(lambda n: "https://" + n + ".vercel.app")

        handle.resolve_attributes({"id": "prj_1", "name": "church-sas-api-preprod"})

        assert url.result() == "https://church-sas-api-preprod.vercel.app"

    def test_duplicate_export_keeps_first(self):
        """Exporting apiProdUrl twice fails the second time and keeps the first value."""
        run = ProvisioningRun(name="church-sas")
        declare_church_sas(run)
        first = run.registry.get("apiProdUrl").value

        with pytest.raises(DuplicateNameError):
            run.export("apiProdUrl", DeferredValue.of("https://elsewhere.vercel.app"))

        assert run.registry.get("apiProdUrl").value is first

        LocalProvider(config=LocalConfig()).apply(run)
        assert run.complete().outputs["apiProdUrl"] == EXPECTED_URLS["apiProdUrl"]

    def test_quota_failure_surfaces_original_message(self):
        """A creation failure reaches the derived URL export with its own message."""
        run = ProvisioningRun(name="church-sas")
        declare_church_sas(run)
        provider = LocalProvider(
            config=LocalConfig(failures={"church-sas-api-preprod": "creation quota exceeded"})
        )

        provider.apply(run)
        result = run.complete()

        assert result.failures == {"apiPreprodUrl": "creation quota exceeded"}
        assert result.outputs == {k: v for k, v in EXPECTED_URLS.items() if k != "apiPreprodUrl"}

    def test_full_run(self):
        """Applying the stack settles every export."""
        run = ProvisioningRun(name="church-sas")
        handles = declare_church_sas(run, repository="PabloReca/church-sas")

        LocalProvider(config=LocalConfig(max_workers=2)).apply(run)
        result = run.complete()

        assert result.ok
        assert result.outputs == EXPECTED_URLS
        assert all(handle.id.is_resolved for handle in handles.values())
