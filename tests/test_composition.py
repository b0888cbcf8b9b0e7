"""
Tests for combine(), all(), concat() and interpolate().
"""

import pytest

from moraine.core.deferred import DeferredValue, combine, concat, interpolate


class TestCombine:
    """Tests for N-ary composition."""

    def test_combine_resolves_when_all_inputs_resolve(self):
        """The function runs once every input has resolved."""
        a = DeferredValue.pending()
        b = DeferredValue.pending()
        joined = combine([a, b], lambda x, y: f"{x}-{y}")

        a.resolve("api")
        assert joined.is_pending

        b.resolve("prod")
        assert joined.result() == "api-prod"

    def test_combine_never_sees_partial_inputs(self):
        """The function is not called while an input is pending."""
        calls = []
        a = DeferredValue.pending()
        b = DeferredValue.pending()
        combine([a, b], lambda x, y: calls.append((x, y)))

        b.resolve(2)
        assert calls == []

        a.resolve(1)
        assert calls == [(1, 2)]

    def test_combine_with_plain_values(self):
        """Plain values are lifted."""
        a = DeferredValue.pending()
        url = combine(["https://", a, ".vercel.app"], lambda *parts: "".join(parts))

        a.resolve("church-sas-web-prod")

        assert url.result() == "https://church-sas-web-prod.vercel.app"

    def test_combine_no_inputs(self):
        """With no inputs the function runs immediately."""
        assert combine([], lambda: "constant").result() == "constant"

    def test_combine_unions_dependencies(self):
        """The result depends on the resources of every input."""
        r1, r2 = object(), object()
        a = DeferredValue.pending(resources=[r1])
        b = DeferredValue.pending(resources=[r2])

        assert combine([a, b, "plain"], lambda *v: v).resources == frozenset([r1, r2])

    def test_leftmost_failure_wins(self):
        """With several failures, the leftmost one is reported."""
        a = DeferredValue.pending()
        b = DeferredValue.pending()
        c = DeferredValue.pending()
        joined = combine([a, b, c], lambda *v: v)
        left = RuntimeError("left")
        right = RuntimeError("right")

        c.fail(right)
        b.fail(left)
        assert joined.is_pending  # a might still fail

        a.resolve("ok")
        assert joined.error is left

    @pytest.mark.parametrize("order", [(0, 1), (1, 0)])
    def test_failure_choice_is_order_independent(self, order):
        """The reported failure does not depend on settlement order."""
        inputs = [DeferredValue.pending(), DeferredValue.pending()]
        errors = [RuntimeError("first"), RuntimeError("second")]
        joined = combine(inputs, lambda *v: v)

        for i in order:
            inputs[i].fail(errors[i])

        assert joined.error is errors[0]

    def test_failure_decided_when_left_inputs_resolved(self):
        """A failure fails the result as soon as everything left of it resolved."""
        a = DeferredValue.of("ok")
        b = DeferredValue.pending()
        c = DeferredValue.pending()
        joined = combine([a, b, c], lambda *v: v)

        b.fail(RuntimeError("boom"))

        assert joined.is_failed
        assert c.is_pending

    def test_combine_fn_raises(self):
        """An exception in the function fails the result."""
        joined = combine([DeferredValue.of(1), DeferredValue.of(0)], lambda x, y: x / y)

        assert isinstance(joined.error, ZeroDivisionError)

    def test_combine_runs_once(self):
        """Later settlements do not re-run the function."""
        calls = []
        a = DeferredValue.pending()
        b = DeferredValue.pending()
        combine([a, b], lambda *v: calls.append(v))

        a.resolve(1)
        b.resolve(2)

        assert calls == [(1, 2)]


class TestAll:
    """Tests for DeferredValue.all()."""

    def test_all_resolves_to_list(self):
        """all() resolves with the list of results in order."""
        a = DeferredValue.pending()
        b = DeferredValue.pending()
        both = DeferredValue.all(a, b, 3)

        b.resolve(2)
        a.resolve(1)

        assert both.result() == [1, 2, 3]


class TestStrings:
    """Tests for string composition helpers."""

    def test_concat(self):
        """concat() joins plain and deferred parts."""
        name = DeferredValue.pending()
        url = concat("https://", name, ".vercel.app")

        name.resolve("church-sas-api-prod")

        assert url.result() == "https://church-sas-api-prod.vercel.app"

    def test_interpolate_keyword(self):
        """interpolate() formats keyword arguments."""
        name = DeferredValue.pending()
        url = interpolate("https://{name}.vercel.app", name=name)

        name.resolve("church-sas-web-preprod")

        assert url.result() == "https://church-sas-web-preprod.vercel.app"

    def test_interpolate_positional_and_keyword(self):
        """Positional and keyword arguments can be mixed."""
        scheme = DeferredValue.of("https")
        name = DeferredValue.pending()
        url = interpolate("{}://{name}.vercel.app", scheme, name=name)

        name.resolve("x")

        assert url.result() == "https://x.vercel.app"

    def test_interpolate_failure(self):
        """A failed argument fails the interpolated string with the same error."""
        name = DeferredValue.pending()
        url = interpolate("https://{name}.vercel.app", name=name)
        error = RuntimeError("creation quota exceeded")

        name.fail(error)

        assert url.error is error
