"""Tests for perch.view.boundary — error boundaries around components."""

from typing import Any

import pytest

from perch.view.boundary import ErrorBoundary, ErrorBoundaryProxy
from perch.view.element import element_interceptor, h
from perch.view.render import render_to_string


def Broken(**props: Any) -> Any:  # noqa: N802
    raise ValueError("broken component")


Broken.display_name = "BrokenWidget"  # type: ignore[attr-defined]
Broken.default_props = {"size": 1}  # type: ignore[attr-defined]


def Fine(label: str = "ok") -> Any:  # noqa: N802
    return h("span", None, label)


def Page() -> Any:  # noqa: N802
    return h("div", None, h(Broken), h(Fine))


class Reports:
    def __init__(self) -> None:
        self.calls: list[tuple[BaseException, str]] = []

    def __call__(self, error: BaseException, phase: str) -> None:
        self.calls.append((error, phase))


class TestErrorBoundary:
    def test_renders_nothing_without_fallback(self) -> None:
        reports = Reports()
        proxy = ErrorBoundaryProxy(reports)
        with proxy.rendering():
            html = render_to_string(h(Page))
        assert html == "<div><span>ok</span></div>"
        assert len(reports.calls) == 1
        error, phase = reports.calls[0]
        assert isinstance(error, ValueError)
        assert phase == "view"

    def test_renders_fallback(self) -> None:
        seen: list[str] = []

        def fallback(name: str, component: Any) -> Any:
            seen.append(name)
            return h("em", None, f"{name} unavailable")

        proxy = ErrorBoundaryProxy(Reports(), fallback)
        with proxy.rendering():
            html = render_to_string(h(Page))
        assert html == "<div><em>BrokenWidget unavailable</em><span>ok</span></div>"
        assert seen == ["BrokenWidget"]

    def test_reports_once_per_instance(self) -> None:
        reports = Reports()
        proxy = ErrorBoundaryProxy(reports)
        with proxy.rendering():
            element = h(Broken)
        boundary = element.type
        assert isinstance(boundary, ErrorBoundary)
        render_to_string(element)
        render_to_string(element)
        assert len(reports.calls) == 1
        assert boundary.failed()

        # A rebuilt element in the same slot is the same instance
        assert render_to_string(h(boundary)) == ""
        assert len(reports.calls) == 1

    def test_distinct_slots_report_separately(self) -> None:
        reports = Reports()
        boundary = ErrorBoundaryProxy(reports).wrap(Broken)
        tree = h("div", None, h(boundary), h(boundary, {"key": "b"}))
        assert render_to_string(tree) == "<div></div>"
        assert len(reports.calls) == 2
        assert boundary.failed((0,))
        assert boundary.failed((1,), "b")
        render_to_string(h("div", None, h(boundary), h(boundary, {"key": "b"})))
        assert len(reports.calls) == 2

    def test_copies_static_metadata(self) -> None:
        boundary = ErrorBoundaryProxy(Reports()).wrap(Broken)
        assert boundary.default_props == {"size": 1}
        assert boundary.__wrapped__ is Broken
        assert boundary.display_name == "ErrorBoundary(BrokenWidget)"
        assert boundary.is_error_boundary is True

    def test_wrap_is_memoized(self) -> None:
        proxy = ErrorBoundaryProxy(Reports())
        assert proxy.wrap(Fine) is proxy.wrap(Fine)

    def test_wrap_skips_boundaries_and_opt_outs(self) -> None:
        proxy = ErrorBoundaryProxy(Reports())
        boundary = proxy.wrap(Fine)
        assert proxy.wrap(boundary) is boundary

        def Raw() -> None:  # noqa: N802
            return None

        Raw.ignore_errors = True  # type: ignore[attr-defined]
        assert proxy.wrap(Raw) is Raw

    def test_call_delegates(self) -> None:
        boundary = ErrorBoundaryProxy(Reports()).wrap(Fine)
        element = boundary(label="hi")
        assert render_to_string(element) == "<span>hi</span>"

    def test_without_proxy_errors_propagate(self) -> None:
        with pytest.raises(ValueError, match="broken"):
            render_to_string(h(Page))


class TestAttach:
    def test_attach_detach_idempotent(self) -> None:
        proxy = ErrorBoundaryProxy(Reports())
        assert element_interceptor.get() is None
        proxy.attach()
        proxy.attach()
        assert proxy.attached
        assert element_interceptor.get() is not None
        proxy.detach()
        proxy.detach()
        assert not proxy.attached
        assert element_interceptor.get() is None

    def test_restores_previous_interceptor(self) -> None:
        outer = ErrorBoundaryProxy(Reports())
        inner = ErrorBoundaryProxy(Reports())
        with outer.rendering():
            previous = element_interceptor.get()
            with inner.rendering():
                assert element_interceptor.get() is not previous
            assert element_interceptor.get() is previous
        assert element_interceptor.get() is None

    def test_rendering_is_reentrant(self) -> None:
        proxy = ErrorBoundaryProxy(Reports())
        with proxy.rendering():
            with proxy.rendering():
                pass
            assert proxy.attached
        assert not proxy.attached

    def test_out_of_order_detach_leaves_nothing_active(self) -> None:
        first = ErrorBoundaryProxy(Reports())
        second = ErrorBoundaryProxy(Reports())
        first.attach()
        second.attach()
        first.detach()
        assert element_interceptor.get() is not None
        second.detach()
        assert element_interceptor.get() is None
        with pytest.raises(ValueError, match="broken"):
            render_to_string(h(Page))

    def test_detached_proxy_in_chain_passes_through(self) -> None:
        first = ErrorBoundaryProxy(Reports())
        second = ErrorBoundaryProxy(Reports())
        second_reports = second.report
        first.attach()
        second.attach()
        second.detach()
        first.detach()
        assert element_interceptor.get() is None

        third = ErrorBoundaryProxy(Reports())
        first.attach()
        third.attach()
        first.detach()
        html = render_to_string(h(Page))
        assert html == "<div><span>ok</span></div>"
        assert len(third.report.calls) == 1
        assert second_reports.calls == []
        third.detach()
        assert element_interceptor.get() is None
