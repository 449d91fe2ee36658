"""Tests for perch.controller — client-session activation, restore and teardown."""

from typing import Any

import httpx
import pytest

from perch.config import ControllerOptions
from perch.controller import Controller, Model
from perch.errors import LifecycleError
from perch.lifecycle import LifecycleState
from perch.location import Location
from perch.testing import assert_redirected, client_context, settle
from perch.view.element import h
from perch.view.render import render_to_string


def increment(state: dict[str, Any], _: Any) -> dict[str, Any]:
    return {**state, "count": state["count"] + 1}


def CounterView(state: dict[str, Any], **_: Any) -> Any:  # noqa: N802
    return h("div", {"class_name": "counter"}, f"count={state['count']}")


def SummaryView(state: dict[str, Any], **_: Any) -> Any:  # noqa: N802
    return h("p", None, f"total {state['count']}")


class Counter(Controller):
    View = CounterView
    model = Model(initial_state={"count": 0}, actions={"increment": increment})


class Tracked(Counter):
    options = ControllerOptions(keep_alive_on_push=True)

    def __init__(self, *args: Any) -> None:
        super().__init__(*args)
        self.calls: list[str] = []

    def should_component_create(self) -> bool:
        self.calls.append("should_component_create")
        return True

    def component_will_create(self) -> None:
        self.calls.append("component_will_create")

    def state_did_reuse(self, state: dict[str, Any]) -> None:
        self.calls.append("state_did_reuse")

    async def view_will_hydrate(self) -> None:
        self.calls.append("view_will_hydrate")

    def page_did_back(self, location: Location, context: Any) -> None:
        self.calls.append(f"page_did_back {location.pathname}")


async def _client(cls: type, path: str = "/counter", **kwargs: Any) -> tuple[Any, Any, Any]:
    context, renderer = client_context(path, **kwargs)
    ctrl = cls(context.history.location, context)
    view = await ctrl.init()
    return ctrl, view, renderer


class TestHydration:
    async def test_reuses_snapshot_and_skips_creation_hooks(self) -> None:
        snapshot = {"count": 5, "location": {"pathname": "/counter"}}
        ctrl, view, _ = await _client(Tracked, snapshot=snapshot)
        assert ctrl.store.state["count"] == 5
        assert ctrl.calls == ["state_did_reuse", "view_will_hydrate"]
        assert render_to_string(view) == '<div class="counter">count=5</div>'

    async def test_snapshot_taken_once(self) -> None:
        ctrl, _, _ = await _client(Tracked, snapshot='{"count": 5}')
        assert ctrl.context.hydration.peek() is None
        second = Tracked(ctrl.context.history.location, ctrl.context)
        await second.init()
        assert second.store.state["count"] == 0
        assert "component_will_create" in second.calls

    async def test_snapshot_for_other_route_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        snapshot = {"count": 7, "location": {"pathname": "/elsewhere"}}
        ctrl, _, _ = await _client(Counter, snapshot=snapshot)
        assert ctrl.store.state["count"] == 7
        assert "hydration snapshot" in caplog.text

    async def test_fresh_path_without_snapshot(self) -> None:
        ctrl, _, renderer = await _client(Tracked)
        assert ctrl.calls == ["should_component_create", "component_will_create"]
        assert renderer.count == 0

    async def test_refetches_only_missing_preloads(self) -> None:
        requested: list[str] = []

        def files(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, text="b{}")

        class Styled(Counter):
            preload = {"a": "/css/a.css", "b": "/css/b.css"}

        snapshot = {"count": 2, "location": {"pathname": "/counter"}}
        async with httpx.AsyncClient(transport=httpx.MockTransport(files)) as client:
            ctrl, _, _ = await _client(
                Styled, snapshot=snapshot, http_client=client, preload={"a": "kept"},
            )
        assert len(requested) == 1
        assert requested[0].endswith("/css/b.css")
        assert ctrl.context.preload == {"a": "kept", "b": "b{}"}
        assert ctrl.store.state["count"] == 2


class TestClientRedirect:
    async def test_relative_target_replaces_history(self) -> None:
        class Guarded(Counter):
            def component_will_create(self) -> None:
                self.redirect("/login")

        ctrl, view, _ = await _client(Guarded)
        assert view is None
        assert ctrl.context.history.location.pathname == "/login"
        assert ctrl.context.history.location.action == "REPLACE"

    async def test_raw_target_navigates_document(self) -> None:
        class Guarded(Counter):
            def component_will_create(self) -> None:
                self.redirect("/legacy/login", raw=True)

        ctrl, view, _ = await _client(Guarded)
        assert view is None
        assert_redirected(ctrl.context, "/legacy/login")
        assert ctrl.context.history.location.pathname == "/counter"


class TestDestroy:
    async def test_destroy_is_idempotent(self) -> None:
        ctrl, _, _ = await _client(Tracked)
        ctrl.destroy()
        ctrl.destroy()
        assert ctrl.meta.is_destroyed
        assert ctrl.meta.unsubscribe_list == []
        assert ctrl.lifecycle_state is LifecycleState.DESTROYED

    async def test_refresh_view_after_destroy_is_ignored(self) -> None:
        ctrl, _, renderer = await _client(Counter)
        ctrl.destroy()
        ctrl.refresh_view()
        assert renderer.count == 0


class TestRestore:
    async def test_restore_cached_instance(self) -> None:
        ctrl, _, renderer = await _client(Tracked)
        history = ctrl.context.history
        history.push("/next")
        assert ctrl.context.cache.get("/counter") is ctrl
        ctrl.destroy()

        history.back()
        view = await ctrl.restore(history.location, ctrl.context)
        assert ctrl.lifecycle_state is LifecycleState.RENDERED
        assert not ctrl.meta.is_destroyed
        assert ctrl.calls[-1] == "page_did_back /counter"
        assert ctrl.store.state["location"]["action"] == "POP"
        assert render_to_string(view) == '<div class="counter">count=0</div>'

        ctrl.store.actions.increment()
        await settle(ctrl)
        assert renderer.last == '<div class="counter">count=1</div>'

    async def test_restore_requires_initialization(self) -> None:
        context, _ = client_context("/counter")
        ctrl = Counter(context.history.location, context)
        with pytest.raises(LifecycleError):
            await ctrl.restore(context.history.location, context)

    async def test_restore_without_destroy_does_not_duplicate_listeners(self) -> None:
        ctrl, _, renderer = await _client(Tracked)
        history = ctrl.context.history
        assert ctrl.store.listener_count == 1
        history_listeners = history.listener_count

        await ctrl.restore(history.location, ctrl.context)
        assert ctrl.store.listener_count == 1
        assert history.listener_count == history_listeners
        assert len(ctrl.meta.unsubscribe_list) == 1 + history_listeners

        ctrl.store.actions.increment()
        await settle(ctrl)
        assert renderer.count == 1


class TestReload:
    async def test_reload_evicts_and_replaces(self) -> None:
        ctrl, _, _ = await _client(Tracked, path="/counter?x=1")
        ctrl.save_to_cache()
        assert ctrl.context.cache.get("/counter?x=1") is ctrl
        ctrl.reload()
        history = ctrl.context.history
        assert ctrl.context.cache.get("/counter?x=1") is None
        assert history.location.raw == "/counter?x=1"
        assert history.location.action == "REPLACE"


class TestRenderView:
    async def test_render_alternate_view(self) -> None:
        ctrl, _, renderer = await _client(Counter)
        ctrl.render_view(SummaryView)
        assert renderer.last == "<p>total 0</p>"
        assert renderer.controllers == [ctrl]

    async def test_render_default_view(self) -> None:
        ctrl, _, renderer = await _client(Counter)
        ctrl.render_view()
        assert renderer.last == '<div class="counter">count=0</div>'


class TestRefreshDebounce:
    async def test_option_overrides_context(self) -> None:
        class Slow(Counter):
            options = ControllerOptions(refresh_debounce=0.05)

        ctrl, _, _ = await _client(Slow)
        assert ctrl.refresh_debounce == 0.05

    async def test_context_default(self) -> None:
        ctrl, _, _ = await _client(Counter)
        assert ctrl.refresh_debounce == 0.005


class TestAsyncErrorReport:
    async def test_async_view_error_hook_is_scheduled(self) -> None:
        reported: list[str] = []

        def Broken() -> Any:  # noqa: N802
            raise RuntimeError("widget")

        class Guarded(Counter):
            View = lambda **_: h(Broken)  # noqa: E731

            async def error_did_catch(self, error: BaseException, phase: str) -> None:
                reported.append(phase)

        ctrl, view, _ = await _client(Guarded)
        assert render_to_string(view) == ""
        await settle(ctrl)
        assert reported == ["view"]


def Exploding(**_: Any) -> Any:  # noqa: N802
    raise RuntimeError("widget")


def Dashboard(state: dict[str, Any], **_: Any) -> Any:  # noqa: N802
    return h("div", None, h(Exploding), f"count={state['count']}")


class Reporting(Counter):
    View = Dashboard

    def __init__(self, *args: Any) -> None:
        super().__init__(*args)
        self.reports: list[str] = []

    def error_did_catch(self, error: BaseException, phase: str) -> None:
        self.reports.append(phase)


class Unguarded(Counter):
    View = Dashboard


class TestViewErrorsAcrossRefreshes:
    async def test_failing_child_reported_once(self) -> None:
        ctrl, _, renderer = await _client(Reporting)
        ctrl.refresh_view()
        for _ in range(3):
            ctrl.store.actions.increment()
            await settle(ctrl)
        assert renderer.renders == [
            "<div>count=0</div>",
            "<div>count=1</div>",
            "<div>count=2</div>",
            "<div>count=3</div>",
        ]
        assert ctrl.reports == ["view"]


class TestBoundaryTeardown:
    async def test_out_of_order_destroy_leaves_no_boundary(self) -> None:
        first, _, _ = await _client(Reporting)
        second, _, _ = await _client(Reporting)
        first.destroy()
        second.destroy()

        third, view, _ = await _client(Unguarded)
        with pytest.raises(RuntimeError, match="widget"):
            render_to_string(view)
        assert first.reports == []
        assert second.reports == []
        third.destroy()


class TestPrefetch:
    @staticmethod
    def _routes(url: str) -> dict[str, Any] | None:
        return {"controller": "Counter"} if url.startswith("/counter") else None

    async def test_loads_matched_controller(self) -> None:
        loaded: list[str] = []

        async def loader(name: str) -> type:
            loaded.append(name)
            return Counter

        ctrl, _, _ = await _client(Counter, matcher=self._routes, loader=loader)
        assert await ctrl.prefetch("/counter?page=2") is Counter
        assert loaded == ["Counter"]

    async def test_unmatched_or_empty_url(self) -> None:
        ctrl, _, _ = await _client(Counter, matcher=self._routes, loader=lambda name: Counter)
        assert await ctrl.prefetch("/elsewhere") is None
        assert await ctrl.prefetch("") is None

    async def test_without_router_hooks(self) -> None:
        ctrl, _, _ = await _client(Counter)
        assert await ctrl.prefetch("/counter") is None
