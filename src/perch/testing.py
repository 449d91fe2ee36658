"""Test helpers for perch controllers.

Builds server and client contexts from the same types used in
production. No wrapper translation layer.

Usage::

    context = server_context("/items?page=2")
    ctrl = ItemsController(Location.from_url("/items?page=2"), context)
    view = await ctrl.init()
    assert "page 2" in render_to_string(view)

    context, renderer = client_context("/items")
    ctrl = ItemsController(context.history.location, context)
    await ctrl.init()
    ctrl.store.actions.next_page()
    await settle(ctrl)
    assert renderer.count == 1
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import anyio
import httpx

from perch.cache import ControllerCache
from perch.config import RuntimeConfig
from perch.context import PageContext
from perch.history import MemoryHistory
from perch.http.request import ServerRequest
from perch.http.response import ServerResponse
from perch.hydration import HydrationChannel
from perch.view.render import render_to_string


class RecordingRenderer:
    """Client render primitive that renders to HTML and keeps every result."""

    __test__ = False

    def __init__(self) -> None:
        self.renders: list[str] = []
        self.controllers: list[Any] = []

    def __call__(self, view: Any, controller: Any) -> None:
        self.renders.append(render_to_string(view))
        self.controllers.append(controller)
        controller.meta.had_mounted = True

    @property
    def count(self) -> int:
        return len(self.renders)

    @property
    def last(self) -> str | None:
        return self.renders[-1] if self.renders else None


def server_context(
    path: str = "/",
    *,
    config: RuntimeConfig | None = None,
    headers: Mapping[str, str] | None = None,
    http_client: httpx.AsyncClient | None = None,
    **fields: Any,
) -> PageContext:
    """A server context with a fresh request and response for *path*."""
    return PageContext.from_config(
        config or RuntimeConfig(),
        is_server=True,
        request=ServerRequest.build(path, headers=headers or ()),
        response=ServerResponse(),
        http_client=http_client,
        hydration=HydrationChannel(),
        **fields,
    )


def client_context(
    path: str = "/",
    *,
    config: RuntimeConfig | None = None,
    snapshot: Mapping[str, Any] | str | None = None,
    http_client: httpx.AsyncClient | None = None,
    **fields: Any,
) -> tuple[PageContext, RecordingRenderer]:
    """A client context with its own history, cache and hydration slot.

    A *snapshot* is published into the hydration slot, as the document
    script would on page load.
    """
    config = config or RuntimeConfig()
    hydration = HydrationChannel()
    if snapshot is not None:
        hydration.publish(snapshot if isinstance(snapshot, str) else dict(snapshot))
    renderer = RecordingRenderer()
    context = PageContext.from_config(
        config,
        is_server=False,
        history=MemoryHistory(path, basename=config.basename),
        render=renderer,
        http_client=http_client,
        hydration=hydration,
        cache=ControllerCache(config.cache_amount),
        **fields,
    )
    return context, renderer


# ---------------------------------------------------------------------------
# Assertion helpers
# ---------------------------------------------------------------------------


def assert_redirected(context: PageContext, target: str) -> None:
    """Assert the activation redirected to *target* in its environment.

    On the server this checks the response ``Location``; in a client
    session the current history entry or a full-document navigation.
    """
    if context.is_server:
        response = context.response
        assert response is not None, "Server context has no response"
        assert response.status in (301, 302, 303, 307, 308), (
            f"Expected a redirect status, got {response.status}"
        )
        assert response.location == target, (
            f"Expected redirect to {target!r}, got {response.location!r}"
        )
        return
    history = context.history
    assert history is not None, "Client context has no history"
    navigated = [history.location.raw, *history.document_navigations]
    assert target in navigated, f"Expected navigation to {target!r}, got {navigated!r}"


def assert_early_hints(response: ServerResponse | None, *links: str) -> None:
    """Assert the flushed ``Link`` header lines are exactly *links*."""
    assert response is not None, "Context has no response"
    assert response.headers_sent, "Response headers were never flushed"
    actual = response.headers.get_list("Link")
    assert actual == list(links), f"Expected Link headers {list(links)!r}, got {actual!r}"


async def settle(controller: Any, extra: float = 0.01) -> None:
    """Sleep past the controller's refresh debounce window."""
    await anyio.sleep(controller.refresh_debounce + extra)
