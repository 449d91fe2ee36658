"""Page controller — one lifecycle per route activation.

A router constructs one ``Controller`` per navigation and awaits
``init()``. The controller decides whether to render at all, resolves
its model into a store, loads data and preload resources concurrently,
binds the store to the view in a client session, and tears everything
down in ``destroy()``.

Declaring a page::

    class Counter(Controller):
        View = CounterView
        model = Model(
            initial_state={"count": 0},
            actions={"increment": lambda state, _: {**state, "count": state["count"] + 1}},
        )
        preload = {"main": "/css/counter.css"}

        async def component_will_create(self):
            user = await self.get("/user")
            self.store.actions.UPDATE_STATE({"user": user})

        @handler
        def handle_click(self):
            self.store.actions.increment()

Two initialization paths:

- **fresh**: no server snapshot; the full chain runs
  (``get_initial_state`` -> store -> ``should_component_create`` ->
  ``component_will_create`` + preload -> headers -> render).
- **hydration**: the server already computed state; its snapshot is
  reused and the creation hooks are skipped, since their side effects
  already happened on the server.

Redirects are data, not exceptions: ``redirect()`` records a
``Redirected`` outcome that ``initialize()`` returns at its next check,
and ``init()`` resolves to ``None``.
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import itertools
import logging
import threading
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

import anyio

from perch._internal.invoke import invoke
from perch._internal.types import Reducer, Unsubscribe
from perch.actions import PAGE_DID_BACK, SHARED_ACTIONS
from perch.assets import client_asset_full_path, client_asset_path
from perch.binder import bind_store_with_view
from perch.config import ControllerOptions, EarlyHint
from perch.context import PageContext
from perch.errors import ConfigurationError, LifecycleError
from perch.fetcher import Fetcher, is_absolute_url
from perch.http.cookies import CookieOptions, get_cookie, remove_cookie, set_cookie
from perch.lifecycle import TRANSITIONS, Capabilities, Lifecycle, LifecycleState
from perch.location import Location
from perch.outcome import Aborted, Fallback, Outcome, Redirected, Rendered, view_of
from perch.preload import fetch_preload as run_preload
from perch.preload import missing_preloads
from perch.store import Store, create_store, wrap_actions
from perch.view.boundary import ErrorBoundaryProxy
from perch.view.element import Element, create_element
from perch.view.manager import EmptyView, ViewBinding, ViewManager

logger = logging.getLogger("perch.controller")

_ids = itertools.count()
_ids_lock = threading.Lock()


def _next_id() -> int:
    with _ids_lock:
        return next(_ids)


@dataclass(slots=True)
class ControllerMeta:
    """Mutable bookkeeping for one activation.

    ``had_mounted`` is set by the client render collaborator once a view
    has attached. ``unsubscribe_list`` holds cleanup callbacks run by
    ``destroy()`` in insertion order.
    """

    id: int
    key: str | None = None
    is_destroyed: bool = False
    had_mounted: bool = False
    unsubscribe_list: list[Unsubscribe] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Model:
    """A declared model: initial state (or a factory) and reducers."""

    initial_state: Any = None
    actions: Mapping[str, Reducer] = field(default_factory=dict)


def handler(func: Callable[..., Any]) -> Callable[..., Any]:
    """Mark a controller method as a view event handler.

    Marked methods are bound to the instance and exposed to the view as
    ``handlers[name]``.
    """
    func.__perch_handler__ = True  # type: ignore[attr-defined]
    return func


def _declared(cls: type, name: str) -> Any:
    """Read a class-level declaration without binding it as a method."""
    value = inspect.getattr_static(cls, name, None)
    if isinstance(value, staticmethod):
        return value.__func__
    return value


_SETTLED_STATE = {
    Rendered: LifecycleState.RENDERED,
    Fallback: LifecycleState.FALLBACK_RENDERED,
    Redirected: LifecycleState.REDIRECTED,
    Aborted: LifecycleState.REDIRECTED,
}


class Controller(Lifecycle):
    """Base class for page controllers. See the module docstring."""

    View: Any = EmptyView
    Loading: Any = EmptyView
    model: Model | None = None
    initial_state: Any = None
    actions: Mapping[str, Reducer] | None = None
    preload: Mapping[str, str] = MappingProxyType({})
    api: Mapping[str, str] = MappingProxyType({})
    restapi: str | None = None
    options: ControllerOptions = ControllerOptions()

    _handler_names: tuple[str, ...] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        names: list[str] = []
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if getattr(value, "__perch_handler__", False) and name not in names:
                    names.append(name)
        cls._handler_names = tuple(names)

    def __init__(self, location: Location | None, context: PageContext) -> None:
        self.meta = ControllerMeta(id=_next_id())
        if location is not None:
            self.meta.key = location.key
            location = location.without_key()
        self.location = location
        self.context = context

        cls = type(self)
        self.View = _declared(cls, "View")
        self.Loading = _declared(cls, "Loading")
        self.initial_state = _declared(cls, "initial_state")

        self.capabilities = Capabilities.of(cls)
        self.lifecycle_state = LifecycleState.CREATED
        self.outcome: Outcome | None = None
        self.store: Store | None = None
        self.handlers: dict[str, Callable[..., Any]] = {}
        self.fetcher = Fetcher(context, api=self.api, restapi=self.restapi)

        self._binding = ViewBinding(controller=self, view=self.View)
        self._boundary: ErrorBoundaryProxy | None = None
        self._pending_redirect: Redirected | None = None
        self._background: set[asyncio.Task[Any]] = set()

    def __repr__(self) -> str:
        where = self.location.raw if self.location is not None else "-"
        return f"<{type(self).__name__} #{self.meta.id} {where} {self.lifecycle_state.value}>"

    # -- State machine --

    def _enter(self, state: LifecycleState) -> None:
        current = self.lifecycle_state
        if state not in TRANSITIONS[current]:
            msg = (
                f"controller #{self.meta.id} cannot go from "
                f"{current.value} to {state.value}"
            )
            raise LifecycleError(msg)
        logger.debug("controller #%d: %s -> %s", self.meta.id, current.value, state.value)
        self.lifecycle_state = state

    def _settle(self, state: LifecycleState) -> None:
        # destroy() may have run while initialization was suspended
        if self.lifecycle_state is LifecycleState.DESTROYED:
            return
        self._enter(state)

    @property
    def boundary(self) -> ErrorBoundaryProxy | None:
        return self._boundary

    # -- Entry point --

    async def init(self) -> Element | None:
        """Initialize and return the view, or ``None`` when redirected/vetoed.

        Raises:
            Exception: Any initialization failure, when neither
                ``error_did_catch`` nor ``get_view_fallback`` is declared.
        """
        self._enter(LifecycleState.INITIALIZING)
        if self.capabilities.catches_view_errors:
            self._boundary = ErrorBoundaryProxy(self._report_error, self.get_component_fallback)

        try:
            outcome = await self.initialize()
        except Exception as exc:
            if not (self.capabilities.error_did_catch or self.capabilities.get_view_fallback):
                raise
            logger.debug("controller #%d failed to initialize: %r", self.meta.id, exc)
            if self.capabilities.error_did_catch:
                await invoke(self.error_did_catch, exc, "controller")
            fallback = self.get_view_fallback()
            outcome = Fallback(fallback if fallback is not None else create_element(EmptyView))

        self.outcome = outcome
        self._settle(_SETTLED_STATE[type(outcome)])
        return view_of(outcome)

    async def initialize(self) -> Outcome:
        """Run the initialization routine and return its outcome."""
        context = self.context

        if context.is_server and not await self._server_render_enabled():
            if redirected := self._pending_redirect:
                return redirected
            self.flush_headers()
            return Fallback(create_element(self.Loading))
        if redirected := self._pending_redirect:
            return redirected

        initial_state, actions = self._resolve_model()
        snapshot = context.hydration.take()

        if callable(initial_state):
            initial_state = await invoke(initial_state, self.location, context)
            if redirected := self._pending_redirect:
                return redirected
        if initial_state is None:
            initial_state = {}
        if not isinstance(initial_state, Mapping):
            msg = f"{type(self).__name__}: initial state must be a mapping, got {type(initial_state).__name__}"
            raise ConfigurationError(msg)
        if self.options.deep_clone_initial_state:
            initial_state = copy.deepcopy(dict(initial_state))

        if snapshot is not None:
            return await self._hydrate(dict(initial_state), actions, snapshot)
        return await self._create(dict(initial_state), actions)

    async def _hydrate(
        self,
        declared: dict[str, Any],
        actions: dict[str, Reducer],
        snapshot: Mapping[str, Any],
    ) -> Outcome:
        self._check_snapshot(snapshot)
        state = {**declared, **snapshot}

        if self.capabilities.state_did_reuse:
            await invoke(self.state_did_reuse, state)
            if redirected := self._pending_redirect:
                return redirected

        self._create_store(actions, state)
        bind_store_with_view(self)

        if missing_preloads(self.preload, self.context.preload):
            await self.fetch_preload()

        if self.capabilities.view_will_hydrate:
            await invoke(self.view_will_hydrate)
        if redirected := self._pending_redirect:
            return redirected

        return Rendered(self.render())

    async def _create(self, declared: dict[str, Any], actions: dict[str, Reducer]) -> Outcome:
        context = self.context
        state: dict[str, Any] = {
            **declared,
            "location": self.location.to_dict() if self.location is not None else None,
            "basename": context.basename,
            "public_path": context.public_path,
            "restapi": context.restapi,
        }

        if self.capabilities.get_initial_state:
            state = await invoke(self.get_initial_state, state)
            if redirected := self._pending_redirect:
                return redirected

        self._create_store(actions, state)
        bind_store_with_view(self)

        if self.capabilities.should_component_create:
            should_create = await invoke(self.should_component_create)
            if redirected := self._pending_redirect:
                return redirected
            if should_create is False:
                logger.debug("controller #%d: should_component_create vetoed render", self.meta.id)
                return Aborted()

        await self._prepare()
        if redirected := self._pending_redirect:
            return redirected

        self.flush_headers()
        return Rendered(self.render())

    async def _prepare(self) -> None:
        """Run ``component_will_create`` and the preload pipeline concurrently."""
        errors: list[Exception] = []

        async def will_create() -> None:
            try:
                await invoke(self.component_will_create)
            except Exception as exc:
                errors.append(exc)

        async with anyio.create_task_group() as tg:
            if self.capabilities.component_will_create:
                tg.start_soon(will_create)
            if self.preload:
                tg.start_soon(self.fetch_preload)

        if errors:
            raise errors[0]

    async def _server_render_enabled(self) -> bool:
        if self.capabilities.should_server_render:
            decision = await invoke(self.should_server_render, self.location, self.context)
            if decision is not None:
                return decision is not False
        return self.options.ssr is not False

    def _resolve_model(self) -> tuple[Any, dict[str, Reducer]]:
        initial_state, actions = self.initial_state, self.actions
        if self.model is not None and initial_state is None and actions is None:
            initial_state, actions = self.model.initial_state, self.model.actions
        if actions is None:
            actions = {}
        if not isinstance(actions, Mapping):
            msg = f"{type(self).__name__}: actions must be a mapping of reducers"
            raise ConfigurationError(msg)
        return initial_state, dict(actions)

    def _create_store(self, actions: dict[str, Reducer], state: Any) -> None:
        if self.capabilities.get_final_actions:
            actions = self.get_final_actions(actions)
        self.store = create_store({**actions, **SHARED_ACTIONS}, state)
        if self.capabilities.error_did_catch:
            wrap_actions(self.store, self._report_error)
        self.collect_handlers()

    def _check_snapshot(self, snapshot: Mapping[str, Any]) -> None:
        recorded = snapshot.get("location")
        if self.location is None or not isinstance(recorded, Mapping):
            return
        if recorded.get("pathname") != self.location.pathname:
            logger.warning(
                "controller #%d: hydration snapshot was computed for %r but the "
                "current location is %r; using the snapshot as-is",
                self.meta.id, recorded.get("pathname"), self.location.pathname,
            )

    # -- Errors --

    def _report_error(self, error: BaseException, phase: str) -> None:
        if not self.capabilities.error_did_catch:
            return
        result = self.error_did_catch(error, phase)
        if inspect.isawaitable(result):
            self._spawn(result)

    def _spawn(self, awaitable: Awaitable[Any]) -> None:
        async def run() -> None:
            await awaitable

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "controller #%d: async error_did_catch needs a running loop; report dropped",
                self.meta.id,
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = loop.create_task(run())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # -- Handlers --

    def collect_handlers(self) -> dict[str, Callable[..., Any]]:
        """Bind every ``@handler`` method into ``self.handlers``."""
        for name in self._handler_names:
            self.handlers.setdefault(name, getattr(self, name))
        return self.handlers

    def register_handler(self, name: str, func: Callable[..., Any]) -> None:
        """Expose *func* to the view as ``handlers[name]``."""
        self.handlers[name] = func

    # -- Rendering --

    def render(self) -> Element:
        """The bound view element for this controller."""
        if self._boundary is not None:
            self._boundary.attach()
        return create_element(ViewManager, {"binding": self._binding})

    def render_view(self, view: Any = None) -> None:
        """Render a different view with this controller's state (client only)."""
        if self.context.is_server:
            return
        view = view if view is not None else self.View
        binding = replace(
            self._binding,
            view=view,
            view_id=getattr(view, "view_id", None) or time.monotonic_ns(),
        )
        if self._boundary is not None:
            self._boundary.attach()
        self.refresh_view(create_element(ViewManager, {"binding": binding}))

    def refresh_view(self, view: Any = None) -> None:
        """Hand a view to the client render primitive."""
        render = self.context.render
        if render is None or self.meta.is_destroyed:
            return
        render(view if view is not None else self.render(), self)

    @property
    def refresh_debounce(self) -> float:
        if self.options.refresh_debounce is not None:
            return self.options.refresh_debounce
        return self.context.refresh_debounce

    # -- Restore / destroy / reload --

    async def restore(self, location: Location | None, context: PageContext) -> Element:
        """Reactivate a cached instance for a back navigation."""
        if self.store is None:
            msg = f"controller #{self.meta.id} was never initialized; it cannot be restored"
            raise LifecycleError(msg)
        self._enter(LifecycleState.RESTORING)

        if self._boundary is not None:
            self._boundary.detach()
            self._boundary.attach()

        self.meta.is_destroyed = False
        if location is not None:
            self.meta.key = location.key
            self.location = location.without_key()

        # A cached instance that was never destroyed is still subscribed
        self._release_subscriptions()
        self.store.actions[PAGE_DID_BACK](
            self.location.to_dict() if self.location is not None else None,
        )
        if self.capabilities.page_did_back:
            await invoke(self.page_did_back, self.location, context)

        bind_store_with_view(self)
        self._settle(LifecycleState.RENDERED)
        return self.render()

    def destroy(self) -> None:
        """Detach boundaries and run every cleanup callback. Idempotent."""
        if self._boundary is not None:
            self._boundary.detach()
        try:
            self._release_subscriptions()
        finally:
            self.meta.is_destroyed = True
            if self.lifecycle_state is not LifecycleState.DESTROYED:
                self._enter(LifecycleState.DESTROYED)

    def _release_subscriptions(self) -> None:
        meta = self.meta
        callbacks = list(meta.unsubscribe_list)
        try:
            for unsubscribe in callbacks:
                unsubscribe()
        finally:
            meta.unsubscribe_list.clear()

    def reload(self) -> None:
        """Re-create this page from scratch instead of restoring it."""
        self.remove_from_cache()
        history = self.context.history
        if history is None or self.location is None:
            return
        history.replace(self.location.raw)

    def save_to_cache(self) -> None:
        if self.context.cache is not None:
            self.context.cache.save(self)

    def remove_from_cache(self) -> None:
        if self.context.cache is not None:
            self.context.cache.remove(self)

    async def prefetch(self, url: str) -> Any:
        """Load the controller behind *url* ahead of navigating there.

        Delegates to the router's ``context.matcher`` and
        ``context.loader``. Returns ``None`` when *url* is empty or
        unmatched, or when the router supplies no hooks.
        """
        matcher, loader = self.context.matcher, self.context.loader
        if not url or not isinstance(url, str) or matcher is None or loader is None:
            return None
        matches = matcher(url)
        if not matches:
            return None
        if isinstance(matches, Mapping):
            target = matches.get("controller")
        else:
            target = getattr(matches, "controller", matches)
        return await invoke(loader, target)

    # -- Navigation --

    def redirect(self, target: str, raw: bool = False) -> Redirected:
        """Send the user to *target*.

        On the server this writes the redirect response (prefixed with the
        basename unless *raw* or absolute). In a client session it replaces
        the history entry, or navigates the whole document for raw and
        absolute targets. During initialization the returned outcome also
        ends the routine at its next check.
        """
        context = self.context
        if context.is_server:
            if not raw and not is_absolute_url(target):
                target = self.fetcher.prepend_basename(target)
            if context.response is not None:
                context.response.redirect(target)
        else:
            history = context.history
            if history is None:
                msg = "a client-side redirect needs context.history"
                raise ConfigurationError(msg)
            if raw or is_absolute_url(target):
                history.replace_document(target)
            else:
                history.replace(target)

        outcome = Redirected(target, raw)
        logger.debug("controller #%d redirects to %s", self.meta.id, target)
        if self.lifecycle_state is LifecycleState.INITIALIZING:
            self._pending_redirect = outcome
        return outcome

    # -- Response headers --

    def flush_headers(self, headers: Mapping[str, str] | None = None) -> None:
        """Send the response head early with ``Link`` preload hints.

        A no-op without a response, once headers were sent, or when
        ``options.disable_early_hints`` is set.
        """
        response = self.context.response
        if self.options.disable_early_hints or response is None or response.headers_sent:
            return

        links: list[str] = []
        if self.options.ssr is False:
            # Without SSR the styles are not inlined, so hint them too
            links.extend(
                EarlyHint(path, as_="style").to_link(self.get_client_asset_full_path(path))
                for path in self.preload.values()
            )
        for hint in self.options.early_hints:
            uri = hint.uri if is_absolute_url(hint.uri) else self.get_client_asset_full_path(hint.uri)
            links.append(hint.to_link(uri))

        response.write_head(200, {
            "Content-Type": "text/html; charset=utf-8",
            **(headers or {}),
            "X-Accel-Buffering": "no",
            "Link": links,
        })
        response.flush_headers()
        response.write(" ")

    def add_early_hints(self, *hints: EarlyHint) -> None:
        self.options = replace(self.options, early_hints=(*self.options.early_hints, *hints))

    # -- Preload and assets --

    async def fetch_preload(self, preload: Mapping[str, str] | None = None) -> list[str]:
        """Fetch declared preload resources into the context registry."""
        return await run_preload(
            self.preload if preload is None else preload,
            context=self.context,
            placeholder=self.options.public_path_placeholder,
            disable_public_path=self.options.disable_public_path_for_preload,
        )

    def get_client_asset_path(self, asset_path: str) -> str:
        return client_asset_path(asset_path, self.context.assets)

    def get_client_asset_full_path(self, asset_path: str) -> str:
        return client_asset_full_path(asset_path, self.context)

    # -- Fetch --

    async def fetch(self, url: str, **options: Any) -> Any:
        return await self.fetcher.fetch(url, **options)

    async def get(self, url: str, params: Mapping[str, Any] | None = None, **options: Any) -> Any:
        return await self.fetcher.get(url, params, **options)

    async def post(self, url: str, data: Any = None, **options: Any) -> Any:
        return await self.fetcher.post(url, data, **options)

    # -- Cookies --

    def cookie(
        self,
        key: str,
        value: str | None = None,
        options: CookieOptions | Mapping[str, Any] | None = None,
    ) -> str | None:
        """Read a cookie, or write one when *value* is given."""
        if value is None:
            return self.get_cookie(key)
        self.set_cookie(key, value, options)
        return None

    def get_cookie(self, key: str) -> str | None:
        return get_cookie(self.context, key)

    def set_cookie(
        self,
        key: str,
        value: str,
        options: CookieOptions | Mapping[str, Any] | None = None,
    ) -> None:
        set_cookie(self.context, key, value, _cookie_options(options))

    def remove_cookie(
        self,
        key: str,
        options: CookieOptions | Mapping[str, Any] | None = None,
    ) -> None:
        remove_cookie(self.context, key, _cookie_options(options))


def _cookie_options(options: CookieOptions | Mapping[str, Any] | None) -> CookieOptions | None:
    if options is None or isinstance(options, CookieOptions):
        return options
    return CookieOptions(**options)
