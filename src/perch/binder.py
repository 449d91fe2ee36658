"""Store binder — wire a client-side controller to its store and history.

Every subscription made here returns a cancel handle that is appended to
``controller.meta.unsubscribe_list``; ``Controller.destroy()`` runs them
all. Server-side controllers (and destroyed ones) are never bound.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.controller import Controller
    from perch.location import Location
    from perch.store import Store, StoreChange

logger = logging.getLogger("perch.binder")


class Debouncer:
    """Coalesce calls made within *wait* seconds into one trailing call.

    Runs on the current asyncio loop. Without a running loop the call
    happens immediately.
    """

    __slots__ = ("_args", "_callback", "_handle", "wait")

    def __init__(self, callback: Callable[..., Any], wait: float) -> None:
        self._callback = callback
        self.wait = wait
        self._handle: asyncio.TimerHandle | None = None
        self._args: tuple[Any, ...] = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any) -> None:
        self._args = args
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._callback(*args)
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.wait, self._fire)

    def _fire(self) -> None:
        self._handle = None
        args, self._args = self._args, ()
        self._callback(*args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._args = ()


def bind_store_with_view(controller: Controller) -> None:
    """Subscribe *controller* to store changes and navigation events."""
    context = controller.context
    meta = controller.meta
    if not context.is_client or meta.is_destroyed:
        return

    store = controller.store
    if store is not None:
        meta.unsubscribe_list.append(_subscribe_refresh(controller, store))

    history = context.history
    if history is None:
        logger.debug("controller %d has no history; navigation hooks not bound", meta.id)
        return

    def on_before_navigate(location: Location) -> None:
        if not controller.options.keep_alive_on_push:
            return
        if location.action == "PUSH":
            controller.save_to_cache()
        else:
            controller.remove_from_cache()

    meta.unsubscribe_list.append(history.listen_before(on_before_navigate))

    if controller.capabilities.page_will_leave:
        meta.unsubscribe_list.append(history.listen_before(controller.page_will_leave))

    if controller.capabilities.window_will_unload:
        meta.unsubscribe_list.append(history.listen_before_unload(controller.window_will_unload))


def _subscribe_refresh(controller: Controller, store: Store) -> Callable[[], None]:
    meta = controller.meta
    notify_change = controller.capabilities.state_did_change

    def refresh(change: StoreChange) -> None:
        if meta.is_destroyed:
            return
        controller.refresh_view()
        if notify_change:
            controller.state_did_change(change)

    if controller.options.disable_batch_refresh:
        listener: Callable[[StoreChange], None] = refresh
        debouncer = None
    else:
        debouncer = Debouncer(refresh, controller.refresh_debounce)
        listener = debouncer

    unsubscribe_store = store.subscribe(listener)

    def unsubscribe() -> None:
        unsubscribe_store()
        if debouncer is not None:
            debouncer.cancel()

    return unsubscribe
