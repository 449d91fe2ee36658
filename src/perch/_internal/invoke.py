"""Invoke helpers — call sync or async hooks uniformly.

Controller hooks can be ``def`` or ``async def``. Any code that calls
a user-provided hook must handle both cases. This module provides
a single helper so the sync/async check lives in exactly one place.

Usage::

    from perch._internal.invoke import invoke

    result = await invoke(self.component_will_create)
"""

import inspect
from typing import Any


async def invoke(hook: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a hook and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: returns immediately, no await needed
        def should_component_create(self):
            return self.context.extras.get("user") is not None

        # async: returns a coroutine, awaited here
        async def component_will_create(self):
            user = await self.get("/user")
            self.store.actions.UPDATE_STATE({"user": user})
    """
    result = hook(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
