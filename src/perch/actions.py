"""Actions merged into every controller's store.

These cover the cross-cutting updates the runtime and views need without
each model redeclaring them.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from perch._internal.types import Reducer

PAGE_DID_BACK = "__PAGE_DID_BACK__"
UPDATE_STATE = "UPDATE_STATE"
UPDATE_STATE_BY_PATH = "UPDATE_STATE_BY_PATH"


def page_did_back(state: dict[str, Any], location: Mapping[str, Any]) -> dict[str, Any]:
    """Record the location a cached page was navigated back to."""
    return {**state, "location": location}


def update_state(state: dict[str, Any], payload: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow-merge *payload* into the state."""
    return {**state, **payload}


def update_state_by_path(state: dict[str, Any], payload: Mapping[str, Any]) -> dict[str, Any]:
    """Set nested values by dotted path, copying each dict along the way.

    ``{"user.profile.name": "Ada"}`` replaces ``state["user"]["profile"]["name"]``
    without mutating the previous state.
    """
    next_state = dict(state)
    for path, value in payload.items():
        keys = path.split(".")
        target = next_state
        for key in keys[:-1]:
            child = target.get(key)
            child = dict(child) if isinstance(child, Mapping) else {}
            target[key] = child
            target = child
        target[keys[-1]] = value
    return next_state


SHARED_ACTIONS: Mapping[str, Reducer] = MappingProxyType({
    PAGE_DID_BACK: page_did_back,
    UPDATE_STATE: update_state,
    UPDATE_STATE_BY_PATH: update_state_by_path,
})
