"""Perch — isomorphic page controllers.

One lifecycle per route activation, the same on the server (render to
HTML in a request/response cycle) and in the client session (hydrate
and re-render on state changes).

Basic usage::

    from perch import Controller, Model, h, handler

    def CounterView(state, actions, handlers, **_):
        return h("button", {"on_click": handlers["handle_click"]}, str(state["count"]))

    class Counter(Controller):
        View = CounterView
        model = Model(
            initial_state={"count": 0},
            actions={"increment": lambda state, _: {**state, "count": state["count"] + 1}},
        )

        @handler
        def handle_click(self):
            self.store.actions.increment()

Page documents (``pip install perch[templates]``)::

    from perch.document import render_document
    html = render_document(render_to_string(view), context, state=ctrl.store.state)
"""

__version__ = "0.1.0.dev0"

# Public name -> defining module, resolved on first access
_LAZY_IMPORTS: dict[str, str] = {
    "Capabilities": "perch.lifecycle",
    "ConfigurationError": "perch.errors",
    "Controller": "perch.controller",
    "ControllerCache": "perch.cache",
    "ControllerOptions": "perch.config",
    "CookieConfigurationError": "perch.errors",
    "CookieOptions": "perch.http.cookies",
    "EarlyHint": "perch.config",
    "FetchTimeoutError": "perch.errors",
    "Fetcher": "perch.fetcher",
    "INITIAL_STATE": "perch.hydration",
    "Lifecycle": "perch.lifecycle",
    "LifecycleError": "perch.errors",
    "LifecycleState": "perch.lifecycle",
    "Location": "perch.location",
    "MemoryHistory": "perch.history",
    "Model": "perch.controller",
    "PageContext": "perch.context",
    "PerchError": "perch.errors",
    "RuntimeConfig": "perch.config",
    "Store": "perch.store",
    "create_element": "perch.view.element",
    "create_store": "perch.store",
    "h": "perch.view.element",
    "handler": "perch.controller",
    "lazy": "perch.view.lazy",
    "render_to_string": "perch.view.render",
}

__all__ = sorted(_LAZY_IMPORTS)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)
    import importlib

    return getattr(importlib.import_module(module_name), name)
