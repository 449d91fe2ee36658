"""View layer: elements, a minimal renderer, error boundaries, lazy components.

The full UI rendering algorithm belongs to the host; this package gives
controllers a small element model to build and test views with.
"""

from perch.view.boundary import ErrorBoundary, ErrorBoundaryProxy
from perch.view.element import Element, Fragment, create_element, h
from perch.view.lazy import LazyComponent, lazy
from perch.view.manager import EmptyView, ViewBinding, ViewManager
from perch.view.render import render_to_string

__all__ = [
    "Element",
    "EmptyView",
    "ErrorBoundary",
    "ErrorBoundaryProxy",
    "Fragment",
    "LazyComponent",
    "ViewBinding",
    "ViewManager",
    "create_element",
    "h",
    "lazy",
    "render_to_string",
]
