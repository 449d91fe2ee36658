"""Minimal HTML string renderer for element trees.

Renders the output of ``create_element`` to markup. Component callables
are invoked with their props as keyword arguments (``children`` included
when the element has any). A component that defines
``__perch_render__(element, render)`` takes over its own rendering; the
error boundary uses this to catch failures in its subtree.

While rendering, ``render_path()`` is the position of the current node:
child indices and component keys from the root. It stays the same for
the same slot across re-renders, even though elements are rebuilt.
"""

from __future__ import annotations

import functools
import html
from collections.abc import Iterable
from contextvars import ContextVar
from typing import Any

from perch.view.element import Element, Fragment

VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
})

_ATTR_ALIASES = {"class_name": "class", "html_for": "for"}
_SKIPPED_PROPS = frozenset({"key", "children", "dangerously_set_inner_html"})

_path: ContextVar[tuple[Any, ...]] = ContextVar("perch_render_path", default=())


def render_path() -> tuple[Any, ...]:
    """Position of the node being rendered, from the root."""
    return _path.get()


def _render_at(segment: Any, node: Any) -> str:
    token = _path.set((*_path.get(), segment))
    try:
        return render_to_string(node)
    finally:
        _path.reset(token)


def render_to_string(node: Any) -> str:
    """Render an element tree (or any renderable value) to HTML."""
    if node is None or isinstance(node, bool):
        return ""
    if isinstance(node, str):
        return html.escape(node)
    if isinstance(node, (int, float)):
        return html.escape(str(node))
    if isinstance(node, Element):
        return _render_element(node)
    if isinstance(node, Iterable):
        return "".join(_render_at(index, child) for index, child in enumerate(node))
    return html.escape(str(node))


def _render_element(element: Element) -> str:
    type_ = element.type
    if type_ is Fragment:
        return render_to_string(element.children)
    if isinstance(type_, str):
        return _render_tag(element)

    custom = getattr(type_, "__perch_render__", None)
    if custom is not None:
        return custom(element, functools.partial(_render_at, element.key))
    return _render_at(element.key, call_component(type_, element))


def call_component(component: Any, element: Element) -> Any:
    """Invoke *component* with the element's props (and children)."""
    props = dict(element.props)
    props.pop("key", None)
    if element.children:
        props["children"] = element.children
    return component(**props)


def _render_tag(element: Element) -> str:
    tag = element.type
    attrs = "".join(_render_attr(name, value) for name, value in element.props.items())
    if tag in VOID_TAGS:
        return f"<{tag}{attrs}>"
    inner = element.props.get("dangerously_set_inner_html")
    body = str(inner) if inner is not None else render_to_string(element.children)
    return f"<{tag}{attrs}>{body}</{tag}>"


def _render_attr(name: str, value: Any) -> str:
    if name in _SKIPPED_PROPS or value is None or value is False or callable(value):
        return ""
    name = _ATTR_ALIASES.get(name, name).replace("_", "-")
    if value is True:
        return f" {name}"
    return f' {name}="{html.escape(str(value))}"'
