"""HTML document shell for server-rendered pages.

Wraps the rendered view markup in a full page: inlined preload styles,
the ``window.__INITIAL_STATE__`` hydration script, and the client entry
scripts resolved through the asset table. Uses kida, installed with
``pip install perch[templates]``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from perch.assets import client_asset_full_path
from perch.errors import ConfigurationError
from perch.hydration import serialize_initial_state

if TYPE_CHECKING:
    from perch.context import PageContext

DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
{% for name, css in styles %}<style data-preload="{{ name }}">{{ css }}</style>
{% endfor %}</head>
<body>
<div id="root">{{ content }}</div>
<script>window.__INITIAL_STATE__ = {{ initial_state }};</script>
{% for src in scripts %}<script src="{{ src }}"></script>
{% endfor %}</body>
</html>
"""

_environment: Any = None


def _get_kida() -> Any:
    try:
        import kida
    except ImportError:
        msg = "The page document requires kida. Install it with: pip install perch[templates]"
        raise ConfigurationError(msg) from None
    return kida


def _get_template() -> Any:
    global _environment
    if _environment is None:
        kida = _get_kida()
        _environment = kida.Environment(
            loader=kida.DictLoader({"document.html": DOCUMENT_TEMPLATE}),
            autoescape=True,
        )
    return _environment.get_template("document.html")


def render_document(
    content: str,
    context: PageContext,
    *,
    title: str = "",
    state: Any = None,
    scripts: Iterable[str] = ("/js/vendor.js", "/js/index.js"),
) -> str:
    """Render the page around already-rendered *content* markup.

    Every ``context.preload`` entry is inlined as a <style> block. The
    title is escaped and the state is script-safe JSON.
    """
    template = _get_template()
    from kida.template import Markup

    styles = [
        (name, Markup(css))
        for name, css in _preload_styles(context.preload)
    ]
    return template.render({
        "title": title,
        "styles": styles,
        "content": Markup(content),
        "initial_state": Markup(serialize_initial_state(state if state is not None else {})),
        "scripts": [client_asset_full_path(src, context) for src in scripts],
    })


def _preload_styles(preload: Mapping[str, str]) -> list[tuple[str, str]]:
    # Closing tags inside a <style> would end it early
    return [
        (name, css.replace("</", "<\\/"))
        for name, css in preload.items()
    ]
