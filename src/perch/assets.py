"""Client asset path resolution.

The bundler writes an asset table mapping logical names (``index.js``)
to hashed file names (``index.3f2a.js``). These helpers map through it
and keep any query string.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perch.context import PageContext


def client_asset_path(asset_path: str, assets: Mapping[str, str]) -> str:
    """Resolve *asset_path* through the asset table.

    Unmapped paths come back ``/``-rooted and otherwise unchanged::

        >>> client_asset_path("/a.js", {"a.js": "a.123.js"})
        '/a.123.js'
        >>> client_asset_path("/b.js", {"a.js": "a.123.js"})
        '/b.js'
    """
    pathname, sep, search = asset_path.partition("?")
    real = assets.get(pathname)

    if real:
        if not real.startswith("/"):
            real = "/" + real
        return f"{real}?{search}" if sep and search else real

    # Table keys are usually unrooted; retry without the leading slash
    if asset_path.startswith("/"):
        return client_asset_path(asset_path[1:], assets)

    return "/" + asset_path


def client_asset_full_path(asset_path: str, context: PageContext) -> str:
    """Resolve through the asset table and prefix the public path."""
    return (context.public_path or "") + client_asset_path(asset_path, context.assets)
