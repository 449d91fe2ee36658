"""Preload pipeline — text resources fetched before first paint.

A controller declares ``preload = {"main": "/css/main.css"}``. Before the
first render each name is fetched as text and stored in the context's
per-navigation registry, so the document (server) or the view (client)
can inline it.

Pipeline::

    1. Skip names already in the registry (reused from hydration)
    2. Resolve each path through the asset table (hashed names)
    3. Resolve a fetch URL for the environment
    4. Fetch all remaining names concurrently (anyio task group)
    5. Strip carriage returns from stylesheets so server and client
       produce byte-identical content
    6. Rewrite ``<placeholder>/`` to the real public path prefix
    7. Register successes; log and drop failures
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

import anyio

from perch.assets import client_asset_path
from perch.fetcher import fetch_text, is_absolute_url

if TYPE_CHECKING:
    from perch.context import PageContext

logger = logging.getLogger("perch.preload")


def resolve_preload_url(
    path: str,
    context: PageContext,
    *,
    disable_public_path: bool = False,
) -> str:
    """Resolve the URL a preload resource is fetched from.

    - already-absolute URLs pass through
    - the server fetches from its own ``server_public_path``
    - the client fetches from the public path, or from the local static
      path when *disable_public_path* is set
    """
    if is_absolute_url(path):
        if context.is_client and path.startswith("http:"):
            return path[len("http:"):]
        return path
    url = client_asset_path(path, context.assets)
    if context.is_server:
        return context.server_public_path + url
    if disable_public_path:
        return context.local_public_path + url
    return (context.public_path or "") + url


def public_path_prefix(context: PageContext, *, disable_public_path: bool = False) -> str:
    """The prefix the placeholder token is rewritten to."""
    if disable_public_path:
        return context.local_public_path
    if context.public_path is not None:
        return context.public_path
    return context.local_public_path


def normalize_preload_content(
    content: str,
    *,
    url: str,
    placeholder: str,
    public_path: str,
) -> str:
    """Normalize fetched content so every environment computes the same text.

    Stylesheets lose their carriage returns; every ``<placeholder>/``
    becomes ``<public_path>/``.
    """
    if ".css" in url.split("?", 1)[0]:
        content = content.replace("\r", "")
    return content.replace(placeholder + "/", public_path + "/")


def missing_preloads(preload: Mapping[str, str], registry: Mapping[str, str]) -> list[str]:
    """Names declared in *preload* that the registry does not hold yet."""
    return [name for name in preload if name not in registry]


async def fetch_preload(
    preload: Mapping[str, str],
    *,
    context: PageContext,
    placeholder: str = "@public_path",
    disable_public_path: bool = False,
) -> list[str]:
    """Fetch every missing preload resource into ``context.preload``.

    Never raises for an individual resource: a failed fetch is logged
    and simply absent from the registry.

    Returns:
        The names that were fetched and registered by this call.
    """
    pending = missing_preloads(preload, context.preload)
    if not pending:
        return []

    prefix = public_path_prefix(context, disable_public_path=disable_public_path)
    loaded: list[str] = []

    async def _load(name: str) -> None:
        url = resolve_preload_url(
            preload[name], context, disable_public_path=disable_public_path,
        )
        try:
            content = await fetch_text(url, context)
        except Exception:
            logger.warning("preload resource failed: %s (%s)", name, url, exc_info=True)
            return
        context.preload[name] = normalize_preload_content(
            content, url=url, placeholder=placeholder, public_path=prefix,
        )
        loaded.append(name)

    async with anyio.create_task_group() as tg:
        for name in pending:
            tg.start_soon(_load, name)

    return loaded

