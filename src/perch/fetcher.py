"""Resource fetcher — isomorphic HTTP access for controllers.

Wraps ``httpx.AsyncClient`` with the conventions controllers rely on:

- logical API names resolve through a declared name -> URL table
- relative URLs get the REST base (``/mock/`` URLs get the basename)
- server-side requests forward the incoming ``Cookie`` header, since
  there is no browser cookie jar to do it
- responses are decoded as JSON unless ``json=False``
- an optional ``timeout`` races the request and fails with a
  ``FetchTimeoutError`` carrying a caller-customizable message

Root-relative and protocol-relative URLs are absolutized against the
context's ``origin`` because httpx (unlike a browser) needs a full URL.
"""

from __future__ import annotations

import json as json_module
import re
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode, urlsplit

import anyio
import httpx

from perch.errors import FetchTimeoutError

if TYPE_CHECKING:
    from perch.context import PageContext

_ABSOLUTE_URL = re.compile(r"^([a-z][a-z\d+\-.]*:)?//", re.IGNORECASE)

TimeoutMessage = str | Callable[[dict[str, Any]], str] | None


def is_absolute_url(url: str) -> bool:
    """True for ``scheme://...`` and protocol-relative ``//...`` URLs."""
    return bool(_ABSOLUTE_URL.match(url))


def absolutize(url: str, context: PageContext) -> str:
    """Turn a URL a browser would accept into one httpx accepts."""
    if url.startswith("//"):
        scheme = urlsplit(context.origin).scheme or "http"
        return f"{scheme}:{url}"
    if url.startswith("/"):
        return context.origin.rstrip("/") + url
    return url


async def fetch_text(url: str, context: PageContext) -> str:
    """GET *url* and return the body as text. Raises on HTTP errors."""
    async with _client(context) as client:
        response = await client.get(absolutize(url, context))
    response.raise_for_status()
    return response.text


class Fetcher:
    """Controller-bound HTTP helper.

    Usage::

        fetcher = Fetcher(context, api={"user": "/user/info"})
        user = await fetcher.fetch("user", timeout=3)
        page = await fetcher.get("/items", {"page": 2})
        created = await fetcher.post("/items", {"title": "x"})
    """

    __slots__ = ("api", "context", "restapi")

    def __init__(
        self,
        context: PageContext,
        *,
        api: Mapping[str, str] | None = None,
        restapi: str | None = None,
    ) -> None:
        self.context = context
        self.api: Mapping[str, str] = api or {}
        self.restapi = restapi

    # -- URL helpers --

    def prepend_basename(self, pathname: str) -> str:
        if is_absolute_url(pathname):
            return pathname
        return self.context.basename + pathname

    def prepend_public_path(self, pathname: str) -> str:
        if is_absolute_url(pathname):
            return pathname
        return (self.context.public_path or "") + pathname

    def prepend_restapi(self, url: str) -> str:
        """Resolve a relative URL against the REST base.

        Absolute URLs pass through; in a client session ``http:`` is cut
        so the URL follows the page's protocol.
        """
        if is_absolute_url(url):
            if self.context.is_client and url.startswith("http:"):
                url = url[len("http:"):]
            return url

        # Mock endpoints are served by the app itself
        if url.startswith("/mock/"):
            return self.prepend_basename(url)

        restapi = self.restapi if self.restapi is not None else self.context.restapi
        return restapi + url

    def resolve(self, url: str) -> str:
        """Map an API name to its URL, or return *url* unchanged."""
        return self.api.get(url, url)

    # -- Requests --

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: str | bytes | None = None,
        credentials: str = "include",
        json: bool = True,
        raw: bool = False,
        timeout: float | None = None,
        timeout_message: TimeoutMessage = None,
        client: httpx.AsyncClient | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON (or the response).

        Args:
            url: A URL or a name from the ``api`` table.
            method: HTTP method.
            headers: Extra headers, merged over ``Content-Type: application/json``.
            body: Request body.
            credentials: ``"include"`` forwards cookies on the server.
            json: Decode the body as JSON. ``False`` returns the
                ``httpx.Response``.
            raw: Do not prepend the REST base.
            timeout: Seconds before failing with ``FetchTimeoutError``.
            timeout_message: Error message, or a callable receiving
                ``{"url": ..., "options": ...}`` that returns one.
            client: Client override (defaults to the context's).

        Raises:
            FetchTimeoutError: The request did not settle in ``timeout`` seconds.
        """
        url = self.resolve(url)
        if not raw:
            url = self.prepend_restapi(url)

        final_headers = {"Content-Type": "application/json", **(headers or {})}
        context = self.context
        if context.is_server and credentials == "include":
            request = context.request
            final_headers["Cookie"] = request.cookie_header if request is not None else ""

        options = {
            "method": method.upper(),
            "headers": final_headers,
            "body": body,
            "credentials": credentials,
        }

        if timeout is None:
            return await self._send(url, options, json=json, client=client)

        try:
            with anyio.fail_after(timeout):
                return await self._send(url, options, json=json, client=client)
        except TimeoutError:
            message = _timeout_message(timeout_message, url, options, timeout)
            raise FetchTimeoutError(message, url=url, timeout=timeout) from None

    async def get(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        **options: Any,
    ) -> Any:
        """GET with *params* encoded into the query string."""
        url = self.resolve(url)
        if params:
            prefix = "&" if "?" in url else "?"
            url += prefix + urlencode(params, doseq=True)
        options["method"] = "GET"
        return await self.fetch(url, **options)

    async def post(self, url: str, data: Any = None, **options: Any) -> Any:
        """POST *data* as a JSON body."""
        options["method"] = "POST"
        options["body"] = json_module.dumps(data)
        return await self.fetch(url, **options)

    async def _send(
        self,
        url: str,
        options: dict[str, Any],
        *,
        json: bool,
        client: httpx.AsyncClient | None,
    ) -> Any:
        async with _client(self.context, client) as http:
            response = await http.request(
                options["method"],
                absolutize(url, self.context),
                headers=options["headers"],
                content=options["body"],
            )
        if json:
            return response.json()
        return response


def _timeout_message(
    formatter: TimeoutMessage,
    url: str,
    options: dict[str, Any],
    timeout: float,
) -> str:
    if callable(formatter):
        return formatter({"url": url, "options": options})
    if formatter:
        return formatter
    return f"Timeout Error: {url} did not respond within {timeout}s"


@asynccontextmanager
async def _client(
    context: PageContext,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Borrow the shared client, or open a per-call one that closes after use."""
    shared = client or context.http_client
    if shared is not None:
        yield shared
        return
    async with httpx.AsyncClient() as owned:
        yield owned
