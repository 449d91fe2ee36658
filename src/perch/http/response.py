"""Mutable server-side response handle.

Unlike a returned response value, the controller writes into this handle
while it initializes: a redirect, cookies, and the early-flushed head
carrying ``Link`` preload hints. The server wiring that owns the handle
turns it into bytes on the wire.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from perch.http.cookies import SetCookie, expired_cookie
from perch.http.headers import Headers


class ServerResponse:
    """A response being written by a server-side controller.

    Headers can be sent once. After ``flush_headers()`` the status and
    headers are frozen; later ``write_head`` calls are ignored.
    """

    __slots__ = (
        "_headers",
        "_on_flush",
        "body",
        "cookies",
        "headers_sent",
        "location",
        "status",
    )

    def __init__(self, *, on_flush: Callable[[ServerResponse], None] | None = None) -> None:
        self.status: int = 200
        self._headers: list[tuple[str, str]] = []
        self.cookies: list[SetCookie] = []
        self.location: str | None = None
        self.headers_sent: bool = False
        self.body: list[str] = []
        self._on_flush = on_flush

    @property
    def headers(self) -> Headers:
        pairs = list(self._headers)
        pairs.extend(("Set-Cookie", cookie.to_header_value()) for cookie in self.cookies)
        return Headers(pairs)

    @property
    def text(self) -> str:
        return "".join(self.body)

    def redirect(self, url: str, status: int = 302) -> None:
        self.status = status
        self.location = url
        self._headers.append(("Location", url))

    def set_cookie(self, cookie: SetCookie) -> None:
        self.cookies.append(cookie)

    def clear_cookie(self, name: str, *, path: str = "/", domain: str | None = None) -> None:
        self.cookies.append(expired_cookie(name, path=path, domain=domain))

    def write_head(
        self,
        status: int,
        headers: Mapping[str, str | list[str] | tuple[str, ...]] | None = None,
    ) -> None:
        """Set the status and headers. List values become repeated headers."""
        if self.headers_sent:
            return
        self.status = status
        for name, value in (headers or {}).items():
            if isinstance(value, (list, tuple)):
                self._headers.extend((name, item) for item in value)
            else:
                self._headers.append((name, value))

    def flush_headers(self) -> None:
        if self.headers_sent:
            return
        self.headers_sent = True
        if self._on_flush is not None:
            self._on_flush(self)

    def write(self, chunk: str) -> None:
        if not self.headers_sent:
            self.flush_headers()
        self.body.append(chunk)
