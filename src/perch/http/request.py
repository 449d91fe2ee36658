"""Immutable server-side request handle.

The controller reads very little from the incoming request: headers (to
forward the ``Cookie`` header on server-side fetches) and the parsed
cookie jar. Everything is frozen at creation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from perch.http.cookies import parse_cookies
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class ServerRequest:
    """An immutable HTTP request as seen by a server-side controller.

    Cookies are parsed once at creation time (in ``build``) and stored
    as a frozen field — not re-parsed on every access.
    """

    method: str = "GET"
    path: str = "/"
    headers: Headers = field(default_factory=Headers)
    cookies: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        path: str = "/",
        *,
        method: str = "GET",
        headers: Iterable[tuple[str, str]] | Mapping[str, str] = (),
    ) -> ServerRequest:
        """Create a request, parsing cookies from its ``Cookie`` header."""
        parsed = Headers(headers)
        return cls(
            method=method.upper(),
            path=path,
            headers=parsed,
            cookies=parse_cookies(parsed.get("cookie", "") or ""),
        )

    @property
    def cookie_header(self) -> str:
        return self.headers.get("cookie", "") or ""
