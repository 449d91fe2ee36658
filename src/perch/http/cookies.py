"""Cookie parsing, SetCookie serialization and isomorphic cookie access.

Consolidates the read side (parse_cookies, used by ServerRequest), the
write side (SetCookie, used by ServerResponse) and the environment
dispatch the controller uses: on the server cookies come from the
request jar and go out as ``Set-Cookie``; in a client session they live
in the session's httpx cookie jar, so later fetches carry them.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import format_datetime
from typing import TYPE_CHECKING

from perch.errors import CookieConfigurationError

if TYPE_CHECKING:
    from perch.context import PageContext

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Returns an empty dict for empty or missing headers.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            key, _, value = pair.partition("=")
            cookies[key.strip()] = value.strip()
    return cookies


@dataclass(frozen=True, slots=True)
class CookieOptions:
    """Options accepted by ``set_cookie`` / ``remove_cookie``.

    ``expires`` must be a ``datetime``; anything else is rejected by
    ``validate()`` before a cookie is touched.
    """

    expires: datetime | None = None
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = False
    samesite: str | None = "lax"

    def validate(self) -> None:
        if self.expires is not None and not isinstance(self.expires, datetime):
            msg = (
                "The expires option of a cookie must be a datetime "
                f"instead of {self.expires!r}"
            )
            raise CookieConfigurationError(msg)


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive attached to a ServerResponse."""

    name: str
    value: str
    expires: datetime | None = None
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str | None = "lax"

    @classmethod
    def from_options(cls, name: str, value: str, options: CookieOptions) -> SetCookie:
        return cls(
            name=name,
            value=value,
            expires=options.expires,
            max_age=options.max_age,
            path=options.path,
            domain=options.domain,
            secure=options.secure,
            httponly=options.httponly,
            samesite=options.samesite,
        )

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string."""
        parts = [f"{self.name}={self.value}"]
        if self.expires is not None:
            expires = self.expires
            if expires.tzinfo is None:
                expires = expires.replace(tzinfo=UTC)
            parts.append(f"Expires={format_datetime(expires.astimezone(UTC), usegmt=True)}")
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite}")
        return "; ".join(parts)


# -- Isomorphic access --


def get_cookie(context: PageContext, name: str) -> str | None:
    """Read a cookie from the request (server) or the session jar (client)."""
    if context.is_server:
        if context.request is None:
            return None
        return context.request.cookies.get(name)
    if context.http_client is None:
        return None
    return context.http_client.cookies.get(name)


def set_cookie(
    context: PageContext,
    name: str,
    value: str,
    options: CookieOptions | None = None,
) -> None:
    """Write a cookie for the current environment.

    Raises:
        CookieConfigurationError: If ``options.expires`` is not a datetime.
    """
    options = options or CookieOptions()
    options.validate()

    if context.is_server:
        if context.response is not None:
            context.response.set_cookie(SetCookie.from_options(name, value, options))
        return

    if context.http_client is None:
        return
    if options.expires is not None and _aware(options.expires) <= datetime.now(UTC):
        _delete_client_cookie(context, name, options)
        return
    context.http_client.cookies.set(name, value, domain=options.domain or "", path=options.path)


def remove_cookie(context: PageContext, name: str, options: CookieOptions | None = None) -> None:
    """Delete a cookie for the current environment."""
    options = options or CookieOptions()
    options.validate()

    if context.is_server:
        if context.response is not None:
            context.response.clear_cookie(name, path=options.path, domain=options.domain)
        return
    if context.http_client is not None:
        _delete_client_cookie(context, name, options)


def _delete_client_cookie(context: PageContext, name: str, options: CookieOptions) -> None:
    if context.http_client is None:
        return
    with contextlib.suppress(KeyError):
        context.http_client.cookies.delete(name, domain=options.domain, path=options.path)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def expired_cookie(name: str, *, path: str = "/", domain: str | None = None) -> SetCookie:
    """A ``Set-Cookie`` that deletes *name* on the client."""
    return SetCookie(name=name, value="", expires=_EPOCH, max_age=0, path=path, domain=domain)
