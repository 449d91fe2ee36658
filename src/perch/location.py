"""Immutable navigation location.

A ``Location`` describes one navigation: where it goes and how it was
triggered (``PUSH``, ``REPLACE`` or ``POP``). The ephemeral ``key`` is
kept apart from everything else so the same logical navigation always
serializes the same way.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import parse_qsl, urlsplit


@dataclass(frozen=True, slots=True)
class Location:
    """A navigation target.

    ``raw`` is the app-relative URL (pathname + search + hash) without
    the basename, the form history ``replace``/``push`` accept.
    """

    pathname: str = "/"
    search: str = ""
    hash: str = ""
    action: str = "POP"
    basename: str = ""
    pattern: str = ""
    params: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)
    state: Any = None
    key: str | None = None

    @property
    def raw(self) -> str:
        return f"{self.pathname}{self.search}{self.hash}"

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        action: str = "POP",
        basename: str = "",
        key: str | None = None,
        params: Mapping[str, str] | None = None,
        pattern: str = "",
        state: Any = None,
    ) -> Location:
        """Parse an app-relative URL into a ``Location``."""
        parts = urlsplit(url)
        pathname = parts.path or "/"
        if basename and pathname.startswith(basename):
            pathname = pathname[len(basename):] or "/"
        return cls(
            pathname=pathname,
            search=f"?{parts.query}" if parts.query else "",
            hash=f"#{parts.fragment}" if parts.fragment else "",
            action=action,
            basename=basename,
            pattern=pattern,
            params=dict(params or {}),
            query=dict(parse_qsl(parts.query)),
            state=state,
            key=key,
        )

    def without_key(self) -> Location:
        """Return a copy with the navigation key removed."""
        if self.key is None:
            return self
        return replace(self, key=None)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the store and the hydration snapshot.

        The key is never included.
        """
        return {
            "pathname": self.pathname,
            "search": self.search,
            "hash": self.hash,
            "action": self.action,
            "basename": self.basename,
            "pattern": self.pattern,
            "params": dict(self.params),
            "query": dict(self.query),
            "state": self.state,
            "raw": self.raw,
        }
