"""Environment context shared by every controller of one navigation.

A ``PageContext`` is owned by the router (server request handler or
client session). Controllers read it and write into exactly two places:
the per-navigation ``preload`` registry and, on the server, the
``response`` handle.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from perch.config import RuntimeConfig
from perch.hydration import INITIAL_STATE, HydrationChannel

if TYPE_CHECKING:
    import httpx

    from perch.cache import ControllerCache
    from perch.history import History
    from perch.http.request import ServerRequest
    from perch.http.response import ServerResponse


@dataclass(slots=True)
class PageContext:
    """The Environment Context consumed by controllers.

    Exactly one of ``is_server`` / ``is_client`` is true: the second is
    derived from the first.

    Attributes:
        is_server: Running inside a single request/response cycle.
        basename: Path prefix the app is mounted under.
        public_path: Prefix for client assets (CDN or ``basename + static_path``).
        restapi: REST base prepended by ``Controller.fetch``.
        static_path: Path the server serves static assets from.
        server_public_path: Absolute prefix the server uses to fetch its own
            static assets (preloads).
        origin: Scheme and host used to absolutize root-relative URLs.
        preload: Per-navigation preload registry (name -> content).
        assets: Client asset table (name -> hashed path).
        request: Incoming request (server only).
        response: Response handle (server only).
        history: Navigation history (client only).
        render: Client render primitive ``(view, controller) -> None``.
        http_client: Shared ``httpx.AsyncClient``; a per-call client is
            created when ``None``.
        hydration: Slot carrying the server-computed state snapshot.
        cache: Keep-alive controller cache (client only).
        matcher: Router hook resolving a URL to its route match, or ``None``.
        loader: Router hook loading the controller class of a route match.
        extras: Free-form values for application code (user info, env).
    """

    is_server: bool
    basename: str = ""
    public_path: str | None = None
    restapi: str = ""
    static_path: str = "/static"
    server_public_path: str = ""
    origin: str = "http://localhost:8000"
    refresh_debounce: float = 0.005
    preload: dict[str, str] = field(default_factory=dict)
    assets: dict[str, str] = field(default_factory=dict)
    request: ServerRequest | None = None
    response: ServerResponse | None = None
    history: History | None = None
    render: Callable[[Any, Any], None] | None = None
    http_client: httpx.AsyncClient | None = None
    hydration: HydrationChannel = field(default_factory=lambda: INITIAL_STATE)
    cache: ControllerCache | None = None
    matcher: Callable[[str], Any] | None = None
    loader: Callable[[Any], Any] | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def is_client(self) -> bool:
        return not self.is_server

    @property
    def local_public_path(self) -> str:
        """The app's own static prefix, ignoring any CDN public path."""
        return self.basename + self.static_path

    @classmethod
    def from_config(cls, config: RuntimeConfig, *, is_server: bool, **fields: Any) -> PageContext:
        """Build a context from runtime configuration plus per-navigation fields."""
        base: dict[str, Any] = {
            "basename": config.basename,
            "public_path": config.resolved_public_path,
            "restapi": config.restapi,
            "static_path": config.static_path,
            "server_public_path": config.server_public_path,
            "origin": config.origin,
            "refresh_debounce": config.refresh_debounce,
        }
        base.update(fields)
        return cls(is_server=is_server, **base)
