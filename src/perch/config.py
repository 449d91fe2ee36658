"""Runtime configuration and per-controller options.

Both are frozen dataclasses — immutable after creation, IDE-autocompletable,
no string-key dict lookups. Per-activation variants are derived with
``dataclasses.replace`` instead of mutating a shared instance.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class EarlyHint:
    """One ``Link`` header entry written when response headers are flushed.

    ``uri`` is an asset name resolved through the client asset table
    unless it is already an absolute URL.
    """

    uri: str
    rel: str = "preload"
    as_: str = "script"

    def to_link(self, uri: str | None = None) -> str:
        """Serialize to a ``Link`` header value, optionally with a resolved uri."""
        return f"<{uri or self.uri}>; rel={self.rel}; as={self.as_}"


DEFAULT_EARLY_HINTS: tuple[EarlyHint, ...] = (
    EarlyHint("vendor.js"),
    EarlyHint("index.js"),
)


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Application-wide runtime configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RuntimeConfig(basename="/shop", restapi="https://api.example.com")
    """

    # Paths
    basename: str = ""
    static_path: str = "/static"
    public_path: str | None = None  # None = basename + static_path
    server_public_path: str = ""

    # REST API base prepended by Controller.fetch
    restapi: str = ""

    # Origin used to absolutize root-relative URLs outside a browser
    origin: str = "http://localhost:8000"

    # Client session
    cache_amount: int = 5
    refresh_debounce: float = 0.005

    @property
    def resolved_public_path(self) -> str:
        if self.public_path is not None:
            return self.public_path
        return self.basename + self.static_path


@dataclass(frozen=True, slots=True)
class ControllerOptions:
    """Per-activation flags declared on a ``Controller`` subclass.

    Override on the class::

        class Checkout(Controller):
            options = ControllerOptions(ssr=False, keep_alive_on_push=True)

    Attributes:
        ssr: Render on the server. When ``False`` the server returns the
            loading view without running data hooks.
        deep_clone_initial_state: Deep-copy the declared initial state so
            concurrent activations never share nested structures.
        disable_batch_refresh: Refresh the view on every store change
            instead of coalescing changes.
        refresh_debounce: Coalescing window in seconds. ``None`` uses the
            context's configured default.
        keep_alive_on_push: Cache this instance on forward navigation so
            going back restores it; evict it otherwise.
        disable_early_hints: Never write the ``Link`` header.
        early_hints: Script/style entries for the ``Link`` header.
        public_path_placeholder: Token rewritten in preloaded content.
        disable_public_path_for_preload: On the client, fetch preloads from
            the local static path instead of the public path.
    """

    ssr: bool = True
    deep_clone_initial_state: bool = True
    disable_batch_refresh: bool = False
    refresh_debounce: float | None = None
    keep_alive_on_push: bool = False
    disable_early_hints: bool = False
    early_hints: tuple[EarlyHint, ...] = field(default=DEFAULT_EARLY_HINTS)
    public_path_placeholder: str = "@public_path"
    disable_public_path_for_preload: bool = False
