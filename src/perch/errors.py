"""Perch exception hierarchy.

Shared across the controller, fetcher, cookie helpers and the view layer
so every module raises and catches the same types.
"""


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when a controller declaration is invalid.

    Typically surfaces during ``Controller.init()`` while the model is
    resolved into an initial state and an action table.
    """


class LifecycleError(PerchError):
    """Raised on an illegal lifecycle transition (e.g. ``init()`` twice)."""


class FetchTimeoutError(PerchError, TimeoutError):
    """A ``fetch`` did not settle within its ``timeout``.

    Subclasses ``TimeoutError`` so callers can catch either type. The
    message is the caller's ``timeout_message`` when one was given.
    """

    def __init__(self, message: str, *, url: str, timeout: float) -> None:
        super().__init__(message)
        self.url = url
        self.timeout = timeout


class CookieConfigurationError(PerchError, ValueError):
    """A cookie option is malformed (e.g. ``expires`` is not a datetime).

    Raised synchronously, before any cookie is read or written.
    """
