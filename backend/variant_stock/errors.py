"""
Error taxonomy for stock checks.

Every failure a job can end in is a StockCheckError subclass by the time it
reaches the caller. An empty option discovery is not an error: the explorer
falls back to reading the page as-is.
"""

# Lower-cased substrings that mean the browser process or its transport is
# unusable. A job failing with one of these forces a Session restart.
FATAL_SIGNATURES = (
    "spawn",
    "executable doesn't exist",
    "target closed",
    "target page, context or browser has been closed",
    "browser has been closed",
    "browser has disconnected",
    "failed to launch",
    "browsertype.launch",
)


class StockCheckError(Exception):
    """Base class for every error raised by the stock-check core."""


class QueueFullError(StockCheckError):
    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(f"Queue is full ({capacity} jobs pending or running)")


class NavigationError(StockCheckError):
    def __init__(self, url: str, cause: Exception):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to load {url}: {cause}")


class FatalSessionError(StockCheckError):
    """The shared browser became unusable. The Session has been (or must be) restarted."""


class SessionLaunchError(FatalSessionError):
    """Launching the browser failed. Reported to the supervisor, never retried in-process."""


class UnrecognizedError(StockCheckError):
    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(str(cause) or cause.__class__.__name__)


def is_fatal(exc: BaseException) -> bool:
    """
    True if the exception (or anything it wraps) matches a fatal signature.

    NavigationError text carries the product URL, so only its cause is matched.
    """
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        if isinstance(exc, FatalSessionError):
            return True
        message = "" if isinstance(exc, NavigationError) else str(exc).lower()
        if any(sig in message for sig in FATAL_SIGNATURES):
            return True
        exc = getattr(exc, "cause", None) or exc.__cause__
    return False
