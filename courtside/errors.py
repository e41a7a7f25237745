"""
Upstream error taxonomy shared by the ESPN and Reddit adapters.

Adapters raise these; façades decide which ones trigger a fallback and
which ones are retried. Nothing here ever reaches the HTTP caller as a
raised exception: the transport layer turns them into ``{"error": ...}``.
"""
from typing import Optional


class UpstreamError(Exception):
    """Base class for failures talking to an upstream API."""

    def __init__(self, message: str, provider: str = "", url: Optional[str] = None):
        super().__init__(message)
        self.provider = provider
        self.url = url


class UpstreamUnavailableError(UpstreamError):
    """Network failure or timeout; no HTTP status was received."""


class UpstreamHTTPError(UpstreamError):
    """Upstream answered with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        provider: str = "",
        url: Optional[str] = None,
        message: Optional[str] = None,
    ):
        super().__init__(
            message or f"{provider or 'upstream'} returned HTTP {status_code}",
            provider=provider,
            url=url,
        )
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.status_code >= 500


class RateLimitedError(UpstreamHTTPError):
    """403 or 429: the upstream is throttling or blocking us."""


class MalformedPayloadError(UpstreamError):
    """2xx response whose body could not be decoded as JSON."""


BLOCKED_STATUSES = (403, 429)


def error_for_status(status_code: int, provider: str, url: Optional[str] = None) -> UpstreamHTTPError:
    """Build the right exception type for a non-2xx status."""
    if status_code in BLOCKED_STATUSES:
        return RateLimitedError(status_code, provider=provider, url=url)
    return UpstreamHTTPError(status_code, provider=provider, url=url)


def is_transient(exc: BaseException) -> bool:
    """True for failures worth retrying: network errors and 5xx."""
    if isinstance(exc, UpstreamUnavailableError):
        return True
    if isinstance(exc, UpstreamHTTPError) and not isinstance(exc, RateLimitedError):
        return exc.is_transient
    return False
