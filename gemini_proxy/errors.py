"""Exception types raised by the proxy."""

from typing import Optional


class GeminiProxyError(Exception):
    """Base class for all proxy errors."""


class ContentValidationError(GeminiProxyError):
    """Request content was rejected before any upstream call."""


class AuthenticationError(GeminiProxyError):
    """Credentials could not be loaded, refreshed or used for discovery."""


class UpstreamError(GeminiProxyError):
    """The upstream call failed and will not be retried."""

    is_rate_limit = False
    is_auth = False

    def __init__(
        self,
        status_code: Optional[int],
        message: Optional[str] = None,
        body: str = "",
        model: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        self.model = model
        super().__init__(message or f"Stream request failed: {status_code}")


class UpstreamAuthError(UpstreamError):
    is_auth = True


class UpstreamRateLimitError(UpstreamError):
    is_rate_limit = True
