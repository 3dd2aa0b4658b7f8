"""
Errors raised by the chat completion gateway client.

Each error carries the HTTP status the chat endpoint answers with when the
failure happens before streaming starts.
"""

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
QUOTA_MESSAGE = "AI credits exhausted."


class GatewayError(Exception):
    """Base class for upstream provider failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RateLimitedError(GatewayError):
    """The provider kept answering 429 after every retry."""

    status_code = 429

    def __init__(self, message: str = RATE_LIMIT_MESSAGE):
        super().__init__(message)


class QuotaExhaustedError(GatewayError):
    """The provider answered 402; credits are gone and retrying cannot help."""

    status_code = 402

    def __init__(self, message: str = QUOTA_MESSAGE):
        super().__init__(message)


class UpstreamError(GatewayError):
    """Any other non-2xx answer from the provider."""

    def __init__(self, message: str, upstream_status: int):
        super().__init__(message)
        self.upstream_status = upstream_status


class GatewayConnectionError(GatewayError):
    """The provider could not be reached at all."""

    status_code = 502
