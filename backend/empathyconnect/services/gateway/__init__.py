"""
Gateway services package initialization.
"""

from empathyconnect.services.gateway.client import GatewayClient, UpstreamStream
from empathyconnect.services.gateway.errors import (
    GatewayConnectionError,
    GatewayError,
    QuotaExhaustedError,
    RateLimitedError,
    UpstreamError,
)

__all__ = [
    "GatewayClient",
    "GatewayConnectionError",
    "GatewayError",
    "QuotaExhaustedError",
    "RateLimitedError",
    "UpstreamError",
    "UpstreamStream",
]
