"""
Dependency injection functions for the API.
"""

import logging
from typing import Optional

from empathyconnect.db.session import get_db
from empathyconnect.services.crisis import AlertNotifier, CrisisAlertSink
from empathyconnect.services.gateway import GatewayClient

logger = logging.getLogger(__name__)

# Database dependency
db_dependency = get_db

# Shared process-wide instances, created on first use
_gateway_client: Optional[GatewayClient] = None
_alert_sink: Optional[CrisisAlertSink] = None
_alert_notifier: Optional[AlertNotifier] = None


def get_gateway_client() -> GatewayClient:
    """
    Return the shared gateway client.

    One client is reused so upstream connections are pooled across turns.
    """
    global _gateway_client

    if _gateway_client is None:
        _gateway_client = GatewayClient()
        logger.info(f"Gateway client created for {_gateway_client.url}")

    return _gateway_client


def get_alert_notifier() -> AlertNotifier:
    """Return the shared publisher for crisis alert updates."""
    global _alert_notifier

    if _alert_notifier is None:
        _alert_notifier = AlertNotifier()

    return _alert_notifier


def get_alert_sink() -> CrisisAlertSink:
    """Return the shared crisis alert sink."""
    global _alert_sink

    if _alert_sink is None:
        _alert_sink = CrisisAlertSink(notifier=get_alert_notifier())

    return _alert_sink


async def close_gateway_client() -> None:
    """Close the shared gateway client during application shutdown."""
    global _gateway_client

    if _gateway_client is not None:
        await _gateway_client.aclose()
        _gateway_client = None
        logger.info("Gateway client closed")
