"""
Crisis alert services package initialization.
"""

from empathyconnect.services.crisis.alert_sink import (
    ALERT_RISK_LEVELS,
    CrisisAlertSink,
    pseudo_user_id,
    schedule_alert,
)
from empathyconnect.services.crisis.alert_store import (
    AlertNotFoundError,
    InvalidAlertTransitionError,
    acknowledge_alert,
    alert_stats,
    list_alerts,
    resolve_alert,
)
from empathyconnect.services.crisis.notifier import ALERT_CHANNEL, AlertNotifier

__all__ = [
    "ALERT_CHANNEL",
    "ALERT_RISK_LEVELS",
    "AlertNotFoundError",
    "AlertNotifier",
    "CrisisAlertSink",
    "InvalidAlertTransitionError",
    "acknowledge_alert",
    "alert_stats",
    "list_alerts",
    "pseudo_user_id",
    "resolve_alert",
    "schedule_alert",
]
