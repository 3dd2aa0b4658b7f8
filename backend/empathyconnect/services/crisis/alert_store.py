"""
Review operations on crisis alerts for the therapist dashboard.

Alerts move through ``pending -> acknowledged -> resolved``. Acknowledgement
is optional before resolution, ``resolved`` is terminal, and no alert ever
returns to ``pending``.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from empathyconnect.db.models import CrisisAlert
from empathyconnect.services.crisis.notifier import AlertNotifier
from empathyconnect.utils.datetime_helper import utc_day_bounds, utc_now

logger = logging.getLogger(__name__)

ALERT_TRANSITIONS: Dict[str, frozenset] = {
    "pending": frozenset({"acknowledged", "resolved"}),
    "acknowledged": frozenset({"resolved"}),
    "resolved": frozenset(),
}


class AlertNotFoundError(ValueError):
    """Raised when an alert id does not exist."""


class InvalidAlertTransitionError(ValueError):
    """Raised when a status change would break the review state machine."""


def check_transition(current: str, target: str) -> None:
    """Raise if moving an alert from ``current`` to ``target`` is not allowed."""
    if target not in ALERT_TRANSITIONS.get(current, frozenset()):
        raise InvalidAlertTransitionError(
            f"Cannot move alert from '{current}' to '{target}'"
        )


async def get_alert(db: Session, alert_id: str) -> CrisisAlert:
    """
    Get a crisis alert by id.

    Raises:
        AlertNotFoundError: If the id is malformed or unknown
    """
    key = _parse_id(alert_id)
    alert = db.query(CrisisAlert).filter(CrisisAlert.id == key).first()
    if not alert:
        raise AlertNotFoundError(f"Crisis alert {alert_id} not found")
    return alert


async def list_alerts(
    db: Session,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[CrisisAlert]:
    """
    List crisis alerts, newest first.

    Args:
        db: Database session
        status: Only return alerts in this status
        limit: Maximum number of alerts to return
        offset: Number of alerts to skip
    """
    query = db.query(CrisisAlert)
    if status:
        query = query.filter(CrisisAlert.status == status)

    return (
        query.order_by(desc(CrisisAlert.created_at)).offset(offset).limit(limit).all()
    )


def _parse_id(alert_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(alert_id))
    except ValueError:
        raise AlertNotFoundError(f"Crisis alert {alert_id} not found")


async def _transition(
    db: Session, alert_id: str, target: str, values: Dict[str, Any]
) -> CrisisAlert:
    """
    Move an alert to ``target`` with a single conditional update.

    The row only changes while its current status still allows the move, so
    two reviewers acting on the same alert cannot both succeed.
    """
    key = _parse_id(alert_id)
    sources = [s for s, targets in ALERT_TRANSITIONS.items() if target in targets]

    updated = (
        db.query(CrisisAlert)
        .filter(CrisisAlert.id == key, CrisisAlert.status.in_(sources))
        .update({"status": target, **values}, synchronize_session=False)
    )
    if not updated:
        db.rollback()
        alert = await get_alert(db, alert_id)
        check_transition(alert.status, target)
        raise InvalidAlertTransitionError(
            f"Crisis alert {alert_id} changed status during the update"
        )

    db.commit()
    return await get_alert(db, alert_id)


async def _announce(notifier: Optional[AlertNotifier], alert: CrisisAlert) -> None:
    if notifier is None:
        return

    try:
        await notifier.publish(alert.to_dict())
    except Exception as e:
        logger.error(f"Error publishing update for crisis alert {alert.id}: {e}")


async def acknowledge_alert(
    db: Session,
    alert_id: str,
    reviewer_id: Optional[str] = None,
    notifier: Optional[AlertNotifier] = None,
) -> CrisisAlert:
    """Mark a pending alert as acknowledged by a reviewer."""
    alert = await _transition(
        db,
        alert_id,
        "acknowledged",
        {"acknowledged_by": reviewer_id, "acknowledged_at": utc_now()},
    )

    logger.info(f"Crisis alert {alert_id} acknowledged by {reviewer_id}")
    await _announce(notifier, alert)
    return alert


async def resolve_alert(
    db: Session,
    alert_id: str,
    reviewer_id: Optional[str] = None,
    notifier: Optional[AlertNotifier] = None,
) -> CrisisAlert:
    """Resolve a pending or acknowledged alert."""
    alert = await _transition(
        db,
        alert_id,
        "resolved",
        {"resolved_by": reviewer_id, "resolved_at": utc_now()},
    )

    logger.info(f"Crisis alert {alert_id} resolved by {reviewer_id}")
    await _announce(notifier, alert)
    return alert


def _count(db: Session, *criteria) -> int:
    return db.query(func.count(CrisisAlert.id)).filter(*criteria).scalar() or 0


async def alert_stats(db: Session, now=None) -> Dict[str, int]:
    """
    Summary counts for the dashboard header.

    Returns:
        Pending alerts, pending high-risk alerts, acknowledged alerts and
        alerts resolved on the current UTC day
    """
    day_start, day_end = utc_day_bounds(now or utc_now())

    return {
        "pending": _count(db, CrisisAlert.status == "pending"),
        "high_risk": _count(
            db, CrisisAlert.status == "pending", CrisisAlert.risk_level == "high"
        ),
        "acknowledged": _count(db, CrisisAlert.status == "acknowledged"),
        "resolved_today": _count(
            db,
            CrisisAlert.status == "resolved",
            CrisisAlert.resolved_at >= day_start,
            CrisisAlert.resolved_at < day_end,
        ),
    }
