"""
Append-only recording of crisis alerts.

Recording an alert is a side effect of a chat turn and must never fail or
delay that turn: ``schedule_alert`` runs the sink as a detached task and the
sink logs and swallows every error.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Set

from sqlalchemy.orm import Session

from empathyconnect.db.models import CrisisAlert
from empathyconnect.db.session import SessionLocal
from empathyconnect.services.crisis.notifier import AlertNotifier

logger = logging.getLogger(__name__)

ALERT_RISK_LEVELS = frozenset({"medium", "high"})
MESSAGE_PREVIEW_LENGTH = 200

# Strong references to in-flight alert tasks so they are not garbage-collected
_background_tasks: Set[asyncio.Task] = set()


def pseudo_user_id(session_id: str) -> str:
    """Stable, non-identifying handle shown to therapists for a session."""
    return f"User_{session_id[:4].upper()}"


def message_preview(message_text: str) -> str:
    return message_text[:MESSAGE_PREVIEW_LENGTH]


class CrisisAlertSink:
    """Persists crisis alerts and announces them to the dashboard."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        notifier: Optional[AlertNotifier] = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier

    async def record_alert(
        self,
        session_id: str,
        user_id: Optional[str],
        risk_level: str,
        primary_feeling: Optional[str],
        message_text: str,
        message_id: Optional[str] = None,
    ) -> None:
        """
        Record a crisis alert for a medium or high risk message.

        Never raises; failures are logged.

        Args:
            session_id: Chat session identifier
            user_id: Optional real user identifier
            risk_level: Classified risk level of the message
            primary_feeling: Main feeling reported by the classifier
            message_text: The user's message; stored truncated to 200 characters
            message_id: Optional identifier of the stored chat message
        """
        if risk_level not in ALERT_RISK_LEVELS:
            logger.debug(f"Skipping alert for {risk_level} risk in session {session_id}")
            return

        try:
            alert = await asyncio.to_thread(
                self._insert,
                session_id,
                user_id,
                risk_level,
                primary_feeling,
                message_text,
                message_id,
            )
        except Exception as e:
            logger.error(f"Error inserting crisis alert for session {session_id}: {e}")
            return

        logger.info(
            f"Recorded {risk_level} crisis alert {alert['id']} "
            f"for {alert['pseudo_user_id']}"
        )

        if self.notifier is None:
            return

        try:
            await self.notifier.publish(alert)
        except Exception as e:
            logger.error(f"Error publishing crisis alert {alert['id']}: {e}")

    def _insert(
        self,
        session_id: str,
        user_id: Optional[str],
        risk_level: str,
        primary_feeling: Optional[str],
        message_text: str,
        message_id: Optional[str],
    ) -> Dict[str, Any]:
        db = self.session_factory()
        try:
            alert = CrisisAlert(
                session_id=session_id,
                message_id=message_id,
                user_id=user_id,
                pseudo_user_id=pseudo_user_id(session_id),
                risk_level=risk_level,
                primary_feeling=primary_feeling,
                message_preview=message_preview(message_text),
                status="pending",
            )
            db.add(alert)
            db.commit()
            db.refresh(alert)
            return alert.to_dict()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def schedule_alert(sink: CrisisAlertSink, **alert_fields: Any) -> asyncio.Task:
    """
    Run ``sink.record_alert`` as a detached task.

    The caller never awaits the returned task; it is only returned so tests
    can wait for it.
    """
    task = asyncio.create_task(sink.record_alert(**alert_fields))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
