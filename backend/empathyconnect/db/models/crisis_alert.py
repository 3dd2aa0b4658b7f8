from sqlalchemy import Column, DateTime, String

from empathyconnect.db.base import Base
from empathyconnect.utils.datetime_helper import utc_now


class CrisisAlert(Base):
    """Alert raised for a therapist when a message is classified medium or high risk."""

    session_id = Column(String(64), nullable=False, index=True)
    message_id = Column(String(64), nullable=True)
    user_id = Column(String(64), nullable=True)
    pseudo_user_id = Column(String(20), nullable=False)

    # Classification snapshot
    risk_level = Column(String(10), nullable=False)  # 'medium' or 'high'
    primary_feeling = Column(String(100), nullable=True)
    message_preview = Column(String(200), nullable=False)

    # Review workflow: pending -> acknowledged -> resolved
    status = Column(String(20), nullable=False, default="pending", index=True)
    acknowledged_by = Column(String(64), nullable=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(String(64), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    def to_dict(self) -> dict:
        """Plain JSON-friendly snapshot, safe to use after the session closes."""

        def _iso(value):
            return value.isoformat() if value else None

        return {
            "id": str(self.id),
            "session_id": self.session_id,
            "message_id": self.message_id,
            "user_id": self.user_id,
            "pseudo_user_id": self.pseudo_user_id,
            "risk_level": self.risk_level,
            "primary_feeling": self.primary_feeling,
            "message_preview": self.message_preview,
            "status": self.status,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": _iso(self.acknowledged_at),
            "resolved_by": self.resolved_by,
            "resolved_at": _iso(self.resolved_at),
            "created_at": _iso(self.created_at),
        }
