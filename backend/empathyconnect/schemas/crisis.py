"""
Pydantic models for crisis alert review.
"""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


AlertStatus = Literal["pending", "acknowledged", "resolved"]


class CrisisAlertResponse(BaseModel):
    """Schema for a crisis alert as shown on the therapist dashboard."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: str
    message_id: Optional[str] = None
    user_id: Optional[str] = None
    pseudo_user_id: str
    risk_level: Literal["medium", "high"]
    primary_feeling: Optional[str] = None
    message_preview: str
    status: AlertStatus
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime


class AlertReviewRequest(BaseModel):
    """Body for acknowledging or resolving an alert."""

    reviewer_id: Optional[str] = None


class AlertStatsResponse(BaseModel):
    """Counts shown at the top of the therapist dashboard."""

    pending: int
    high_risk: int
    acknowledged: int
    resolved_today: int
