"""
REST API endpoints for reviewing crisis alerts.

Used by the therapist dashboard to list alerts and move them through the
pending -> acknowledged -> resolved workflow.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from empathyconnect.db.session import get_db
from empathyconnect.dependencies import get_alert_notifier
from empathyconnect.schemas.crisis import (
    AlertReviewRequest,
    AlertStatsResponse,
    AlertStatus,
    CrisisAlertResponse,
)
from empathyconnect.services.crisis import (
    AlertNotFoundError,
    AlertNotifier,
    InvalidAlertTransitionError,
    acknowledge_alert,
    alert_stats,
    list_alerts,
    resolve_alert,
)

router = APIRouter(prefix="/api/crisis-alerts", tags=["crisis-alerts"])


def _reviewer(review: Optional[AlertReviewRequest]) -> Optional[str]:
    return review.reviewer_id if review else None


@router.get("", response_model=List[CrisisAlertResponse])
async def get_crisis_alerts(
    alert_status: Optional[AlertStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """
    List crisis alerts, newest first.

    Args:
        alert_status: Only return alerts in this status
    """
    return await list_alerts(db, status=alert_status, limit=limit, offset=offset)


@router.get("/stats", response_model=AlertStatsResponse)
async def get_crisis_alert_stats(db: Session = Depends(get_db)):
    """Return dashboard summary counts."""
    return await alert_stats(db)


@router.post("/{alert_id}/acknowledge", response_model=CrisisAlertResponse)
async def acknowledge_crisis_alert(
    alert_id: str,
    review: Optional[AlertReviewRequest] = None,
    db: Session = Depends(get_db),
    notifier: AlertNotifier = Depends(get_alert_notifier),
):
    """Acknowledge a pending alert."""
    try:
        return await acknowledge_alert(
            db, alert_id, _reviewer(review), notifier=notifier
        )
    except AlertNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidAlertTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/{alert_id}/resolve", response_model=CrisisAlertResponse)
async def resolve_crisis_alert(
    alert_id: str,
    review: Optional[AlertReviewRequest] = None,
    db: Session = Depends(get_db),
    notifier: AlertNotifier = Depends(get_alert_notifier),
):
    """Resolve a pending or acknowledged alert."""
    try:
        return await resolve_alert(
            db, alert_id, _reviewer(review), notifier=notifier
        )
    except AlertNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidAlertTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
