"""Unit tests for crisis alert review operations."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from empathyconnect.services.crisis import (
    AlertNotFoundError,
    InvalidAlertTransitionError,
    acknowledge_alert,
    alert_stats,
    list_alerts,
    resolve_alert,
)
from empathyconnect.db.models import CrisisAlert
from empathyconnect.services.crisis.alert_store import check_transition, get_alert


class TestCheckTransition:
    """Tests for the review state machine."""

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "acknowledged"),
            ("pending", "resolved"),
            ("acknowledged", "resolved"),
        ],
    )
    def test_allowed(self, current, target):
        check_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("acknowledged", "acknowledged"),
            ("acknowledged", "pending"),
            ("resolved", "acknowledged"),
            ("resolved", "resolved"),
            ("resolved", "pending"),
            ("unknown", "resolved"),
        ],
    )
    def test_rejected(self, current, target):
        with pytest.raises(InvalidAlertTransitionError):
            check_transition(current, target)


class TestGetAlert:
    """Tests for alert lookup."""

    @pytest.mark.asyncio
    async def test_found(self, db_session, make_alert):
        alert = make_alert()

        assert (await get_alert(db_session, str(alert.id))).id == alert.id

    @pytest.mark.asyncio
    async def test_unknown_id(self, db_session):
        with pytest.raises(AlertNotFoundError):
            await get_alert(db_session, str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_malformed_id(self, db_session):
        with pytest.raises(AlertNotFoundError):
            await get_alert(db_session, "not-a-uuid")


class TestListAlerts:
    """Tests for alert listing."""

    @pytest.mark.asyncio
    async def test_newest_first(self, db_session, make_alert):
        now = datetime.now(timezone.utc)
        older = make_alert(created_at=now - timedelta(hours=1))
        newer = make_alert(created_at=now)

        alerts = await list_alerts(db_session)

        assert [a.id for a in alerts] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_status_filter_and_limit(self, db_session, make_alert):
        make_alert(status="pending")
        make_alert(status="pending")
        make_alert(status="resolved")

        assert len(await list_alerts(db_session, status="pending")) == 2
        assert len(await list_alerts(db_session, status="resolved")) == 1
        assert len(await list_alerts(db_session, limit=1)) == 1


class TestReviewOperations:
    """Tests for acknowledging and resolving alerts."""

    @pytest.mark.asyncio
    async def test_acknowledge_pending(self, db_session, make_alert):
        alert = make_alert()

        updated = await acknowledge_alert(db_session, str(alert.id), "therapist-1")

        assert updated.status == "acknowledged"
        assert updated.acknowledged_by == "therapist-1"
        assert updated.acknowledged_at is not None

    @pytest.mark.asyncio
    async def test_resolve_pending(self, db_session, make_alert):
        """Test acknowledgement is optional before resolution."""
        alert = make_alert()

        updated = await resolve_alert(db_session, str(alert.id), "therapist-1")

        assert updated.status == "resolved"
        assert updated.resolved_by == "therapist-1"
        assert updated.acknowledged_at is None

    @pytest.mark.asyncio
    async def test_resolve_acknowledged(self, db_session, make_alert):
        alert = make_alert()
        await acknowledge_alert(db_session, str(alert.id))

        updated = await resolve_alert(db_session, str(alert.id))

        assert updated.status == "resolved"
        assert updated.acknowledged_at is not None

    @pytest.mark.asyncio
    async def test_acknowledge_twice_rejected(self, db_session, make_alert):
        alert = make_alert()
        await acknowledge_alert(db_session, str(alert.id))

        with pytest.raises(InvalidAlertTransitionError):
            await acknowledge_alert(db_session, str(alert.id))

    @pytest.mark.asyncio
    async def test_resolved_is_terminal(self, db_session, make_alert):
        alert = make_alert()
        await resolve_alert(db_session, str(alert.id))

        with pytest.raises(InvalidAlertTransitionError):
            await acknowledge_alert(db_session, str(alert.id))
        with pytest.raises(InvalidAlertTransitionError):
            await resolve_alert(db_session, str(alert.id))

    @pytest.mark.asyncio
    async def test_unknown_alert(self, db_session):
        with pytest.raises(AlertNotFoundError):
            await resolve_alert(db_session, str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_malformed_id(self, db_session):
        with pytest.raises(AlertNotFoundError):
            await acknowledge_alert(db_session, "not-a-uuid")

    @pytest.mark.asyncio
    async def test_change_by_another_reviewer_wins(
        self, db_session, session_factory, make_alert
    ):
        """Test a status read before another reviewer resolved it is not trusted."""
        alert = make_alert()
        assert alert.status == "pending"

        other = session_factory()
        other.query(CrisisAlert).filter(CrisisAlert.id == alert.id).update(
            {"status": "resolved", "resolved_by": "therapist-2"}
        )
        other.commit()
        other.close()

        with pytest.raises(InvalidAlertTransitionError):
            await acknowledge_alert(db_session, str(alert.id), "therapist-1")

        stored = await get_alert(db_session, str(alert.id))
        assert stored.status == "resolved"
        assert stored.acknowledged_by is None


class TestReviewNotifications:
    """Tests for publishing review updates."""

    @pytest.fixture
    def notifier(self):
        notifier = MagicMock()
        notifier.publish = AsyncMock(return_value=1)
        return notifier

    @pytest.mark.asyncio
    async def test_acknowledge_publishes_snapshot(
        self, db_session, make_alert, notifier
    ):
        alert = make_alert()

        await acknowledge_alert(
            db_session, str(alert.id), "therapist-1", notifier=notifier
        )

        notifier.publish.assert_awaited_once()
        published = notifier.publish.await_args.args[0]
        assert published["id"] == str(alert.id)
        assert published["status"] == "acknowledged"

    @pytest.mark.asyncio
    async def test_rejected_transition_publishes_nothing(
        self, db_session, make_alert, notifier
    ):
        alert = make_alert(status="resolved")

        with pytest.raises(InvalidAlertTransitionError):
            await resolve_alert(db_session, str(alert.id), notifier=notifier)

        notifier.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_review(self, db_session, make_alert, notifier):
        notifier.publish.side_effect = ConnectionError("redis down")
        alert = make_alert()

        updated = await resolve_alert(db_session, str(alert.id), notifier=notifier)

        assert updated.status == "resolved"


class TestAlertStats:
    """Tests for dashboard counts."""

    @pytest.mark.asyncio
    async def test_counts(self, db_session, make_alert):
        now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
        make_alert(status="pending", risk_level="high")
        make_alert(status="pending", risk_level="medium")
        make_alert(status="acknowledged", risk_level="high")
        make_alert(status="resolved", resolved_at=now - timedelta(hours=2))
        make_alert(status="resolved", resolved_at=now - timedelta(days=1))

        stats = await alert_stats(db_session, now=now)

        assert stats == {
            "pending": 2,
            "high_risk": 1,
            "acknowledged": 1,
            "resolved_today": 1,
        }

    @pytest.mark.asyncio
    async def test_empty(self, db_session):
        stats = await alert_stats(db_session)

        assert stats == {
            "pending": 0,
            "high_risk": 0,
            "acknowledged": 0,
            "resolved_today": 0,
        }

    @pytest.mark.asyncio
    async def test_resolved_today_uses_utc_day(self, db_session, make_alert):
        now = datetime(2026, 3, 10, 0, 30, tzinfo=timezone.utc)
        make_alert(status="resolved", resolved_at=now - timedelta(minutes=20))
        make_alert(status="resolved", resolved_at=now - timedelta(minutes=40))
        make_alert(status="resolved", resolved_at=now + timedelta(hours=23))

        stats = await alert_stats(db_session, now=now)

        assert stats["resolved_today"] == 2

    @pytest.mark.asyncio
    async def test_offset_now_converted_to_utc(self, db_session, make_alert):
        # 01:00 on the 11th at +05:00 is still the 10th in UTC
        now = datetime(2026, 3, 11, 1, 0, tzinfo=timezone(timedelta(hours=5)))
        make_alert(
            status="resolved",
            resolved_at=datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc),
        )

        stats = await alert_stats(db_session, now=now)

        assert stats["resolved_today"] == 1
