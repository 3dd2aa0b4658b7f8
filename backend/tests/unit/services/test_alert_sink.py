"""Unit tests for the crisis alert sink."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from empathyconnect.db.models import CrisisAlert
from empathyconnect.services.crisis import (
    ALERT_CHANNEL,
    AlertNotifier,
    CrisisAlertSink,
    pseudo_user_id,
    schedule_alert,
)
from empathyconnect.services.crisis.alert_sink import _background_tasks
from empathyconnect.services.emotion import classify


@pytest.fixture
def notifier():
    mock_notifier = MagicMock(spec=AlertNotifier)
    mock_notifier.publish = AsyncMock(return_value=1)
    return mock_notifier


@pytest.fixture
def sink(session_factory, notifier):
    return CrisisAlertSink(session_factory=session_factory, notifier=notifier)


class TestPseudoUserId:
    """Tests for the therapist-facing session handle."""

    def test_uses_first_four_characters(self):
        assert pseudo_user_id("abcd1234") == "User_ABCD"

    def test_short_session_id(self):
        assert pseudo_user_id("ab") == "User_AB"


class TestRecordAlert:
    """Tests for CrisisAlertSink.record_alert."""

    @pytest.mark.asyncio
    async def test_records_high_risk_alert(self, sink, db_session, notifier):
        """Test a high risk message is stored pending and published."""
        await sink.record_alert(
            session_id="abcd1234",
            user_id="user-1",
            risk_level="high",
            primary_feeling="kill myself",
            message_text="I want to kill myself",
        )

        alert = db_session.query(CrisisAlert).one()
        assert alert.session_id == "abcd1234"
        assert alert.user_id == "user-1"
        assert alert.pseudo_user_id == "User_ABCD"
        assert alert.risk_level == "high"
        assert alert.primary_feeling == "kill myself"
        assert alert.message_preview == "I want to kill myself"
        assert alert.status == "pending"

        notifier.publish.assert_awaited_once()
        published = notifier.publish.call_args[0][0]
        assert published["id"] == str(alert.id)
        assert published["risk_level"] == "high"

    @pytest.mark.asyncio
    async def test_low_risk_is_skipped(self, sink, db_session, notifier):
        """Test low risk messages never create an alert."""
        await sink.record_alert(
            session_id="abcd1234",
            user_id=None,
            risk_level="low",
            primary_feeling="sad",
            message_text="I'm sad",
        )

        assert db_session.query(CrisisAlert).count() == 0
        notifier.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_preview_is_truncated(self, sink, db_session):
        """Test the stored preview is limited to 200 characters."""
        message = "hopeless " * 50

        await sink.record_alert(
            session_id="s1",
            user_id=None,
            risk_level="medium",
            primary_feeling="hopeless",
            message_text=message,
        )

        alert = db_session.query(CrisisAlert).one()
        assert alert.message_preview == message[:200]

    @pytest.mark.asyncio
    async def test_insert_failure_is_swallowed(self, notifier):
        """Test a storage failure is logged and never raised."""
        broken_session = MagicMock()
        broken_session.commit.side_effect = RuntimeError("database is down")
        sink = CrisisAlertSink(session_factory=lambda: broken_session, notifier=notifier)

        await sink.record_alert(
            session_id="s1",
            user_id=None,
            risk_level="high",
            primary_feeling="suicide",
            message_text="suicide",
        )

        broken_session.rollback.assert_called_once()
        broken_session.close.assert_called_once()
        notifier.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_is_swallowed(self, sink, db_session, notifier):
        """Test a Redis failure does not undo or break the insert."""
        notifier.publish.side_effect = ConnectionError("redis unavailable")

        await sink.record_alert(
            session_id="s1",
            user_id=None,
            risk_level="medium",
            primary_feeling="burden",
            message_text="I'm a burden",
        )

        assert db_session.query(CrisisAlert).count() == 1

    @pytest.mark.asyncio
    async def test_without_notifier(self, session_factory, db_session):
        """Test alerts are stored when no notifier is configured."""
        sink = CrisisAlertSink(session_factory=session_factory)

        await sink.record_alert(
            session_id="s1",
            user_id=None,
            risk_level="medium",
            primary_feeling="burden",
            message_text="I'm a burden",
        )

        assert db_session.query(CrisisAlert).count() == 1


class TestScheduleAlert:
    """Tests for detached alert recording."""

    @pytest.mark.asyncio
    async def test_crisis_scenario_reaches_sink(self, sink, db_session):
        """Test a severe message flows from classification into a stored alert."""
        message = "I feel like there's no reason to continue anymore"
        analysis = classify(message)

        task = schedule_alert(
            sink,
            session_id="abcd1234",
            user_id=None,
            risk_level=analysis.risk_level,
            primary_feeling=analysis.primary_feeling,
            message_text=message,
        )
        assert task in _background_tasks
        await task

        alert = db_session.query(CrisisAlert).one()
        assert alert.risk_level == "high"
        assert alert.message_preview == message[:200]
        assert task not in _background_tasks

    @pytest.mark.asyncio
    async def test_does_not_block_caller(self):
        """Test scheduling returns before the sink finishes."""
        release = asyncio.Event()
        sink = MagicMock()

        async def slow_record_alert(**fields):
            await release.wait()

        sink.record_alert = slow_record_alert

        task = schedule_alert(sink, session_id="s1")
        assert not task.done()

        release.set()
        await task


class TestAlertNotifier:
    """Tests for Redis fan-out of new alerts."""

    @pytest.mark.asyncio
    async def test_publish_sends_json_to_channel(self):
        redis_client = MagicMock()
        redis_client.publish = AsyncMock(return_value=2)
        notifier = AlertNotifier(redis_factory=AsyncMock(return_value=redis_client))
        alert = {"id": "a1", "risk_level": "high"}

        receivers = await notifier.publish(alert)

        assert receivers == 2
        channel, payload = redis_client.publish.call_args[0]
        assert channel == ALERT_CHANNEL
        assert json.loads(payload) == alert
