"""
Tests for boundary coercion and snapshot loading.

Run with: python -m pytest tests/test_activity_store.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from wellness_analytics.core.exceptions import InvalidInputRecord
from wellness_analytics.schemas.records import (
    ActivityKind,
    CompletionState,
    EmotionTag,
    coerce_emotion_record,
    coerce_game_session_record,
    coerce_intensity,
    coerce_journal_record,
)
from wellness_analytics.services.activity_store import (
    ActivityStore,
    InMemoryActivityStore,
    build_snapshot,
    load_snapshot,
)
from wellness_analytics.utils.date_utils import EPOCH


# =============================================================================
# RECORD COERCION
# =============================================================================

class TestRecordCoercion:
    """Raw rows are repaired where possible, rejected otherwise."""

    def test_camel_case_emotion_row(self):
        record = coerce_emotion_record({
            "_id": "abc",
            "clerkId": "user_1",
            "emotion": "Anxiety",
            "intensity": "12",
            "createdAt": "2024-05-15T10:00:00Z",
            "context": "exam tomorrow",
        })

        assert record.record_id == "abc"
        assert record.user_key == "user_1"
        assert record.emotion_tag == EmotionTag.ANXIETY
        assert record.intensity == 10
        assert record.occurred_at == datetime(2024, 5, 15, 10, 0, tzinfo=timezone.utc)
        assert record.free_text_context == "exam tomorrow"

    @pytest.mark.parametrize("value,expected", [
        (None, 5),
        ("high", 5),
        (float("nan"), 5),
        ("inf", 5),
        (float("-inf"), 5),
        (True, 5),
        (0, 1),
        (-4, 1),
        (7.6, 8),
        ("3", 3),
    ])
    def test_intensity_repair(self, value, expected):
        assert coerce_intensity(value) == expected

    def test_unknown_emotion_is_rejected(self):
        with pytest.raises(InvalidInputRecord) as exc:
            coerce_emotion_record({"userKey": "u", "emotion": "ecstatic", "createdAt": "2024-05-15"})
        assert exc.value.kind == "emotion"

    def test_missing_timestamp_is_rejected(self):
        with pytest.raises(InvalidInputRecord):
            coerce_emotion_record({"userKey": "u", "emotion": "sad", "intensity": 4})

    def test_journal_defaults(self):
        record = coerce_journal_record({
            "userId": "u",
            "createdAt": "2024-05-15T08:00:00",
            "tags": "school",
            "emotionEntryId": 42,
        })

        assert record.content == ""
        assert record.tags == frozenset({"school"})
        assert record.linked_emotion_id == "42"
        assert record.occurred_at.tzinfo is not None

    def test_overlong_journal_is_truncated(self):
        record = coerce_journal_record({"userKey": "u", "createdAt": "2024-05-15", "content": "x" * 6000})
        assert len(record.content) == 5000

    def test_game_session_repairs(self):
        record = coerce_game_session_record({
            "clerkId": "u",
            "gameType": "tetris",
            "duration": -3,
            "completionStatus": "ABANDONED",
            "createdAt": "2024-05-15T09:00:00Z",
        })

        assert record.activity_kind == ActivityKind.OTHER
        assert record.duration_minutes == 0
        assert record.completion_state == CompletionState.ABANDONED

    def test_game_session_known_kind(self):
        record = coerce_game_session_record(
            {"clerkId": "u", "gameType": "boxbreathing", "createdAt": "2024-05-15T09:00:00Z"}
        )

        assert record.activity_kind == ActivityKind.BOX_BREATHING
        assert record.completion_state == CompletionState.COMPLETED


# =============================================================================
# SNAPSHOTS
# =============================================================================

class TestSnapshot:
    """Validated, chronologically ordered snapshots."""

    def test_invalid_rows_are_dropped_not_fatal(self, now):
        snapshot = build_snapshot(
            "u",
            EPOCH,
            emotions=[
                {"userKey": "u", "emotion": "sad", "intensity": 6, "createdAt": now.isoformat()},
                {"userKey": "u", "emotion": "???", "createdAt": now.isoformat()},
                {"userKey": "u", "emotion": "happy"},
                None,
                "not a row",
                {"userKey": "u", "emotion": "stress", "intensity": "inf", "createdAt": now.isoformat()},
            ],
            journals=[
                {"userKey": "u", "content": "hi", "tags": 5, "createdAt": now.isoformat()},
                42,
            ],
            game_sessions=[
                {"userKey": "u", "gameType": "breathing", "score": float("inf"), "createdAt": now.isoformat()},
            ],
        )

        assert len(snapshot.emotions) == 2
        assert snapshot.emotions[1].intensity == 5
        assert len(snapshot.journals) == 1
        assert snapshot.journals[0].tags == frozenset()
        assert snapshot.game_sessions[0].score is None
        assert snapshot.dropped == 5

    def test_window_and_ordering(self, now, make_emotion):
        snapshot = build_snapshot(
            "user_123",
            now - timedelta(days=7),
            emotions=[
                make_emotion(days_ago=1),
                make_emotion(days_ago=30),
                make_emotion(days_ago=3),
            ],
        )

        assert len(snapshot.emotions) == 2
        assert snapshot.emotions[0].occurred_at < snapshot.emotions[1].occurred_at

    def test_empty_snapshot(self, now):
        snapshot = build_snapshot("u", now)

        assert snapshot.is_empty
        assert snapshot.total_records == 0
        assert snapshot.timestamps() == []


class TestInMemoryStore:
    """The bundled store satisfies the protocol and filters by owner."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryActivityStore(), ActivityStore)

    @pytest.mark.asyncio
    async def test_load_snapshot_filters_by_user(self, now, make_emotion, make_journal, make_session):
        store = InMemoryActivityStore(
            emotions=[make_emotion(), make_emotion(user_key="someone_else")],
            journals=[make_journal(), {"clerkId": "user_123", "content": "hi", "createdAt": now.isoformat()}],
            game_sessions=[make_session(user_key="someone_else")],
        )

        snapshot = await load_snapshot(store, "user_123", now - timedelta(days=30))

        assert len(snapshot.emotions) == 1
        assert len(snapshot.journals) == 2
        assert snapshot.game_sessions == ()
        assert snapshot.total_records == 3
