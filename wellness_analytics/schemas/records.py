"""Activity records consumed by the analytics engine.

Records are immutable pydantic models. Raw rows coming from the activity
store (dicts with either snake_case or the mobile client's camelCase keys)
are repaired and validated once here, at the boundary, so the analytics
services only ever see well-typed values.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, FrozenSet, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from wellness_analytics.core.exceptions import InvalidInputRecord
from wellness_analytics.utils.date_utils import ensure_aware, safe_parse_datetime

logger = logging.getLogger(__name__)

NEUTRAL_INTENSITY = 5
MIN_INTENSITY = 1
MAX_INTENSITY = 10
JOURNAL_MAX_LENGTH = 5000
MAX_SESSION_MINUTES = 480


class EmotionTag(str, PyEnum):
    HAPPY = "happy"
    SAD = "sad"
    LONELINESS = "loneliness"
    ANXIETY = "anxiety"
    FRUSTRATION = "frustration"
    STRESS = "stress"
    LETHARGY = "lethargy"
    FEAR = "fear"
    GRIEF = "grief"


# Only "happy" is positively valenced; every other tag measures distress.
POSITIVE_TAGS = frozenset({EmotionTag.HAPPY})


class ActivityKind(str, PyEnum):
    MINDFULNESS = "mindfulness"
    BREATHING = "breathing"
    MEDITATION = "meditation"
    GRATITUDE = "gratitude"
    MOOD_TRACKER = "mood_tracker"
    BOX_BREATHING = "boxbreathing"
    COLOR_BLOOM = "colorbloom"
    MEMORY_LANTERN = "memorylantern"
    RHYTHM_GROW = "rythmgrow"
    OTHER = "other"


class CompletionState(str, PyEnum):
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    ABANDONED = "abandoned"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_key: str = Field(min_length=1)
    occurred_at: datetime

    @field_validator("occurred_at")
    @classmethod
    def occurred_at_aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class EmotionRecord(_Record):
    record_id: Optional[str] = None
    emotion_tag: EmotionTag
    intensity: int = Field(default=NEUTRAL_INTENSITY, ge=MIN_INTENSITY, le=MAX_INTENSITY)
    free_text_context: Optional[str] = None

    @property
    def distress(self) -> int:
        """Intensity on a lower-is-better scale (happy intensity is inverted)."""
        if self.emotion_tag in POSITIVE_TAGS:
            return MAX_INTENSITY + MIN_INTENSITY - self.intensity
        return self.intensity


class JournalRecord(_Record):
    record_id: Optional[str] = None
    content: str = Field(default="", max_length=JOURNAL_MAX_LENGTH)
    mood_tag: Optional[str] = None
    tags: FrozenSet[str] = Field(default_factory=frozenset)
    # Non-owning reference to an EmotionRecord.record_id, used for correlation only.
    linked_emotion_id: Optional[str] = None


class GameSessionRecord(_Record):
    record_id: Optional[str] = None
    activity_kind: ActivityKind
    duration_minutes: float = Field(default=0, ge=0, le=MAX_SESSION_MINUTES)
    completion_state: CompletionState = CompletionState.COMPLETED
    emotion_before: Optional[EmotionTag] = None
    emotion_after: Optional[EmotionTag] = None
    score: Optional[int] = Field(default=None, ge=0, le=100)


# =============================================================================
# BOUNDARY COERCION
# =============================================================================

def _require_mapping(raw: Any, kind: str) -> None:
    if not isinstance(raw, Mapping):
        raise InvalidInputRecord(kind, f"expected a mapping, got {type(raw).__name__}")


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return None


def _timestamp(raw: Mapping[str, Any], kind: str) -> datetime:
    dt = safe_parse_datetime(_pick(raw, "occurred_at", "occurredAt", "created_at", "createdAt"))
    if dt is None:
        raise InvalidInputRecord(kind, "missing or unparsable timestamp")
    return dt


def _user_key(raw: Mapping[str, Any], kind: str) -> str:
    key = _pick(raw, "user_key", "userKey", "clerkId", "user_id", "userId")
    if key is None or str(key).strip() == "":
        raise InvalidInputRecord(kind, "missing user key")
    return str(key)


def _record_id(raw: Mapping[str, Any]) -> Optional[str]:
    rid = _pick(raw, "record_id", "id", "_id")
    return str(rid) if rid is not None else None


def _emotion_tag(value: Any) -> Optional[EmotionTag]:
    if value is None:
        return None
    try:
        return EmotionTag(str(value).strip().lower())
    except ValueError:
        return None


def coerce_intensity(value: Any) -> int:
    """Missing or non-numeric intensity becomes the neutral midpoint; others are clamped to 1..10."""
    if value is None or isinstance(value, bool):
        return NEUTRAL_INTENSITY
    try:
        number = float(value)
    except (TypeError, ValueError):
        return NEUTRAL_INTENSITY
    if not math.isfinite(number):
        return NEUTRAL_INTENSITY
    return int(max(MIN_INTENSITY, min(MAX_INTENSITY, round(number))))


def coerce_emotion_record(raw: Union[EmotionRecord, Mapping[str, Any]]) -> EmotionRecord:
    if isinstance(raw, EmotionRecord):
        return raw
    _require_mapping(raw, "emotion")
    tag_value = _pick(raw, "emotion_tag", "emotionTag", "emotion")
    tag = _emotion_tag(tag_value)
    if tag is None:
        raise InvalidInputRecord("emotion", f"unknown emotion tag {tag_value!r}")
    try:
        return EmotionRecord(
            user_key=_user_key(raw, "emotion"),
            record_id=_record_id(raw),
            emotion_tag=tag,
            intensity=coerce_intensity(_pick(raw, "intensity")),
            occurred_at=_timestamp(raw, "emotion"),
            free_text_context=_pick(raw, "free_text_context", "freeTextContext", "context"),
        )
    except ValidationError as e:
        raise InvalidInputRecord("emotion", str(e)) from e


def coerce_journal_record(raw: Union[JournalRecord, Mapping[str, Any]]) -> JournalRecord:
    if isinstance(raw, JournalRecord):
        return raw
    _require_mapping(raw, "journal")
    content = _pick(raw, "content")
    content = str(content) if content is not None else ""
    if len(content) > JOURNAL_MAX_LENGTH:
        content = content[:JOURNAL_MAX_LENGTH]
    tags = _pick(raw, "tags") or []
    if isinstance(tags, str):
        tags = [tags]
    elif not isinstance(tags, (list, tuple, set, frozenset)):
        tags = []
    mood = _pick(raw, "mood_tag", "moodTag", "mood")
    linked = _pick(raw, "linked_emotion_id", "linkedEmotionId", "emotionEntryId")
    try:
        return JournalRecord(
            user_key=_user_key(raw, "journal"),
            record_id=_record_id(raw),
            content=content,
            mood_tag=str(mood) if mood is not None else None,
            tags=frozenset(str(t).strip() for t in tags if str(t).strip()),
            occurred_at=_timestamp(raw, "journal"),
            linked_emotion_id=str(linked) if linked is not None else None,
        )
    except ValidationError as e:
        raise InvalidInputRecord("journal", str(e)) from e


def coerce_game_session_record(raw: Union[GameSessionRecord, Mapping[str, Any]]) -> GameSessionRecord:
    if isinstance(raw, GameSessionRecord):
        return raw
    _require_mapping(raw, "game session")
    kind_value = _pick(raw, "activity_kind", "activityKind", "gameType")
    try:
        kind = ActivityKind(str(kind_value).strip().lower()) if kind_value is not None else ActivityKind.OTHER
    except ValueError:
        logger.warning(f"Unknown activity kind {kind_value!r}; recording as 'other'")
        kind = ActivityKind.OTHER

    duration_value = _pick(raw, "duration_minutes", "durationMinutes", "duration")
    try:
        duration = float(duration_value) if duration_value is not None else 0.0
    except (TypeError, ValueError):
        duration = 0.0
    duration = max(0.0, min(float(MAX_SESSION_MINUTES), duration))

    state_value = _pick(raw, "completion_state", "completionState", "completionStatus")
    try:
        state = CompletionState(str(state_value).lower()) if state_value is not None else CompletionState.COMPLETED
    except ValueError:
        state = CompletionState.COMPLETED

    score = _pick(raw, "score")
    try:
        score = int(score) if score is not None else None
    except (TypeError, ValueError, OverflowError):
        score = None
    if score is not None and not 0 <= score <= 100:
        score = None

    try:
        return GameSessionRecord(
            user_key=_user_key(raw, "game session"),
            record_id=_record_id(raw),
            activity_kind=kind,
            duration_minutes=duration,
            completion_state=state,
            emotion_before=_emotion_tag(_pick(raw, "emotion_before", "emotionBefore")),
            emotion_after=_emotion_tag(_pick(raw, "emotion_after", "emotionAfter")),
            occurred_at=_timestamp(raw, "game session"),
            score=score,
        )
    except ValidationError as e:
        raise InvalidInputRecord("game session", str(e)) from e
