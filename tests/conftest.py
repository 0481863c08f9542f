"""Shared fixtures: a frozen clock, record factories and fake narrative generators."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from wellness_analytics.core.exceptions import NarrativeError
from wellness_analytics.schemas.records import (
    ActivityKind,
    CompletionState,
    EmotionRecord,
    EmotionTag,
    GameSessionRecord,
    JournalRecord,
)

USER = "user_123"

# Wednesday 2024-05-15, 12:00 UTC
FROZEN_NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FROZEN_NOW


@pytest.fixture
def clock():
    return lambda: FROZEN_NOW


@pytest.fixture
def make_emotion():
    def _make(tag="happy", intensity=5, days_ago=0, user_key=USER, context=None, **kw):
        return EmotionRecord(
            user_key=user_key,
            emotion_tag=EmotionTag(tag),
            intensity=intensity,
            occurred_at=FROZEN_NOW - timedelta(days=days_ago, **kw),
            free_text_context=context,
        )
    return _make


@pytest.fixture
def make_journal():
    def _make(content="Today was fine.", days_ago=0, user_key=USER, mood=None, tags=()):
        return JournalRecord(
            user_key=user_key,
            content=content,
            mood_tag=mood,
            tags=frozenset(tags),
            occurred_at=FROZEN_NOW - timedelta(days=days_ago),
        )
    return _make


@pytest.fixture
def make_session():
    def _make(kind="breathing", days_ago=0, user_key=USER, duration=5, state="completed", **kw):
        return GameSessionRecord(
            user_key=user_key,
            activity_kind=ActivityKind(kind),
            duration_minutes=duration,
            completion_state=CompletionState(state),
            occurred_at=FROZEN_NOW - timedelta(days=days_ago),
            **kw,
        )
    return _make


# =============================================================================
# FAKE NARRATIVE GENERATORS
# =============================================================================

AI_INSIGHT = {
    "summary": "You have been consistent this week.",
    "insights": ["Anxiety peaks mid-week"],
    "recommendations": ["Try box breathing before exams"],
    "resources": ["Campus counseling center"],
    "moodTrend": "Gradually improving",
    "patterns": ["Evening journaling"],
    "clinicalAssessment": "Mild, situational anxiety",
    "evidenceBasedInterventions": ["CBT"],
    "healthcareOutcomes": "Better self-awareness",
    "riskFactors": "Low",
}


class FakeGenerator:
    """Returns a fixed response and records the prompts it was given."""

    def __init__(self, response=None):
        self.response = AI_INSIGHT if response is None else response
        self.prompts = []

    async def generate_narrative(self, prompt, timeout_seconds):
        self.prompts.append(prompt)
        return self.response


class RaisingGenerator:
    def __init__(self, exc=None):
        self.exc = exc or NarrativeError("upstream 500")

    async def generate_narrative(self, prompt, timeout_seconds):
        raise self.exc


class SlowGenerator:
    def __init__(self, delay=5.0):
        self.delay = delay
        self.cancelled = False

    async def generate_narrative(self, prompt, timeout_seconds):
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return AI_INSIGHT


@pytest.fixture
def ok_generator():
    return FakeGenerator()


@pytest.fixture
def prose_generator():
    return FakeGenerator(
        "Here is the analysis you asked for:\n```json\n" + json.dumps(AI_INSIGHT) + "\n```\nTake care!"
    )


@pytest.fixture
def garbage_generator():
    return FakeGenerator("I'm sorry, I can't help with that.")


@pytest.fixture
def raising_generator():
    return RaisingGenerator()


@pytest.fixture
def slow_generator():
    return SlowGenerator()


@pytest.fixture
def ai_insight():
    return dict(AI_INSIGHT)


@pytest.fixture
def make_generator():
    return FakeGenerator
