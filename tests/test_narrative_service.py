"""
Tests for the prompt builder and the Gemini narrative generator.

HTTP is served by httpx.MockTransport; nothing touches the network.

Run with: python -m pytest tests/test_narrative_service.py -v
"""

import json

import httpx
import pytest

from wellness_analytics.core.config import Settings
from wellness_analytics.core.exceptions import (
    MalformedNarrativeResponse,
    NarrativeError,
    NarrativeTimeout,
)
from wellness_analytics.schemas.analytics import AnalyticsSignals, InsightRequest
from wellness_analytics.services.activity_store import build_snapshot
from wellness_analytics.services.intervention_service import InterventionMapper
from wellness_analytics.services.narrative_service import (
    GeminiNarrativeGenerator,
    build_insight_prompt,
    build_narrative_generator,
    build_prompt_payload,
)
from wellness_analytics.services.risk_service import RiskClassifier
from wellness_analytics.services.stability_service import StabilityScorer
from wellness_analytics.services.streak_service import StreakTracker
from wellness_analytics.utils.date_utils import EPOCH


def _signals(snapshot, now):
    return AnalyticsSignals(
        streak=StreakTracker.compute(snapshot.timestamps(), now),
        stability=StabilityScorer.score_records(snapshot.emotions),
        risk=RiskClassifier.classify(snapshot.emotions, snapshot.journals),
        interventions=InterventionMapper.map_interventions(snapshot.game_sessions, snapshot.journals),
    )


def _gemini_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


# =============================================================================
# PROMPT
# =============================================================================

class TestPromptBuilder:
    """Structured, sanitized prompt payload."""

    def test_payload_embeds_records_and_signals(self, now, make_emotion, make_journal, make_session):
        snapshot = build_snapshot(
            "user_123",
            EPOCH,
            emotions=[make_emotion("anxiety", 9)],
            journals=[make_journal("Talked to Maria Santos at maria@example.com")],
            game_sessions=[make_session("colorbloom")],
        )
        payload = build_prompt_payload(InsightRequest(user_key="user_123"), snapshot, _signals(snapshot, now))

        assert payload["timeframe"] == "month"
        assert payload["counts"] == {"emotions": 1, "journals": 1, "gameSessions": 1}
        assert payload["signals"]["risk"]["level"] == "medium"
        assert "currentStreakDays" in payload["signals"]["streak"]
        excerpt_text = payload["journals"][0]["excerpt"]
        assert "maria@example.com" not in excerpt_text
        assert "Maria Santos" not in excerpt_text

    def test_most_recent_records_only(self, now, make_emotion):
        emotions = [make_emotion("sad", i % 10 + 1, days_ago=i) for i in range(20)]
        snapshot = build_snapshot("user_123", EPOCH, emotions=emotions)
        payload = build_prompt_payload(
            InsightRequest(user_key="user_123"), snapshot, _signals(snapshot, now), max_records=5
        )

        assert len(payload["emotions"]) == 5
        assert payload["emotions"][-1]["occurredAt"] == now.isoformat(timespec="seconds")
        assert payload["counts"]["emotions"] == 20

    def test_prompt_lists_every_insight_key(self, now):
        snapshot = build_snapshot("user_123", EPOCH)
        prompt = build_insight_prompt(InsightRequest(user_key="user_123", timeframe="week"), snapshot, _signals(snapshot, now))

        for key in ("summary", "moodTrend", "clinicalAssessment", "evidenceBasedInterventions", "riskFactors"):
            assert f'"{key}"' in prompt
        assert "Timeframe: week" in prompt


# =============================================================================
# GEMINI HTTP GENERATOR
# =============================================================================

class TestGeminiGenerator:
    """Request shape and error mapping."""

    @pytest.mark.asyncio
    async def test_successful_call(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_gemini_body('{"summary": "ok"}'))

        generator = GeminiNarrativeGenerator("secret", transport=httpx.MockTransport(handler))
        text = await generator.generate_narrative("hello", 5.0)

        assert text == '{"summary": "ok"}'
        assert seen["url"].endswith("/v1beta/models/gemini-pro:generateContent")
        assert seen["key"] == "secret"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "hello"

    @pytest.mark.asyncio
    async def test_multiple_parts_are_joined(self):
        body = {"candidates": [{"content": {"parts": [{"text": '{"summary": '}, {"text": '"ok"}'}]}}]}
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))

        text = await GeminiNarrativeGenerator("k", transport=transport).generate_narrative("p", 5.0)
        assert text == '{"summary": "ok"}'

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(NarrativeError):
            await GeminiNarrativeGenerator("k", transport=transport).generate_narrative("p", 5.0)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        generator = GeminiNarrativeGenerator("k", transport=httpx.MockTransport(handler))
        with pytest.raises(NarrativeTimeout):
            await generator.generate_narrative("p", 0.1)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        generator = GeminiNarrativeGenerator("k", transport=httpx.MockTransport(handler))
        with pytest.raises(NarrativeError):
            await generator.generate_narrative("p", 1.0)

    @pytest.mark.asyncio
    async def test_blocked_prompt_is_malformed(self):
        body = {"promptFeedback": {"blockReason": "SAFETY"}}
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))

        with pytest.raises(MalformedNarrativeResponse):
            await GeminiNarrativeGenerator("k", transport=transport).generate_narrative("p", 5.0)

    @pytest.mark.asyncio
    async def test_non_json_body_is_malformed(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(MalformedNarrativeResponse):
            await GeminiNarrativeGenerator("k", transport=transport).generate_narrative("p", 5.0)


class TestGeneratorFactory:
    """Generator is only built when AI is configured."""

    def test_placeholder_key_means_no_generator(self):
        assert build_narrative_generator(Settings(GEMINI_API_KEY="test-key")) is None

    def test_feature_flag_off_means_no_generator(self):
        settings = Settings(GEMINI_API_KEY="real-key", INSIGHTS_FEATURE_ENABLED=False)
        assert build_narrative_generator(settings) is None

    def test_configured_generator(self):
        settings = Settings(GEMINI_API_KEY="real-key", GEMINI_MODEL="gemini-1.5-flash")
        generator = build_narrative_generator(settings)

        assert isinstance(generator, GeminiNarrativeGenerator)
        assert generator.endpoint.endswith("/models/gemini-1.5-flash:generateContent")
