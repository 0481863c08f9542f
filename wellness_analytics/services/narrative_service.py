"""
AI narrative generator collaborator.

The orchestrator only depends on :class:`NarrativeGenerator`; the Gemini
implementation below talks to the Generative Language REST API with httpx.
Any other model can be plugged in by implementing ``generate_narrative``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union, runtime_checkable

import httpx

from wellness_analytics.core.config import Settings
from wellness_analytics.core.exceptions import (
    MalformedNarrativeResponse,
    NarrativeError,
    NarrativeTimeout,
)
from wellness_analytics.schemas.analytics import AnalyticsSignals, InsightRequest
from wellness_analytics.services.activity_store import ActivitySnapshot
from wellness_analytics.utils.text_cleaning import excerpt, redact_pii

logger = logging.getLogger(__name__)

NarrativeOutput = Union[str, Mapping[str, Any]]

INSIGHT_FIELDS_TEMPLATE = {
    "summary": "Clinical overview of the user's mental health journey",
    "insights": ["clinical insight 1", "clinical insight 2", "clinical insight 3"],
    "recommendations": ["evidence-based recommendation 1", "evidence-based recommendation 2"],
    "resources": ["clinical resource 1", "clinical resource 2"],
    "moodTrend": "Clinical assessment of mood trends",
    "patterns": ["clinical pattern 1", "clinical pattern 2"],
    "clinicalAssessment": "Comprehensive clinical evaluation",
    "evidenceBasedInterventions": ["CBT", "DBT", "Mindfulness"],
    "healthcareOutcomes": "Measurable impact on mental health outcomes",
    "riskFactors": "Clinical risk assessment and safety considerations",
}


@runtime_checkable
class NarrativeGenerator(Protocol):
    async def generate_narrative(self, prompt: str, timeout_seconds: float) -> NarrativeOutput:
        """Return insight JSON (as text or an already-parsed mapping) or raise."""
        ...


# =============================================================================
# PROMPT
# =============================================================================

def build_prompt_payload(
    request: InsightRequest,
    snapshot: ActivitySnapshot,
    signals: AnalyticsSignals,
    *,
    max_records: int = 50,
) -> Dict[str, Any]:
    """Sanitized structured payload embedded in the prompt.

    Journal text is PII-redacted and truncated; only the most recent
    ``max_records`` of each kind are included.
    """
    emotions = snapshot.emotions[-max_records:]
    journals = snapshot.journals[-max_records:]
    sessions = snapshot.game_sessions[-max_records:]
    return {
        "timeframe": request.timeframe,
        "focus": request.focus or "all",
        "counts": {
            "emotions": len(snapshot.emotions),
            "journals": len(snapshot.journals),
            "gameSessions": len(snapshot.game_sessions),
        },
        "emotions": [
            {
                "emotion": e.emotion_tag.value,
                "intensity": e.intensity,
                "context": redact_pii(excerpt(e.free_text_context)) or None,
                "occurredAt": e.occurred_at.isoformat(timespec="seconds"),
            }
            for e in emotions
        ],
        "journals": [
            {
                "excerpt": redact_pii(excerpt(j.content)),
                "mood": j.mood_tag,
                "tags": sorted(j.tags),
                "occurredAt": j.occurred_at.isoformat(timespec="seconds"),
            }
            for j in journals
        ],
        "gameSessions": [
            {
                "activity": g.activity_kind.value,
                "durationMinutes": g.duration_minutes,
                "completion": g.completion_state.value,
                "emotionBefore": g.emotion_before.value if g.emotion_before else None,
                "emotionAfter": g.emotion_after.value if g.emotion_after else None,
                "occurredAt": g.occurred_at.isoformat(timespec="seconds"),
            }
            for g in sessions
        ],
        "signals": signals.model_dump(by_alias=True),
    }


def build_insight_prompt(
    request: InsightRequest,
    snapshot: ActivitySnapshot,
    signals: AnalyticsSignals,
    *,
    max_records: int = 50,
) -> str:
    payload = build_prompt_payload(request, snapshot, signals, max_records=max_records)
    return (
        "You are a clinical mental health assistant. Analyze this user's wellness data "
        "using evidence-based practice (CBT, DBT, mindfulness-based interventions).\n\n"
        f"Timeframe: {payload['timeframe']}\n"
        f"Focus: {payload['focus']}\n\n"
        "The 'signals' block holds deterministic findings (streak, mood stability, "
        "rule-based risk indicators, interventions used). Stay consistent with them.\n\n"
        f"DATA:\n{json.dumps(payload, ensure_ascii=False, indent=2)}\n\n"
        "Respond with JSON only, using exactly these keys:\n"
        f"{json.dumps(INSIGHT_FIELDS_TEMPLATE, indent=2)}\n"
    )


# =============================================================================
# GEMINI
# =============================================================================

class GeminiNarrativeGenerator:
    """Gemini ``generateContent`` over HTTP."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-pro",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    @staticmethod
    def _response_text(data: Any) -> str:
        if not isinstance(data, dict):
            raise MalformedNarrativeResponse("Gemini response is not a JSON object")
        candidates = data.get("candidates") or []
        if not candidates:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            raise MalformedNarrativeResponse(f"Gemini returned no candidates (blockReason={reason})")
        parts: List[Dict[str, Any]] = ((candidates[0] or {}).get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise MalformedNarrativeResponse("Gemini candidate has no text")
        return text

    async def generate_narrative(self, prompt: str, timeout_seconds: float) -> str:
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.4},
        }
        try:
            async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    json=body,
                    headers={
                        "Content-Type": "application/json",
                        "x-goog-api-key": self.api_key,
                    },
                )
        except httpx.TimeoutException as e:
            raise NarrativeTimeout(f"Gemini request timed out after {timeout_seconds}s") from e
        except httpx.HTTPError as e:
            raise NarrativeError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            raise NarrativeError(f"Gemini API returned {response.status_code}: {response.text[:200]}")
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedNarrativeResponse("Gemini response body is not JSON") from e
        return self._response_text(data)


def build_narrative_generator(settings: Settings) -> Optional[NarrativeGenerator]:
    """Return the configured generator, or None when AI insights are not configured."""
    if not settings.ai_enabled:
        logger.info("AI narrative generator not configured; insights will use the fallback path")
        return None
    return GeminiNarrativeGenerator(
        settings.GEMINI_API_KEY or "",
        model=settings.GEMINI_MODEL,
        api_base=settings.GEMINI_API_BASE,
    )
