"""
Insight Orchestrator
====================

Two terminal paths, one output schema:

* AI path: prompt the narrative generator (bounded by a timeout), parse the
  JSON it returns (prose around the object is tolerated) and fill any missing
  field with a placeholder.
* Fallback path: when the generator is absent, times out, raises or answers
  with something unparsable. Built from template text plus the already
  computed signals, so degraded output still reflects the user's real data.

Both paths return a fully populated :class:`InsightResult`. Caller
cancellation is never swallowed.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic.alias_generators import to_camel

from wellness_analytics.core.exceptions import (
    MalformedNarrativeResponse,
    NarrativeTimeout,
    NarrativeUnavailable,
)
from wellness_analytics.schemas.analytics import AnalyticsSignals, InsightRequest, InsightResult
from wellness_analytics.services.activity_store import ActivitySnapshot
from wellness_analytics.services.clinical_metrics_service import ClinicalMetricsService
from wellness_analytics.services.intervention_service import NO_INTERVENTIONS
from wellness_analytics.services.narrative_service import NarrativeGenerator, build_insight_prompt
from wellness_analytics.services.risk_service import LOW_RISK_INDICATOR
from wellness_analytics.utils.json_utils import extract_json_object

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 20.0


# =============================================================================
# PLACEHOLDERS (AI path, per missing field)
# =============================================================================

FIELD_DEFAULTS: Dict[str, Any] = {
    "summary": "Clinical analysis completed",
    "insights": ["Consider professional consultation"],
    "recommendations": ["Practice evidence-based self-care"],
    "resources": ["Mental health professional consultation"],
    "mood_trend": "Clinical assessment available",
    "patterns": ["Regular monitoring recommended"],
    "clinical_assessment": "Consider comprehensive clinical evaluation",
    "evidence_based_interventions": ["CBT", "Mindfulness", "DBT"],
    "healthcare_outcomes": "Improved mental health tracking and awareness",
    "risk_factors": "Low risk profile based on available data",
}

LIST_FIELDS = frozenset(k for k, v in FIELD_DEFAULTS.items() if isinstance(v, list))
RECOGNIZED_KEYS = frozenset(FIELD_DEFAULTS) | frozenset(to_camel(k) for k in FIELD_DEFAULTS)


# =============================================================================
# FALLBACK TEMPLATES
# =============================================================================

FALLBACK_INTERVENTIONS = [
    "Cognitive Behavioral Therapy (CBT) techniques",
    "Mindfulness-based stress reduction (MBSR)",
    "Dialectical Behavior Therapy (DBT) skills",
]

FALLBACK_RESOURCES = [
    "Mental health professional consultation",
    "Evidence-based therapy resources",
]

TREND_SENTENCES = {
    "improving": "Your recent emotional intensity is easing compared with earlier entries.",
    "declining": "Your recent emotional intensity is higher than in earlier entries.",
    "stable": "Your emotional patterns have been fairly steady.",
}

RISK_SENTENCES = {
    "high": "Several high-intensity difficult emotions were logged recently; "
            "consider reaching out to a mental health professional.",
    "medium": "Some high-intensity difficult emotions were logged recently; keep monitoring them.",
    "low": "Low risk profile based on available data",
}

HIGH_RISK_RESOURCE = "Crisis support line or emergency services if you feel unsafe"


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    elif not isinstance(value, (list, tuple)):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _as_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple)):
        return ""
    return str(value).strip()


def _risk_assessment(label: str) -> str:
    return f"Rule-based risk level: {label}. Consider professional consultation for comprehensive assessment"


class InsightOrchestrator:
    """Composes derived signals with an AI narrative, falling back deterministically."""

    def __init__(
        self,
        generator: Optional[NarrativeGenerator] = None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_prompt_records: int = 50,
    ):
        self.generator = generator
        self.timeout_seconds = timeout_seconds
        self.max_prompt_records = max_prompt_records

    async def generate(
        self,
        request: InsightRequest,
        snapshot: ActivitySnapshot,
        signals: AnalyticsSignals,
    ) -> InsightResult:
        try:
            fields = await self._ai_fields(request, snapshot, signals)
        except NarrativeUnavailable:
            logger.info(f"[Insights] No narrative generator configured for {request.user_key}; using fallback")
            return self.fallback(snapshot, signals)
        except Exception as e:
            # CancelledError is a BaseException and propagates past this handler.
            logger.warning(f"[Insights] AI path failed for {request.user_key} ({type(e).__name__}: {e}); using fallback")
            return self.fallback(snapshot, signals)

        logger.info(f"[Insights] AI insight generated for {request.user_key}")
        return self.merge_with_defaults(fields, signals)

    async def _ai_fields(
        self,
        request: InsightRequest,
        snapshot: ActivitySnapshot,
        signals: AnalyticsSignals,
    ) -> Mapping[str, Any]:
        if self.generator is None:
            raise NarrativeUnavailable("no narrative generator configured")

        prompt = build_insight_prompt(request, snapshot, signals, max_records=self.max_prompt_records)
        try:
            raw = await asyncio.wait_for(
                self.generator.generate_narrative(prompt, self.timeout_seconds),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise NarrativeTimeout(f"narrative generator exceeded {self.timeout_seconds}s") from e
        return self.parse_response(raw)

    @staticmethod
    def parse_response(raw: Any) -> Mapping[str, Any]:
        parsed = None
        if isinstance(raw, Mapping):
            parsed = raw
        elif isinstance(raw, str):
            parsed = extract_json_object(raw)
        if parsed is None:
            raise MalformedNarrativeResponse("narrative response holds no JSON object")
        if not RECOGNIZED_KEYS.intersection(parsed):
            raise MalformedNarrativeResponse(
                f"narrative response has no insight fields (keys: {sorted(map(str, parsed))[:5]})"
            )
        return parsed

    @classmethod
    def merge_with_defaults(
        cls,
        fields: Mapping[str, Any],
        signals: Optional[AnalyticsSignals] = None,
    ) -> InsightResult:
        """Accept camelCase or snake_case keys; any missing or empty field gets its placeholder.

        With ``signals``, the safety-relevant placeholders (risk factors, clinical
        assessment, interventions) come from the rule-based signals instead of
        the generic text.
        """
        defaults = dict(FIELD_DEFAULTS)
        if signals is not None:
            used = cls._real_interventions(signals.interventions)
            defaults["risk_factors"] = RISK_SENTENCES[signals.risk.level]
            defaults["clinical_assessment"] = _risk_assessment(signals.risk.label)
            defaults["evidence_based_interventions"] = used or list(FALLBACK_INTERVENTIONS)

        merged: Dict[str, Any] = {}
        for name in FIELD_DEFAULTS:
            alias = to_camel(name)
            value = fields.get(alias, fields.get(name))
            if name in LIST_FIELDS:
                items = _as_list(value)
                merged[name] = items or list(defaults[name])
            else:
                merged[name] = _as_text(value) or defaults[name]
        return InsightResult(**merged)

    # -------------------------------------------------------------------------
    # Fallback
    # -------------------------------------------------------------------------

    @staticmethod
    def _real_interventions(interventions: Sequence[str]) -> List[str]:
        return [i for i in interventions if i != NO_INTERVENTIONS]

    @classmethod
    def fallback(cls, snapshot: ActivitySnapshot, signals: AnalyticsSignals) -> InsightResult:
        streak = signals.streak
        stability = signals.stability
        risk = signals.risk
        used = cls._real_interventions(signals.interventions)

        if snapshot.is_empty:
            summary = "No activity has been logged in this period yet. Logging emotions, journaling " \
                      "and short exercises will make your insights more personal."
        else:
            summary = (
                f"You logged {snapshot.total_records} activities in this period with a current "
                f"streak of {streak.current_streak_days} day(s)."
            )

        insights = [
            f"Current engagement streak: {streak.current_streak_days} day(s) "
            f"(longest: {streak.longest_streak_days})",
            f"Mood stability score: {stability.normalized_stability:.2f} ({stability.trend_label})",
        ]
        insights.extend(i for i in risk.indicators if i != LOW_RISK_INDICATOR)

        recommendations = ClinicalMetricsService.clinical_recommendations(
            snapshot.emotions, snapshot.journals, snapshot.game_sessions
        )

        resources = list(FALLBACK_RESOURCES)
        if risk.level == "high":
            resources.insert(0, HIGH_RISK_RESOURCE)

        patterns = [f"Interventions practiced: {', '.join(used)}"] if used else \
            ["Regular mood tracking can help identify clinical patterns"]

        outcomes = ClinicalMetricsService.healthcare_outcomes(
            snapshot.emotions, snapshot.journals, snapshot.game_sessions
        )

        return InsightResult(
            summary=summary,
            insights=insights,
            recommendations=recommendations,
            resources=resources,
            mood_trend=TREND_SENTENCES.get(stability.trend_label, TREND_SENTENCES["stable"]),
            patterns=patterns,
            clinical_assessment=_risk_assessment(risk.label),
            evidence_based_interventions=used or list(FALLBACK_INTERVENTIONS),
            healthcare_outcomes=f"Overall progress: {outcomes.overall_progress}",
            risk_factors=RISK_SENTENCES[risk.level],
        )
