from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import List, Sequence

from wellness_analytics.schemas.analytics import ClinicalMetrics, HealthcareOutcomes, RiskProfile
from wellness_analytics.schemas.records import (
    NEUTRAL_INTENSITY,
    CompletionState,
    EmotionRecord,
    GameSessionRecord,
    JournalRecord,
)
from wellness_analytics.utils.date_utils import TIMEFRAME_DAYS, local_date

RECENT_WINDOW = 5


class ClinicalMetricsService:
    """Engagement, adherence and progress metrics for clinical reports."""

    @staticmethod
    def average_intensity(emotions: Sequence[EmotionRecord], default: float = NEUTRAL_INTENSITY) -> float:
        if not emotions:
            return float(default)
        return round(sum(e.intensity for e in emotions) / len(emotions), 1)

    @staticmethod
    def therapy_adherence(sessions: Sequence[GameSessionRecord]) -> float:
        """Completed sessions / all sessions (0 when there are none)."""
        if not sessions:
            return 0.0
        completed = sum(1 for s in sessions if s.completion_state == CompletionState.COMPLETED)
        return round(completed / len(sessions), 2)

    @staticmethod
    def adherence_score(sessions: Sequence[GameSessionRecord]) -> int:
        if not sessions:
            return 0
        completed = sum(1 for s in sessions if s.completion_state == CompletionState.COMPLETED)
        return int(round(completed / len(sessions) * 100))

    @staticmethod
    def overall_progress(total_activities: int) -> str:
        if total_activities == 0:
            return "No data available"
        if total_activities >= 10:
            return "Excellent engagement"
        if total_activities >= 5:
            return "Good engagement"
        if total_activities >= 2:
            return "Moderate engagement"
        return "Low engagement"

    @classmethod
    def healthcare_outcomes(
        cls,
        emotions: Sequence[EmotionRecord],
        journals: Sequence[JournalRecord],
        sessions: Sequence[GameSessionRecord],
    ) -> HealthcareOutcomes:
        return HealthcareOutcomes(
            symptom_tracking="Active" if emotions else "Inactive",
            therapeutic_engagement="Active" if sessions else "Inactive",
            self_reflection="Active" if journals else "Inactive",
            overall_progress=cls.overall_progress(len(emotions) + len(journals) + len(sessions)),
        )

    @staticmethod
    def clinical_recommendations(
        emotions: Sequence[EmotionRecord],
        journals: Sequence[JournalRecord],
        sessions: Sequence[GameSessionRecord],
    ) -> List[str]:
        recs: List[str] = []
        if not emotions:
            recs.append("Begin daily mood tracking to establish baseline")
        if not journals:
            recs.append("Start journaling to enhance self-reflection and CBT techniques")
        if not sessions:
            recs.append("Engage in mindfulness exercises for stress management")
        if emotions and journals:
            recs.append("Continue current engagement pattern for optimal outcomes")
        return recs or ["Keep practicing the exercises that help you most"]

    @staticmethod
    def engagement_rate(
        timestamps: Sequence[datetime],
        timeframe: str,
        tz: tzinfo = timezone.utc,
    ) -> int:
        """Percent of days in the timeframe with any activity (capped at 100)."""
        total_days = TIMEFRAME_DAYS.get(timeframe, TIMEFRAME_DAYS["month"])
        unique_days = len({local_date(ts, tz) for ts in timestamps})
        return min(100, int(round(unique_days / total_days * 100)))

    @staticmethod
    def treatment_effectiveness(emotions: Sequence[EmotionRecord]) -> str:
        """Compare recent distress (last 5 logs) with everything before it."""
        if len(emotions) < 2:
            return "Insufficient data"
        ordered = sorted(emotions, key=lambda e: e.occurred_at)
        recent = ordered[-RECENT_WINDOW:]
        earlier = ordered[:-RECENT_WINDOW]
        if not earlier:
            return "Baseline established"
        recent_avg = sum(e.distress for e in recent) / len(recent)
        earlier_avg = sum(e.distress for e in earlier) / len(earlier)
        if recent_avg < earlier_avg:
            return "Improving"
        if recent_avg > earlier_avg:
            return "Declining"
        return "Stable"

    @classmethod
    def clinical_metrics(
        cls,
        emotions: Sequence[EmotionRecord],
        journals: Sequence[JournalRecord],
        sessions: Sequence[GameSessionRecord],
        *,
        risk: RiskProfile,
        timeframe: str,
        tz: tzinfo = timezone.utc,
    ) -> ClinicalMetrics:
        timestamps = (
            [e.occurred_at for e in emotions]
            + [j.occurred_at for j in journals]
            + [s.occurred_at for s in sessions]
        )
        return ClinicalMetrics(
            data_points=len(timestamps),
            engagement_rate=cls.engagement_rate(timestamps, timeframe, tz),
            risk_profile=risk.label,
            treatment_effectiveness=cls.treatment_effectiveness(emotions),
            adherence_score=cls.adherence_score(sessions),
        )
