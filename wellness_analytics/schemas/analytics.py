"""Pydantic schemas for derived analytics state and insight payloads.

Field names are snake_case in Python and camelCase on the wire
(``model_dump(by_alias=True)``), matching the web client's contract.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class StreakState(_Payload):
    """Consecutive-day engagement, recomputed from records on every request."""
    current_streak_days: int = Field(ge=0, default=0)
    longest_streak_days: int = Field(ge=0, default=0)
    weekly_bitmap: List[bool] = Field(
        default_factory=lambda: [False] * 7, min_length=7, max_length=7
    )


class StabilityScore(_Payload):
    normalized_stability: float = Field(ge=0, le=1, default=1.0)
    trend_label: str = Field(pattern=r"^(improving|stable|declining)$", default="stable")


class RiskProfile(_Payload):
    level: str = Field(pattern=r"^(low|medium|high)$", default="low")
    indicators: List[str] = Field(min_length=1)
    high_intensity_negative_count: int = Field(ge=0, default=0)
    matched_keywords: List[str] = Field(default_factory=list)

    @property
    def label(self) -> str:
        """Capitalised level used by clinical reports ("High", "Medium", "Low")."""
        return self.level.capitalize()


class InsightResult(_Payload):
    """Externally visible insight contract; every field is always populated."""
    summary: str = Field(min_length=1)
    insights: List[str] = Field(min_length=1)
    recommendations: List[str] = Field(min_length=1)
    resources: List[str] = Field(min_length=1)
    mood_trend: str = Field(min_length=1)
    patterns: List[str] = Field(min_length=1)
    clinical_assessment: str = Field(min_length=1)
    evidence_based_interventions: List[str] = Field(min_length=1)
    healthcare_outcomes: str = Field(min_length=1)
    risk_factors: str = Field(min_length=1)


class AnalyticsPayload(_Payload):
    streak: StreakState
    stability: StabilityScore
    risk: RiskProfile
    interventions: List[str] = Field(min_length=1)
    insight: InsightResult


# =============================================================================
# CLINICAL OVERVIEW / ASSESSMENT
# =============================================================================

class HealthcareOutcomes(_Payload):
    symptom_tracking: str = Field(pattern=r"^(Active|Inactive)$")
    therapeutic_engagement: str = Field(pattern=r"^(Active|Inactive)$")
    self_reflection: str = Field(pattern=r"^(Active|Inactive)$")
    overall_progress: str


class ClinicalOverview(_Payload):
    user_key: str
    timeframe: str
    total_entries: int = Field(ge=0)
    average_intensity: float = Field(ge=0, le=10)
    engagement_streak: int = Field(ge=0)
    therapy_adherence: float = Field(ge=0, le=1)
    mood_stability: float = Field(ge=0, le=1)
    risk_indicators: List[str] = Field(min_length=1)
    interventions_used: List[str] = Field(min_length=1)
    healthcare_outcomes: HealthcareOutcomes
    clinical_recommendations: List[str] = Field(min_length=1)
    last_updated: datetime


class ClinicalMetrics(_Payload):
    data_points: int = Field(ge=0)
    engagement_rate: int = Field(ge=0, le=100)
    risk_profile: str = Field(pattern=r"^(Low|Medium|High)$")
    treatment_effectiveness: str
    adherence_score: int = Field(ge=0, le=100)


class ClinicalAssessment(_Payload):
    insight: InsightResult
    clinical_metrics: ClinicalMetrics


class EvidenceBasedInsights(_Payload):
    cbt_techniques: List[str] = Field(default_factory=list)
    mindfulness_practices: List[str] = Field(default_factory=list)
    dbt_skills: List[str] = Field(default_factory=list)
    sleep_patterns: List[str] = Field(min_length=1)
    social_connections: List[str] = Field(min_length=1)
    stress_management: List[str] = Field(min_length=1)
    clinical_recommendations: List[str] = Field(min_length=1)


# =============================================================================
# EMOTION ANALYTICS
# =============================================================================

class DailyEntrySummary(_Payload):
    date: str
    emotion_count: int = Field(ge=0, default=0)
    journal_count: int = Field(ge=0, default=0)
    game_session_count: int = Field(ge=0, default=0)


class UserOverview(_Payload):
    user_key: str
    total_entries: int = Field(ge=0)
    current_streak: int = Field(ge=0)
    longest_streak: int = Field(ge=0)
    average_mood: float = Field(ge=0, le=10)
    most_frequent_emotion: str
    games_played: int = Field(ge=0)
    daily_entries: List[DailyEntrySummary] = Field(default_factory=list)
    last_updated: datetime


class EmotionStats(_Payload):
    count: int = Field(ge=0)
    average_intensity: float = Field(ge=0, le=10)
    dates: List[str] = Field(default_factory=list)


class MoodTrendDay(_Payload):
    date: str
    average_intensity: float = Field(ge=0, le=10)
    dominant_emotion: str
    entry_count: int = Field(ge=0)


class EmotionAnalytics(_Payload):
    emotion_stats: Dict[str, EmotionStats] = Field(default_factory=dict)
    total_entries: int = Field(ge=0, default=0)
    start: str
    end: str


class MoodTrends(_Payload):
    trends: List[MoodTrendDay] = Field(default_factory=list)
    total_days: int = Field(ge=0, default=0)
    start: str
    end: str


class GameKindStats(_Payload):
    count: int = Field(ge=0)
    total_duration: float = Field(ge=0)
    average_score: int = Field(ge=0, le=100)


class GameStats(_Payload):
    """Session totals over a window; sessions without a score count as 0."""
    total_sessions: int = Field(ge=0, default=0)
    total_duration: float = Field(ge=0, default=0)
    average_duration: int = Field(ge=0, default=0)
    average_score: int = Field(ge=0, le=100, default=0)
    game_type_stats: Dict[str, GameKindStats] = Field(default_factory=dict)
    start: str
    end: str


# Request models
class InsightRequest(_Payload):
    """Request model for insight / clinical assessment generation."""
    user_key: str = Field(min_length=1)
    timeframe: str = Field(pattern=r"^(week|month|all)$", default="month")
    focus: Optional[str] = Field(pattern=r"^(emotions|journal|games|all)$", default="all")

    @field_validator("timeframe", "focus", mode="before")
    @classmethod
    def lowercase(cls, v):
        return v.lower() if isinstance(v, str) else v


class AnalyticsSignals(_Payload):
    """Deterministic signals computed before any AI call."""
    streak: StreakState
    stability: StabilityScore
    risk: RiskProfile
    interventions: List[str] = Field(min_length=1)
