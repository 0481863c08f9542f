"""
Analytics engine facade.

One call per request: load a validated snapshot from the activity store,
compute the four independent signals (streak, stability, risk, interventions),
then assemble the requested payload. Nothing is cached or mutated between
calls; every result is a fresh function of (records, now).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from wellness_analytics.core.config import Settings, get_settings
from wellness_analytics.schemas.analytics import (
    AnalyticsPayload,
    AnalyticsSignals,
    ClinicalAssessment,
    ClinicalOverview,
    EmotionAnalytics,
    EvidenceBasedInsights,
    GameStats,
    InsightRequest,
    MoodTrends,
    StreakState,
    UserOverview,
)
from wellness_analytics.services.activity_store import ActivitySnapshot, ActivityStore, load_snapshot
from wellness_analytics.services.clinical_metrics_service import ClinicalMetricsService
from wellness_analytics.services.emotion_analytics_service import EmotionAnalyticsService
from wellness_analytics.services.insight_orchestrator import InsightOrchestrator
from wellness_analytics.services.intervention_service import InterventionMapper
from wellness_analytics.services.narrative_service import build_narrative_generator
from wellness_analytics.services.risk_service import RiskClassifier
from wellness_analytics.services.stability_service import StabilityScorer
from wellness_analytics.services.streak_service import StreakTracker
from wellness_analytics.utils.date_utils import EPOCH, day_key, lookback_start, timeframe_start

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsEngine:
    def __init__(
        self,
        store: ActivityStore,
        orchestrator: Optional[InsightOrchestrator] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or InsightOrchestrator(
            None,
            timeout_seconds=self.settings.AI_TIMEOUT_SECONDS,
            max_prompt_records=self.settings.PROMPT_MAX_RECORDS,
        )
        self.clock = clock or utc_now
        self.tz = self.settings.day_boundary_zone

    @classmethod
    def from_settings(cls, store: ActivityStore, settings: Settings, clock: Optional[Clock] = None) -> "AnalyticsEngine":
        """Wire the configured narrative generator (or none) into a new engine."""
        orchestrator = InsightOrchestrator(
            build_narrative_generator(settings),
            timeout_seconds=settings.AI_TIMEOUT_SECONDS,
            max_prompt_records=settings.PROMPT_MAX_RECORDS,
        )
        return cls(store, orchestrator=orchestrator, settings=settings, clock=clock)

    # =========================================================================
    # Signals
    # =========================================================================

    def compute_signals(self, snapshot: ActivitySnapshot, now: datetime) -> AnalyticsSignals:
        """Streak, stability, risk and interventions over one snapshot."""
        return AnalyticsSignals(
            streak=StreakTracker.compute(snapshot.timestamps(), now, self.tz),
            stability=StabilityScorer.score_records(
                snapshot.emotions, self.settings.STABILITY_TREND_THRESHOLD
            ),
            risk=RiskClassifier.classify(snapshot.emotions, snapshot.journals),
            interventions=InterventionMapper.map_interventions(snapshot.game_sessions, snapshot.journals),
        )

    async def _snapshot(self, user_key: str, since: datetime) -> ActivitySnapshot:
        return await load_snapshot(self.store, user_key, since)

    def _window_days(self, days: Optional[int]) -> int:
        """Requested window length; missing means the default, anything below one day is one day."""
        return max(1, int(days or self.settings.DEFAULT_LOOKBACK_DAYS))

    def _lookback(self, days: Optional[int], now: datetime) -> datetime:
        return lookback_start(self._window_days(days), now)

    # =========================================================================
    # Payloads
    # =========================================================================

    async def analyze(self, request: InsightRequest) -> AnalyticsPayload:
        now = self.clock()
        snapshot = await self._snapshot(request.user_key, timeframe_start(request.timeframe, now))
        signals = self.compute_signals(snapshot, now)
        insight = await self.orchestrator.generate(request, snapshot, signals)
        return AnalyticsPayload(
            streak=signals.streak,
            stability=signals.stability,
            risk=signals.risk,
            interventions=signals.interventions,
            insight=insight,
        )

    async def streak(self, user_key: str) -> StreakState:
        """Streak over the user's entire history, so the longest run is not truncated."""
        now = self.clock()
        snapshot = await self._snapshot(user_key, EPOCH)
        return StreakTracker.compute(snapshot.timestamps(), now, self.tz)

    async def clinical_overview(self, user_key: str, days: Optional[int] = None) -> ClinicalOverview:
        now = self.clock()
        lookback = self._window_days(days)
        snapshot = await self._snapshot(user_key, self._lookback(lookback, now))
        signals = self.compute_signals(snapshot, now)
        emotions, journals, sessions = snapshot.emotions, snapshot.journals, snapshot.game_sessions
        return ClinicalOverview(
            user_key=user_key,
            timeframe=f"{lookback} days",
            total_entries=len(emotions) + len(journals),
            average_intensity=ClinicalMetricsService.average_intensity(emotions),
            engagement_streak=signals.streak.current_streak_days,
            therapy_adherence=ClinicalMetricsService.therapy_adherence(sessions),
            mood_stability=round(signals.stability.normalized_stability, 2),
            risk_indicators=signals.risk.indicators,
            interventions_used=signals.interventions,
            healthcare_outcomes=ClinicalMetricsService.healthcare_outcomes(emotions, journals, sessions),
            clinical_recommendations=ClinicalMetricsService.clinical_recommendations(
                emotions, journals, sessions
            ),
            last_updated=now,
        )

    async def clinical_assessment(self, request: InsightRequest) -> ClinicalAssessment:
        now = self.clock()
        snapshot = await self._snapshot(request.user_key, timeframe_start(request.timeframe, now))
        signals = self.compute_signals(snapshot, now)
        insight = await self.orchestrator.generate(request, snapshot, signals)
        metrics = ClinicalMetricsService.clinical_metrics(
            snapshot.emotions,
            snapshot.journals,
            snapshot.game_sessions,
            risk=signals.risk,
            timeframe=request.timeframe,
            tz=self.tz,
        )
        return ClinicalAssessment(insight=insight, clinical_metrics=metrics)

    async def evidence_based_insights(self, user_key: str, days: Optional[int] = None) -> EvidenceBasedInsights:
        now = self.clock()
        snapshot = await self._snapshot(user_key, self._lookback(days, now))
        return InterventionMapper.evidence_based_insights(
            snapshot.emotions, snapshot.journals, snapshot.game_sessions
        )

    async def user_overview(self, user_key: str, days: Optional[int] = None) -> UserOverview:
        now = self.clock()
        snapshot = await self._snapshot(user_key, self._lookback(days, now))
        streak = StreakTracker.compute(snapshot.timestamps(), now, self.tz)
        return EmotionAnalyticsService.user_overview(snapshot, streak, now, self.tz)

    async def emotion_analytics(self, user_key: str, days: Optional[int] = None) -> EmotionAnalytics:
        now = self.clock()
        since = self._lookback(days, now)
        snapshot = await self._snapshot(user_key, since)
        return EmotionAnalytics(
            emotion_stats=EmotionAnalyticsService.emotion_stats(snapshot.emotions, self.tz),
            total_entries=len(snapshot.emotions),
            start=day_key(since, self.tz),
            end=day_key(now, self.tz),
        )

    async def mood_trends(self, user_key: str, days: Optional[int] = None) -> MoodTrends:
        now = self.clock()
        since = self._lookback(days, now)
        snapshot = await self._snapshot(user_key, since)
        trends = EmotionAnalyticsService.daily_trends(snapshot.emotions, self.tz)
        return MoodTrends(
            trends=trends,
            total_days=len(trends),
            start=day_key(since, self.tz),
            end=day_key(now, self.tz),
        )

    async def game_stats(self, user_key: str, days: Optional[int] = None) -> GameStats:
        now = self.clock()
        since = self._lookback(days, now)
        snapshot = await self._snapshot(user_key, since)
        return EmotionAnalyticsService.game_stats(
            snapshot.game_sessions, day_key(since, self.tz), day_key(now, self.tz)
        )
