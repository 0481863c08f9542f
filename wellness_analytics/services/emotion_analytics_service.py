from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timezone, tzinfo
from typing import Dict, List, Sequence

from wellness_analytics.schemas.analytics import (
    DailyEntrySummary,
    EmotionStats,
    GameKindStats,
    GameStats,
    MoodTrendDay,
    StreakState,
    UserOverview,
)
from wellness_analytics.schemas.records import EmotionRecord, EmotionTag, GameSessionRecord
from wellness_analytics.services.activity_store import ActivitySnapshot
from wellness_analytics.utils.date_utils import day_key


class EmotionAnalyticsService:

    @staticmethod
    def most_frequent_emotion(emotions: Sequence[EmotionRecord]) -> str:
        """Most logged tag; ties go to the tag logged first. ``happy`` when nothing is logged."""
        if not emotions:
            return EmotionTag.HAPPY.value
        counts = Counter(e.emotion_tag.value for e in emotions)
        # Counter.most_common keeps insertion order among equal counts.
        return counts.most_common(1)[0][0]

    @staticmethod
    def daily_entries(snapshot: ActivitySnapshot, tz: tzinfo = timezone.utc) -> List[DailyEntrySummary]:
        """Per-day record counts, newest day first."""
        by_day: Dict[str, Counter] = defaultdict(Counter)
        for e in snapshot.emotions:
            by_day[day_key(e.occurred_at, tz)]["emotion"] += 1
        for j in snapshot.journals:
            by_day[day_key(j.occurred_at, tz)]["journal"] += 1
        for g in snapshot.game_sessions:
            by_day[day_key(g.occurred_at, tz)]["game"] += 1
        return [
            DailyEntrySummary(
                date=day,
                emotion_count=counts["emotion"],
                journal_count=counts["journal"],
                game_session_count=counts["game"],
            )
            for day, counts in sorted(by_day.items(), reverse=True)
        ]

    @classmethod
    def user_overview(
        cls,
        snapshot: ActivitySnapshot,
        streak: StreakState,
        now: datetime,
        tz: tzinfo = timezone.utc,
    ) -> UserOverview:
        emotions = snapshot.emotions
        average = sum(e.intensity for e in emotions) / len(emotions) if emotions else 0.0
        return UserOverview(
            user_key=snapshot.user_key,
            total_entries=len(emotions) + len(snapshot.journals),
            current_streak=streak.current_streak_days,
            longest_streak=streak.longest_streak_days,
            average_mood=round(average, 1),
            most_frequent_emotion=cls.most_frequent_emotion(emotions),
            games_played=len(snapshot.game_sessions),
            daily_entries=cls.daily_entries(snapshot, tz),
            last_updated=now,
        )

    @staticmethod
    def emotion_stats(emotions: Sequence[EmotionRecord], tz: tzinfo = timezone.utc) -> Dict[str, EmotionStats]:
        grouped: Dict[str, List[EmotionRecord]] = defaultdict(list)
        for e in emotions:
            grouped[e.emotion_tag.value].append(e)
        return {
            tag: EmotionStats(
                count=len(items),
                average_intensity=round(sum(i.intensity for i in items) / len(items), 1),
                dates=[day_key(i.occurred_at, tz) for i in items],
            )
            for tag, items in grouped.items()
        }

    @staticmethod
    def daily_trends(emotions: Sequence[EmotionRecord], tz: tzinfo = timezone.utc) -> List[MoodTrendDay]:
        """Daily average intensity and dominant emotion, oldest day first."""
        by_day: Dict[str, List[EmotionRecord]] = defaultdict(list)
        for e in sorted(emotions, key=lambda r: r.occurred_at):
            by_day[day_key(e.occurred_at, tz)].append(e)

        trends: List[MoodTrendDay] = []
        for day in sorted(by_day):
            items = by_day[day]
            dominant = Counter(i.emotion_tag.value for i in items).most_common(1)[0][0]
            trends.append(
                MoodTrendDay(
                    date=day,
                    average_intensity=round(sum(i.intensity for i in items) / len(items), 1),
                    dominant_emotion=dominant,
                    entry_count=len(items),
                )
            )
        return trends

    @staticmethod
    def game_stats(sessions: Sequence[GameSessionRecord], start: str, end: str) -> GameStats:
        """Session totals plus per-kind count, duration and average score."""
        total = len(sessions)
        if not total:
            return GameStats(start=start, end=end)
        duration = sum(s.duration_minutes for s in sessions)

        grouped: Dict[str, List[GameSessionRecord]] = defaultdict(list)
        for s in sessions:
            grouped[s.activity_kind.value].append(s)

        return GameStats(
            total_sessions=total,
            total_duration=round(duration, 1),
            average_duration=round(duration / total),
            average_score=round(sum(s.score or 0 for s in sessions) / total),
            game_type_stats={
                kind: GameKindStats(
                    count=len(items),
                    total_duration=round(sum(i.duration_minutes for i in items), 1),
                    average_score=round(sum(i.score or 0 for i in items) / len(items)),
                )
                for kind, items in grouped.items()
            },
            start=start,
            end=end,
        )
