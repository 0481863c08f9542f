from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, List, Optional, Set

from wellness_analytics.schemas.analytics import StreakState
from wellness_analytics.utils.date_utils import iso_week_number, local_date, sunday_index


class StreakTracker:
    """Consecutive-day engagement streaks and the current week's activity bitmap.

    All methods are pure functions of (activity timestamps, now).
    """

    @staticmethod
    def activity_dates(timestamps: Iterable[datetime], tz: tzinfo = timezone.utc) -> Set[date]:
        """Distinct calendar dates (in the user's day boundary) with at least one activity."""
        return {local_date(ts, tz) for ts in timestamps if ts is not None}

    @staticmethod
    def current_streak(dates: Set[date], today: date) -> int:
        """Walk back from today while each day has activity."""
        streak = 0
        cursor = today
        while cursor in dates:
            streak += 1
            cursor -= timedelta(days=1)
        return streak

    @staticmethod
    def longest_streak(dates: Set[date]) -> int:
        """Longest run of consecutive dates (single ascending scan)."""
        longest = 0
        run = 0
        previous: Optional[date] = None
        for d in sorted(dates):
            if previous is not None and d - previous == timedelta(days=1):
                run += 1
            else:
                run = 1
            longest = max(longest, run)
            previous = d
        return longest

    @staticmethod
    def weekly_bitmap(dates: Set[date], today: date) -> List[bool]:
        """Sunday..Saturday flags for activity in today's ISO week.

        Dates from any other ISO week (including everything more than a week
        old) leave the bitmap untouched, so it starts all-false each new week.
        """
        bitmap = [False] * 7
        this_week = iso_week_number(today)
        for d in dates:
            if d > today or (today - d).days >= 7:
                continue
            if iso_week_number(d) == this_week:
                bitmap[sunday_index(d)] = True
        return bitmap

    @classmethod
    def compute(
        cls,
        timestamps: Iterable[datetime],
        now: datetime,
        tz: tzinfo = timezone.utc,
    ) -> StreakState:
        dates = cls.activity_dates(timestamps, tz)
        if not dates:
            return StreakState()
        today = local_date(now, tz)
        return StreakState(
            current_streak_days=cls.current_streak(dates, today),
            longest_streak_days=cls.longest_streak(dates),
            weekly_bitmap=cls.weekly_bitmap(dates, today),
        )
