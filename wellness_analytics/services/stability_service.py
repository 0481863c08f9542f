"""Mood-stability scoring.

Valence convention
------------------
``intensity`` means different things for different tags: a 9 of ``grief`` is
bad, a 9 of ``happy`` is good. Stability only measures volatility, so it uses
the raw intensities. Trend needs a direction, so it runs on a *distress*
series where lower is better: negatively valenced tags contribute their
intensity and ``happy`` contributes ``11 - intensity``
(see ``EmotionRecord.distress``). A bare list of numbers handed to
:meth:`StabilityScorer.score` is taken to already be a distress series.
"""
from __future__ import annotations

from typing import Sequence

from wellness_analytics.schemas.analytics import StabilityScore
from wellness_analytics.schemas.records import EmotionRecord

# Population variance of a 1-10 scale is at most (10 - 1)^2 / 4 ~= 20.25; 25 keeps headroom.
VARIANCE_CEILING = 25.0
DEFAULT_TREND_THRESHOLD = 0.5


class StabilityScorer:

    @staticmethod
    def population_variance(values: Sequence[float]) -> float:
        if not values:
            return 0.0
        mean = sum(values) / len(values)
        return sum((v - mean) ** 2 for v in values) / len(values)

    @staticmethod
    def normalized_stability(values: Sequence[float]) -> float:
        if len(values) < 2:
            return 1.0
        variance = StabilityScorer.population_variance(values)
        return max(0.0, min(1.0, 1.0 - variance / VARIANCE_CEILING))

    @staticmethod
    def trend_label(distress: Sequence[float], threshold: float = DEFAULT_TREND_THRESHOLD) -> str:
        """Compare the means of the two chronological halves of a distress series.

        With an odd count the middle sample goes to the second half.
        """
        if len(distress) < 2:
            return "stable"
        mid = len(distress) // 2
        first, second = distress[:mid], distress[mid:]
        delta = sum(second) / len(second) - sum(first) / len(first)
        if delta < -threshold:
            return "improving"
        if delta > threshold:
            return "declining"
        return "stable"

    @classmethod
    def score(
        cls,
        intensities: Sequence[float],
        threshold: float = DEFAULT_TREND_THRESHOLD,
    ) -> StabilityScore:
        """Score a chronologically ordered intensity series."""
        values = [float(v) for v in intensities]
        if len(values) < 2:
            return StabilityScore(normalized_stability=1.0, trend_label="stable")
        return StabilityScore(
            normalized_stability=cls.normalized_stability(values),
            trend_label=cls.trend_label(values, threshold),
        )

    @classmethod
    def score_records(
        cls,
        emotions: Sequence[EmotionRecord],
        threshold: float = DEFAULT_TREND_THRESHOLD,
    ) -> StabilityScore:
        ordered = sorted(emotions, key=lambda e: e.occurred_at)
        if len(ordered) < 2:
            return StabilityScore(normalized_stability=1.0, trend_label="stable")
        raw = [float(e.intensity) for e in ordered]
        distress = [float(e.distress) for e in ordered]
        return StabilityScore(
            normalized_stability=cls.normalized_stability(raw),
            trend_label=cls.trend_label(distress, threshold),
        )
