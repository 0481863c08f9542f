"""
Risk Classifier
===============

Deterministic, rule-based scan of emotion records and journal text.
Every indicator in the output is produced by exactly one rule below, so a
reviewer can trace any finding back to its trigger.

Rules (all evaluated, none short-circuit):
1. High-intensity negative emotion: intensity >= 8 and tag in RISK_EMOTION_TAGS.
2. Negative thought pattern: a journal contains a HIGH_RISK_STEMS entry
   (case-insensitive substring).

Level depends on rule 1 only: 3+ qualifying records -> high, 1-2 -> medium,
else low. Keyword hits are reported but do not raise the level on their own;
this is a conservative baseline, not a clinical screening instrument.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from wellness_analytics.schemas.analytics import RiskProfile
from wellness_analytics.schemas.records import EmotionRecord, EmotionTag, JournalRecord
from wellness_analytics.utils.text_cleaning import find_stems

logger = logging.getLogger(__name__)


# =============================================================================
# RULE TABLE
# =============================================================================

HIGH_INTENSITY_THRESHOLD = 8

RISK_EMOTION_TAGS = frozenset({
    EmotionTag.SAD,
    EmotionTag.ANXIETY,
    EmotionTag.STRESS,
    EmotionTag.FEAR,
    EmotionTag.GRIEF,
})

HIGH_RISK_STEMS = (
    "hopeless",
    "worthless",
    "suicid",
    "kill myself",
    "want to die",
    "end it all",
    "give up",
    "no reason to live",
    "no point",
    "better off dead",
    "self harm",
    "self-harm",
)

HIGH_INTENSITY_INDICATOR = "High-intensity negative emotions detected"
NEGATIVE_THOUGHT_INDICATOR = "Negative thought patterns identified"
LOW_RISK_INDICATOR = "Low risk profile"

HIGH_LEVEL_MIN_COUNT = 3
MEDIUM_LEVEL_MIN_COUNT = 1


class RiskClassifier:

    @staticmethod
    def is_high_intensity_negative(record: EmotionRecord) -> bool:
        return record.intensity >= HIGH_INTENSITY_THRESHOLD and record.emotion_tag in RISK_EMOTION_TAGS

    @staticmethod
    def high_intensity_negative_count(emotions: Sequence[EmotionRecord]) -> int:
        return sum(1 for e in emotions if RiskClassifier.is_high_intensity_negative(e))

    @staticmethod
    def matched_keywords(journals: Sequence[JournalRecord]) -> List[str]:
        """High-risk stems found across all journals, deduplicated in table order."""
        found = set()
        for j in journals:
            found.update(find_stems(j.content, HIGH_RISK_STEMS))
        return [stem for stem in HIGH_RISK_STEMS if stem in found]

    @staticmethod
    def level_for(count: int) -> str:
        if count >= HIGH_LEVEL_MIN_COUNT:
            return "high"
        if count >= MEDIUM_LEVEL_MIN_COUNT:
            return "medium"
        return "low"

    @classmethod
    def classify(
        cls,
        emotions: Sequence[EmotionRecord],
        journals: Sequence[JournalRecord],
    ) -> RiskProfile:
        count = cls.high_intensity_negative_count(emotions)
        keywords = cls.matched_keywords(journals)

        indicators: List[str] = []
        if count > 0:
            indicators.append(HIGH_INTENSITY_INDICATOR)
        if keywords:
            indicators.append(NEGATIVE_THOUGHT_INDICATOR)
        if not indicators:
            indicators.append(LOW_RISK_INDICATOR)

        level = cls.level_for(count)
        if level != "low" or keywords:
            # Counts and stems only; journal text never reaches the logs.
            logger.info(
                f"[Risk] level={level} high_intensity_negative={count} keyword_stems={len(keywords)}"
            )
        return RiskProfile(
            level=level,
            indicators=indicators,
            high_intensity_negative_count=count,
            matched_keywords=keywords,
        )
