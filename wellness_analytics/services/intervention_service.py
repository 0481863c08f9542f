from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from wellness_analytics.schemas.analytics import EvidenceBasedInsights
from wellness_analytics.schemas.records import (
    ActivityKind,
    EmotionRecord,
    EmotionTag,
    GameSessionRecord,
    JournalRecord,
)
from wellness_analytics.utils.text_cleaning import find_stems

NO_INTERVENTIONS = "No interventions recorded"
JOURNALING_TECHNIQUE = "Cognitive Behavioral Therapy (CBT)"

# Activity kind -> named technique. Kinds missing here (e.g. OTHER) map to nothing.
ACTIVITY_TECHNIQUES: Dict[ActivityKind, str] = {
    ActivityKind.MINDFULNESS: "Mindfulness Meditation",
    ActivityKind.BREATHING: "Breathing Exercises",
    ActivityKind.BOX_BREATHING: "Breathing Exercises",
    ActivityKind.MEDITATION: "Meditation Practice",
    ActivityKind.GRATITUDE: "Gratitude Journaling",
    ActivityKind.MOOD_TRACKER: "Mood Monitoring",
    ActivityKind.COLOR_BLOOM: "Mindful Attention Training",
    ActivityKind.MEMORY_LANTERN: "Grief Processing and Acceptance",
    ActivityKind.RHYTHM_GROW: "Behavioral Activation",
}

MINDFULNESS_KINDS = frozenset({
    ActivityKind.MINDFULNESS,
    ActivityKind.BREATHING,
    ActivityKind.BOX_BREATHING,
    ActivityKind.MEDITATION,
    ActivityKind.COLOR_BLOOM,
})

# (stems, technique) pairs scanned over journal text.
CBT_KEYWORD_TECHNIQUES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("thought", "thinking"), "Cognitive Restructuring"),
    (("behavior", "behaviour", "action"), "Behavioral Activation"),
    (("challenge", "dispute"), "Thought Challenging"),
)

DBT_KEYWORD_SKILLS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("accept", "radical"), "Radical Acceptance"),
    (("distract", "opposite"), "Distress Tolerance"),
    (("emotion", "feeling"), "Emotion Regulation"),
)

SOCIAL_STEMS = ("friend", "family", "social")

SLEEP_GUIDANCE = [
    "Maintain consistent sleep schedule",
    "Practice sleep hygiene",
]


def _dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


class InterventionMapper:
    """Maps observed activity and journal language to evidence-based techniques."""

    @staticmethod
    def activity_techniques(sessions: Sequence[GameSessionRecord]) -> List[str]:
        return _dedupe(
            ACTIVITY_TECHNIQUES[s.activity_kind]
            for s in sessions
            if s.activity_kind in ACTIVITY_TECHNIQUES
        )

    @staticmethod
    def keyword_techniques(
        journals: Sequence[JournalRecord],
        table: Tuple[Tuple[Tuple[str, ...], str], ...],
    ) -> List[str]:
        hits: List[str] = []
        for j in journals:
            for stems, technique in table:
                if find_stems(j.content, stems):
                    hits.append(technique)
        return _dedupe(hits)

    @classmethod
    def map_interventions(
        cls,
        sessions: Sequence[GameSessionRecord],
        journals: Sequence[JournalRecord],
    ) -> List[str]:
        """Deduplicated named techniques; a single sentinel entry when nothing is found."""
        found = cls.activity_techniques(sessions)
        if journals:
            found.append(JOURNALING_TECHNIQUE)
        found.extend(cls.keyword_techniques(journals, CBT_KEYWORD_TECHNIQUES))
        found.extend(cls.keyword_techniques(journals, DBT_KEYWORD_SKILLS))
        found = _dedupe(found)
        return found or [NO_INTERVENTIONS]

    # -------------------------------------------------------------------------
    # Evidence-based breakdown
    # -------------------------------------------------------------------------

    @staticmethod
    def mindfulness_practices(sessions: Sequence[GameSessionRecord]) -> List[str]:
        return _dedupe(
            ACTIVITY_TECHNIQUES[s.activity_kind]
            for s in sessions
            if s.activity_kind in MINDFULNESS_KINDS
        )

    @staticmethod
    def social_connections(journals: Sequence[JournalRecord]) -> List[str]:
        if any(find_stems(j.content, SOCIAL_STEMS) for j in journals):
            return ["Social support mentioned"]
        return ["Consider increasing social connections"]

    @staticmethod
    def stress_management(
        emotions: Sequence[EmotionRecord],
        sessions: Sequence[GameSessionRecord],
    ) -> List[str]:
        management: List[str] = []
        if any(e.emotion_tag == EmotionTag.STRESS for e in emotions):
            management.append("Stress patterns identified")
        if any(s.activity_kind in MINDFULNESS_KINDS for s in sessions):
            management.append("Mindfulness practices engaged")
        return management or ["Consider stress management techniques"]

    @staticmethod
    def evidence_based_recommendations(
        emotions: Sequence[EmotionRecord],
        journals: Sequence[JournalRecord],
        sessions: Sequence[GameSessionRecord],
    ) -> List[str]:
        recs: List[str] = []
        if not emotions:
            recs.append("Begin daily mood tracking (evidence-based for depression monitoring)")
        if not journals:
            recs.append("Start CBT journaling (evidence-based for anxiety and depression)")
        if not sessions:
            recs.append("Engage in mindfulness meditation (evidence-based for stress reduction)")
        if any(e.emotion_tag == EmotionTag.STRESS for e in emotions):
            recs.append(
                "Consider DBT distress tolerance skills (evidence-based for stress management)"
            )
        return recs or [
            "Continue current practices (consistent self-monitoring supports long-term outcomes)"
        ]

    @classmethod
    def evidence_based_insights(
        cls,
        emotions: Sequence[EmotionRecord],
        journals: Sequence[JournalRecord],
        sessions: Sequence[GameSessionRecord],
    ) -> EvidenceBasedInsights:
        return EvidenceBasedInsights(
            cbt_techniques=cls.keyword_techniques(journals, CBT_KEYWORD_TECHNIQUES),
            mindfulness_practices=cls.mindfulness_practices(sessions),
            dbt_skills=cls.keyword_techniques(journals, DBT_KEYWORD_SKILLS),
            sleep_patterns=list(SLEEP_GUIDANCE),
            social_connections=cls.social_connections(journals),
            stress_management=cls.stress_management(emotions, sessions),
            clinical_recommendations=cls.evidence_based_recommendations(emotions, journals, sessions),
        )
