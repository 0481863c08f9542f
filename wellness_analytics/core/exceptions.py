from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for errors raised inside the analytics engine."""


class InvalidInputRecord(AnalyticsError):
    """A raw activity record could not be repaired into a valid record."""

    def __init__(self, kind: str, reason: str):
        super().__init__(f"invalid {kind} record: {reason}")
        self.kind = kind
        self.reason = reason


# =============================================================================
# NARRATIVE GENERATOR FAILURES
# Always recovered by the insight orchestrator's fallback path.
# =============================================================================

class NarrativeError(AnalyticsError):
    """The AI narrative generator failed."""


class NarrativeUnavailable(NarrativeError):
    """No narrative generator is configured."""


class NarrativeTimeout(NarrativeError):
    """The narrative generator did not answer within its timeout."""


class MalformedNarrativeResponse(NarrativeError):
    """The narrative generator answered with something that is not insight JSON."""
