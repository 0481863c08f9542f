"""Activity store adapter boundary.

The real store (document database behind the web API) lives outside this
package; it only has to satisfy :class:`ActivityStore`. Whatever it returns is
coerced record-by-record into validated records here, so one malformed row
never fails a user's analytics.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Protocol, Tuple, TypeVar, Union, runtime_checkable

from wellness_analytics.core.exceptions import InvalidInputRecord
from wellness_analytics.schemas.records import (
    EmotionRecord,
    GameSessionRecord,
    JournalRecord,
    coerce_emotion_record,
    coerce_game_session_record,
    coerce_journal_record,
)
from wellness_analytics.utils.date_utils import ensure_aware

logger = logging.getLogger(__name__)

RawRecord = Union[Mapping[str, Any], EmotionRecord, JournalRecord, GameSessionRecord]
T = TypeVar("T")


@runtime_checkable
class ActivityStore(Protocol):
    async def list_emotions(self, user_key: str, since: datetime) -> Iterable[RawRecord]: ...

    async def list_journal_entries(self, user_key: str, since: datetime) -> Iterable[RawRecord]: ...

    async def list_game_sessions(self, user_key: str, since: datetime) -> Iterable[RawRecord]: ...


@dataclass(frozen=True)
class ActivitySnapshot:
    """Immutable, validated view of one user's records for one request."""
    user_key: str
    since: datetime
    emotions: Tuple[EmotionRecord, ...] = ()
    journals: Tuple[JournalRecord, ...] = ()
    game_sessions: Tuple[GameSessionRecord, ...] = ()
    dropped: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.emotions or self.journals or self.game_sessions)

    @property
    def total_records(self) -> int:
        return len(self.emotions) + len(self.journals) + len(self.game_sessions)

    def timestamps(self) -> List[datetime]:
        return (
            [e.occurred_at for e in self.emotions]
            + [j.occurred_at for j in self.journals]
            + [g.occurred_at for g in self.game_sessions]
        )


def _coerce_all(
    rows: Iterable[RawRecord],
    coerce: Callable[[Any], T],
    kind: str,
) -> Tuple[List[T], int]:
    records: List[T] = []
    dropped = 0
    for row in rows or []:
        try:
            records.append(coerce(row))
        except InvalidInputRecord as e:
            dropped += 1
            logger.warning(f"[ActivityStore] Dropping {kind} record: {e.reason}")
    return records, dropped


def build_snapshot(
    user_key: str,
    since: datetime,
    *,
    emotions: Iterable[RawRecord] = (),
    journals: Iterable[RawRecord] = (),
    game_sessions: Iterable[RawRecord] = (),
) -> ActivitySnapshot:
    """Validate raw rows and order each collection chronologically."""
    since = ensure_aware(since)
    ems, d1 = _coerce_all(emotions, coerce_emotion_record, "emotion")
    jrs, d2 = _coerce_all(journals, coerce_journal_record, "journal")
    gms, d3 = _coerce_all(game_sessions, coerce_game_session_record, "game session")

    # Stores may ignore ``since``; keep the window honest here.
    ems = sorted((e for e in ems if e.occurred_at >= since), key=lambda r: r.occurred_at)
    jrs = sorted((j for j in jrs if j.occurred_at >= since), key=lambda r: r.occurred_at)
    gms = sorted((g for g in gms if g.occurred_at >= since), key=lambda r: r.occurred_at)

    return ActivitySnapshot(
        user_key=user_key,
        since=since,
        emotions=tuple(ems),
        journals=tuple(jrs),
        game_sessions=tuple(gms),
        dropped=d1 + d2 + d3,
    )


async def load_snapshot(store: ActivityStore, user_key: str, since: datetime) -> ActivitySnapshot:
    """Fetch the three collections concurrently and validate them."""
    emotions, journals, games = await asyncio.gather(
        store.list_emotions(user_key, since),
        store.list_journal_entries(user_key, since),
        store.list_game_sessions(user_key, since),
    )
    snapshot = build_snapshot(
        user_key,
        since,
        emotions=emotions,
        journals=journals,
        game_sessions=games,
    )
    logger.info(
        f"[ActivityStore] Loaded snapshot for {user_key}: "
        f"{len(snapshot.emotions)} emotions, {len(snapshot.journals)} journals, "
        f"{len(snapshot.game_sessions)} sessions ({snapshot.dropped} dropped)"
    )
    return snapshot


@dataclass
class InMemoryActivityStore:
    """Dict-backed store for local development and tests."""
    emotions: List[RawRecord] = field(default_factory=list)
    journals: List[RawRecord] = field(default_factory=list)
    game_sessions: List[RawRecord] = field(default_factory=list)

    @staticmethod
    def _owner(row: RawRecord) -> Any:
        if isinstance(row, Mapping):
            for k in ("user_key", "userKey", "clerkId", "user_id", "userId"):
                if row.get(k) is not None:
                    return str(row[k])
            return None
        return row.user_key

    def _select(self, rows: List[RawRecord], user_key: str) -> List[RawRecord]:
        # The time window is applied by build_snapshot after validation.
        return [r for r in rows if self._owner(r) == user_key]

    async def list_emotions(self, user_key: str, since: datetime) -> List[RawRecord]:
        return self._select(self.emotions, user_key)

    async def list_journal_entries(self, user_key: str, since: datetime) -> List[RawRecord]:
        return self._select(self.journals, user_key)

    async def list_game_sessions(self, user_key: str, since: datetime) -> List[RawRecord]:
        return self._select(self.game_sessions, user_key)
