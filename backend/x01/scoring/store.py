from __future__ import annotations

import logging
from threading import RLock
from typing import Sequence

from x01.scoring.engine import Clock, CommitHook, MatchEngine
from x01.scoring.errors import MatchNotFound
from x01.scoring.models import MatchConfig

logger = logging.getLogger(__name__)


class InMemoryMatchStore:
    """
    Minimal in-memory registry of matches.

    The store lock only guards the registry itself; each match serializes its
    own operations through its engine.
    """

    def __init__(self, *, clock: Clock | None = None, on_commit: CommitHook | None = None) -> None:
        self._lock = RLock()
        self._engines: dict[str, MatchEngine] = {}
        self._clock = clock
        self._on_commit = on_commit

    def clear(self) -> None:
        with self._lock:
            self._engines.clear()

    def create_match(self, config: MatchConfig, player_ids: Sequence[str]) -> MatchEngine:
        engine = MatchEngine.create(
            config, player_ids, clock=self._clock, on_commit=self._on_commit
        )
        with self._lock:
            self._engines[engine.match_id] = engine
        logger.info(
            "created match %s (%d players, %d start)",
            engine.match_id,
            len(player_ids),
            config.starting_score,
        )
        return engine

    def get(self, match_id: str) -> MatchEngine:
        with self._lock:
            engine = self._engines.get(match_id)
        if engine is None:
            raise MatchNotFound(f"match {match_id!r} not found")
        return engine

    def list_matches(self) -> list[MatchEngine]:
        with self._lock:
            return list(self._engines.values())

    def delete_match(self, match_id: str) -> bool:
        with self._lock:
            return self._engines.pop(match_id, None) is not None


_STORE: InMemoryMatchStore | None = None


def get_store() -> InMemoryMatchStore:
    global _STORE
    if _STORE is None:
        _STORE = InMemoryMatchStore()
    return _STORE
