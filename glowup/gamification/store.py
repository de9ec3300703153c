"""
Score Store

Persistent-record interface the scoring service reads and writes through.

- PostgresScoreStore: profiles/streaks/friendships tables via glowup.db.queries
- InMemoryScoreStore: process-local store with the same atomic-increment
  semantics, used for tests and local development
"""

import asyncio
import logging
from typing import Dict, Optional, Protocol

import psycopg

from glowup.db import queries
from glowup.exceptions import RecordNotFoundError, wrap_external_exception
from glowup.gamification.xp_system import calculate_level_from_xp
from glowup.models.scoring import CategoryCounters, ScoreDelta, UserScoreState

logger = logging.getLogger(__name__)


class ScoreStore(Protocol):
    """Where score state lives"""

    async def read_user_score_state(self, user_id: str) -> UserScoreState:
        """Raises RecordNotFoundError if the user has no profile"""
        ...

    async def write_user_score_state(self, user_id: str, delta: ScoreDelta) -> Optional[UserScoreState]:
        """
        Apply delta atomically against the latest stored values

        Returns the post-write state, or None when one of
        delta.new_achievement_ids was already unlocked (nothing written).
        Raises RecordNotFoundError or WriteError.
        """
        ...

    async def read_category_counters(self, user_id: str) -> CategoryCounters:
        ...


def _level_for_xp(total_xp: int) -> int:
    return calculate_level_from_xp(total_xp).level


def _state_from_row(row: dict) -> UserScoreState:
    return UserScoreState(
        user_id=row["id"],
        points=row["pontos"],
        experience_points=row["experience_points"],
        level=row["level"],
        unlocked_achievement_ids=set(row["conquistas"] or []),
    )


class PostgresScoreStore:
    """ScoreStore backed by the application's PostgreSQL database"""

    async def read_user_score_state(self, user_id: str) -> UserScoreState:
        try:
            row = await queries.get_user_score_state(user_id)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="read_user_score_state", user_id=user_id)

        if row is None:
            raise RecordNotFoundError(
                f"No profile for user {user_id}",
                record_type="Perfil",
                record_id=user_id,
                user_id=user_id,
                operation="read_user_score_state",
            )
        return _state_from_row(row)

    async def write_user_score_state(self, user_id: str, delta: ScoreDelta) -> Optional[UserScoreState]:
        try:
            row = await queries.apply_score_delta(
                user_id,
                delta.points_delta,
                delta.xp_delta,
                list(dict.fromkeys(delta.new_achievement_ids)),
                _level_for_xp,
            )
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="write_user_score_state",
                user_id=user_id,
                context={"delta": delta.model_dump()},
            )

        if row is None:
            # Either the profile is gone or an id was already unlocked
            await self.read_user_score_state(user_id)
            return None
        return _state_from_row(row)

    async def read_category_counters(self, user_id: str) -> CategoryCounters:
        try:
            row = await queries.get_category_counters(user_id)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="read_category_counters", user_id=user_id)
        return CategoryCounters(**row)


class InMemoryScoreStore:
    """Process-local ScoreStore; every write runs under one asyncio.Lock"""

    def __init__(self):
        self._states: Dict[str, UserScoreState] = {}
        self._counters: Dict[str, CategoryCounters] = {}
        self._lock = asyncio.Lock()

    def create_profile(
        self,
        user_id: str,
        counters: Optional[CategoryCounters] = None,
        **fields
    ) -> UserScoreState:
        """Create a zeroed profile (fields override the defaults)"""
        state = UserScoreState(user_id=user_id, **fields)
        self._states[user_id] = state
        self._counters[user_id] = counters or CategoryCounters()
        logger.debug(f"Created in-memory profile for user {user_id}")
        return state.model_copy(deep=True)

    def set_counters(self, user_id: str, counters: CategoryCounters) -> None:
        self._counters[user_id] = counters

    async def read_user_score_state(self, user_id: str) -> UserScoreState:
        state = self._states.get(user_id)
        if state is None:
            raise RecordNotFoundError(
                f"No profile for user {user_id}",
                record_type="Perfil",
                record_id=user_id,
                user_id=user_id,
                operation="read_user_score_state",
            )
        return state.model_copy(deep=True)

    async def write_user_score_state(self, user_id: str, delta: ScoreDelta) -> Optional[UserScoreState]:
        async with self._lock:
            current = await self.read_user_score_state(user_id)

            if current.unlocked_achievement_ids.intersection(delta.new_achievement_ids):
                return None

            new_xp = current.experience_points + delta.xp_delta
            updated = UserScoreState(
                user_id=user_id,
                points=current.points + delta.points_delta,
                experience_points=new_xp,
                level=max(current.level, _level_for_xp(new_xp)),
                unlocked_achievement_ids=current.unlocked_achievement_ids | set(delta.new_achievement_ids),
            )
            # Yield while holding the lock, as a network write would
            await asyncio.sleep(0)
            self._states[user_id] = updated
            return updated.model_copy(deep=True)

    async def read_category_counters(self, user_id: str) -> CategoryCounters:
        await self.read_user_score_state(user_id)
        return self._counters[user_id].model_copy()
