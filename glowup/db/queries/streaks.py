"""Streak database queries"""
import logging
from datetime import date
from typing import Optional
from glowup.db.connection import db

logger = logging.getLogger(__name__)


async def get_user_streak(user_id: str) -> Optional[dict]:
    """
    Get user's daily streak

    Returns:
        {
            'current_streak': int,
            'longest_streak': int,
            'last_activity_date': date,
            'freeze_tokens': int,
            'freeze_tokens_used': int,
            'last_freeze_date': Optional[date]
        }
        or None if the user never had a streak
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT current_streak, longest_streak, last_activity_date,
                       COALESCE(freeze_tokens, 0) AS freeze_tokens,
                       COALESCE(freeze_tokens_used, 0) AS freeze_tokens_used,
                       last_freeze_date
                FROM streaks
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def upsert_user_streak(
    user_id: str,
    current_streak: int,
    longest_streak: int,
    last_activity_date: date,
    freeze_tokens_earned: int = 0
) -> None:
    """
    Create or update user's daily streak

    freeze_tokens_earned is added to the stored balance rather than
    overwriting it, so a token spent concurrently is not given back.
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO streaks (user_id, current_streak, longest_streak, last_activity_date, freeze_tokens)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (user_id)
                DO UPDATE SET
                    current_streak = EXCLUDED.current_streak,
                    longest_streak = GREATEST(streaks.longest_streak, EXCLUDED.longest_streak),
                    last_activity_date = EXCLUDED.last_activity_date,
                    freeze_tokens = COALESCE(streaks.freeze_tokens, 0) + EXCLUDED.freeze_tokens,
                    updated_at = now()
                """,
                (user_id, current_streak, longest_streak, last_activity_date, freeze_tokens_earned)
            )
            await conn.commit()


async def spend_freeze_token(user_id: str, freeze_date: date) -> Optional[dict]:
    """
    Spend one freeze token to keep the streak alive on freeze_date

    The row only changes when a token is available, none was spent on
    freeze_date yet and no activity was recorded that day.

    Returns:
        Updated row (same shape as get_user_streak), or None if nothing
        was spent
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE streaks
                SET freeze_tokens = freeze_tokens - 1,
                    freeze_tokens_used = COALESCE(freeze_tokens_used, 0) + 1,
                    last_freeze_date = %(day)s,
                    last_activity_date = %(day)s,
                    updated_at = now()
                WHERE user_id = %(user_id)s
                  AND COALESCE(freeze_tokens, 0) > 0
                  AND last_freeze_date IS DISTINCT FROM %(day)s
                  AND last_activity_date IS DISTINCT FROM %(day)s
                RETURNING current_streak, longest_streak, last_activity_date,
                          freeze_tokens, freeze_tokens_used, last_freeze_date
                """,
                {"user_id": user_id, "day": freeze_date}
            )
            row = await cur.fetchone()
            await conn.commit()

    if row:
        logger.info(f"User {user_id} spent a freeze token for {freeze_date}")
    return dict(row) if row else None
