"""Score and achievement database queries (profiles table)"""
import logging
from typing import Callable, Optional
from psycopg.types.json import Jsonb
from glowup.db.connection import db

logger = logging.getLogger(__name__)


async def get_user_score_state(user_id: str) -> Optional[dict]:
    """
    Get the score columns of a profile

    Returns:
        {
            'id': str,
            'pontos': int,
            'experience_points': int,
            'level': int,
            'conquistas': list[str]
        }
        or None if no profile row exists
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id::text AS id,
                       COALESCE(pontos, 0) AS pontos,
                       COALESCE(experience_points, 0) AS experience_points,
                       COALESCE(level, 1) AS level,
                       COALESCE(conquistas, '[]'::jsonb) AS conquistas
                FROM profiles
                WHERE id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def apply_score_delta(
    user_id: str,
    points_delta: int,
    xp_delta: int,
    new_achievement_ids: list[str],
    compute_level: Callable[[int], int]
) -> Optional[dict]:
    """
    Atomically add points/XP and append achievement ids

    Increments are applied against the stored values, so concurrent grants
    add up. The ids are appended in the same statement as the points. If any
    of new_achievement_ids is already stored the row is left untouched and
    None is returned, so a reward is never credited twice.

    The level is then raised (never lowered) to compute_level(new_xp) in the
    same transaction.

    Args:
        user_id: Profile id
        points_delta: Points to add (>= 0)
        xp_delta: Experience points to add (>= 0)
        new_achievement_ids: Ids to append
        compute_level: Maps total XP to a level

    Returns:
        Updated row (same shape as get_user_score_state), or None when the
        profile does not exist or an id was already unlocked
    """
    async with db.connection() as conn:
        async with conn.transaction():
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE profiles
                    SET pontos = COALESCE(pontos, 0) + %(points)s,
                        experience_points = COALESCE(experience_points, 0) + %(xp)s,
                        conquistas = COALESCE(conquistas, '[]'::jsonb) || %(ids)s,
                        updated_at = now()
                    WHERE id = %(user_id)s
                      AND NOT (COALESCE(conquistas, '[]'::jsonb) ?| %(id_list)s::text[])
                    RETURNING id::text AS id,
                              pontos,
                              experience_points,
                              COALESCE(level, 1) AS level,
                              conquistas
                    """,
                    {
                        "points": points_delta,
                        "xp": xp_delta,
                        "ids": Jsonb(new_achievement_ids),
                        "id_list": new_achievement_ids,
                        "user_id": user_id,
                    }
                )
                row = await cur.fetchone()
                if not row:
                    return None

                row = dict(row)
                new_level = compute_level(row["experience_points"])
                if new_level > row["level"]:
                    await cur.execute(
                        """
                        UPDATE profiles
                        SET level = GREATEST(COALESCE(level, 1), %s)
                        WHERE id = %s
                        RETURNING level
                        """,
                        (new_level, user_id)
                    )
                    level_row = await cur.fetchone()
                    row["level"] = level_row["level"]

    logger.debug(
        f"Applied score delta for user {user_id}: +{points_delta} pontos, "
        f"+{xp_delta} XP, achievements={new_achievement_ids}"
    )
    return row


async def get_category_counters(user_id: str) -> dict:
    """
    Get the counters achievements are evaluated against

    Each counter comes from a different table owned by another feature:
    streaks, friendships (accepted), and the profile's challenge/login totals.

    Returns:
        {
            'current_streak': int,
            'longest_streak': int,
            'friends_count': int,
            'total_challenges': int,
            'login_days': int
        }
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    COALESCE((SELECT current_streak FROM streaks WHERE user_id = p.id), 0) AS current_streak,
                    COALESCE((SELECT longest_streak FROM streaks WHERE user_id = p.id), 0) AS longest_streak,
                    (SELECT COUNT(*) FROM friendships f
                     WHERE f.user_id = p.id AND f.status = 'accepted') AS friends_count,
                    COALESCE(p.total_challenges_completed, 0) AS total_challenges,
                    COALESCE(p.login_streak, 0) AS login_days
                FROM profiles p
                WHERE p.id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()

            if not row:
                return {
                    "current_streak": 0,
                    "longest_streak": 0,
                    "friends_count": 0,
                    "total_challenges": 0,
                    "login_days": 0,
                }
            return dict(row)
