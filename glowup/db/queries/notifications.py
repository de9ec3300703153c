"""Notification database queries"""
import logging
from typing import Optional
from glowup.db.connection import db

logger = logging.getLogger(__name__)


async def create_notification(
    user_id: str,
    title: str,
    message: str,
    notification_type: str,
    action_url: Optional[str] = None
) -> Optional[str]:
    """
    Insert a user notification

    Returns:
        Notification ID (UUID string)
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO notifications (user_id, title, message, type, action_url)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
                """,
                (user_id, title, message, notification_type, action_url)
            )
            result = await cur.fetchone()
            await conn.commit()
            return str(result['id']) if result else None
