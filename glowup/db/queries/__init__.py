"""
Database queries - Re-export all functions.

Module organization:
- scoring.py: Profile score columns, achievement ids, category counters
- streaks.py: Daily activity streaks
- notifications.py: Reward notifications
"""

# Score operations
from glowup.db.queries.scoring import (
    get_user_score_state,
    apply_score_delta,
    get_category_counters,
)

# Streak operations
from glowup.db.queries.streaks import (
    get_user_streak,
    upsert_user_streak,
    spend_freeze_token,
)

# Notification operations
from glowup.db.queries.notifications import (
    create_notification,
)

__all__ = [
    "get_user_score_state",
    "apply_score_delta",
    "get_category_counters",
    "get_user_streak",
    "upsert_user_streak",
    "spend_freeze_token",
    "create_notification",
]
