"""
Daily Activity Streak

States:
- no streak (current_streak == 0)
- active (current_streak >= 1)

Transitions on an activity:
- first activity ever, or a gap of 2+ days: active(1)
- last activity was yesterday: active(n + 1)
- last activity was today: unchanged (no double counting)

longest_streak never drops below current_streak. Reaching 3, 7 or 30 days
reports the matching STREAK_BONUS action so the caller can grant it.

Streak protection (freeze tokens):
- one token is earned every time the streak reaches a multiple of 7 days
- spending a token counts today as active without an activity, at most once
  a day and only while the streak is still alive
"""

from typing import Dict, Optional
from datetime import date, timedelta
import logging

from glowup.db import queries
from glowup.models.scoring import ActionKey, StreakState

logger = logging.getLogger(__name__)

STREAK_MILESTONES: Dict[int, ActionKey] = {
    3: ActionKey.STREAK_BONUS_3,
    7: ActionKey.STREAK_BONUS_7,
    30: ActionKey.STREAK_BONUS_30,
}

FREEZE_TOKEN_INTERVAL = 7  # days of streak per earned token


def advance_streak(state: StreakState, activity_date: date) -> StreakState:
    """
    Apply one activity to a streak

    Args:
        state: Streak before the activity
        activity_date: Calendar day the activity happened on

    Returns:
        New StreakState (the input is not modified)
    """
    last_date = state.last_activity_date

    if last_date == activity_date:
        return state.model_copy()

    if last_date is not None and activity_date < last_date:
        # Late-arriving activity for a day already covered
        return state.model_copy()

    if last_date is not None and last_date == activity_date - timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1

    return state.model_copy(update={
        "current_streak": current,
        "longest_streak": max(state.longest_streak, current),
        "last_activity_date": activity_date,
    })


def earn_freeze_token(state: StreakState) -> StreakState:
    """Add a freeze token if the streak sits on a multiple of 7 days"""
    if state.current_streak > 0 and state.current_streak % FREEZE_TOKEN_INTERVAL == 0:
        return state.model_copy(update={"freeze_tokens": state.freeze_tokens + 1})
    return state.model_copy()


def can_use_freeze(state: StreakState, today: date) -> bool:
    """Whether a token may be spent to protect the streak today"""
    return (
        state.freeze_tokens > 0
        and state.last_freeze_date != today
        and state.last_activity_date != today
        and is_streak_active(state, today)
    )


def use_freeze(state: StreakState, today: date) -> Optional[StreakState]:
    """
    Spend a freeze token so today counts as active

    Returns:
        New StreakState, or None if no token can be spent today
    """
    if not can_use_freeze(state, today):
        return None
    return state.model_copy(update={
        "freeze_tokens": state.freeze_tokens - 1,
        "freeze_tokens_used": state.freeze_tokens_used + 1,
        "last_freeze_date": today,
        "last_activity_date": today,
    })


def is_streak_active(state: StreakState, today: Optional[date] = None) -> bool:
    """
    Whether the streak is still alive today

    A streak survives until the end of the day after the last activity.
    """
    if today is None:
        today = date.today()
    if state.current_streak == 0 or state.last_activity_date is None:
        return False
    return (today - state.last_activity_date).days <= 1


def _state_from_row(user_id: str, row: dict) -> StreakState:
    return StreakState(
        user_id=user_id,
        current_streak=row["current_streak"],
        longest_streak=row["longest_streak"],
        last_activity_date=row["last_activity_date"],
        freeze_tokens=row["freeze_tokens"],
        freeze_tokens_used=row["freeze_tokens_used"],
        last_freeze_date=row["last_freeze_date"],
    )


async def get_user_streak(user_id: str) -> StreakState:
    """Current streak for user (zeroed if none was ever recorded)"""
    row = await queries.get_user_streak(user_id)
    if not row:
        return StreakState(user_id=user_id)
    return _state_from_row(user_id, row)


async def plan_streak(
    user_id: str,
    activity_date: Optional[date] = None
) -> Dict[str, any]:
    """
    Work out what an activity does to the streak, without saving it

    The caller saves the plan with save_streak once the rewards tied to it
    are confirmed. Until then a repeated activity on the same day plans the
    same transition again, milestone included.

    Args:
        user_id: Profile id
        activity_date: Date of activity (defaults to today)

    Returns:
        {
            'user_id': str,
            'current_streak': int,
            'longest_streak': int,
            'old_streak': int,
            'changed': bool,
            'milestone_action': Optional[ActionKey],
            'earned_freeze_token': bool,
            'message': str,
            'state': StreakState
        }
    """
    if activity_date is None:
        activity_date = date.today()

    old = await get_user_streak(user_id)
    new = advance_streak(old, activity_date)
    changed = new != old

    milestone_action = None
    earned_freeze_token = False
    if changed:
        milestone_action = STREAK_MILESTONES.get(new.current_streak)
        with_token = earn_freeze_token(new)
        earned_freeze_token = with_token.freeze_tokens > new.freeze_tokens
        new = with_token

    if not changed:
        message = f"Sequência mantida! Dia {new.current_streak} 🔥"
    elif new.current_streak == 1 and old.current_streak > 1:
        message = f"Sequência reiniciada. Anterior: {old.current_streak} dias. Dia 1 💪"
        logger.info(
            f"User {user_id} streak broken. Was {old.current_streak}, "
            f"last activity {old.last_activity_date}"
        )
    elif new.current_streak == 1:
        message = "Sequência iniciada! Dia 1 🎉"
    else:
        message = f"Sequência continua! Dia {new.current_streak} 🔥"

    if milestone_action:
        message += f"\n🏆 Marco de {new.current_streak} dias alcançado!"
    if earned_freeze_token:
        message += "\n❄️ +1 gelo para proteger sua sequência!"

    return {
        "user_id": user_id,
        "current_streak": new.current_streak,
        "longest_streak": new.longest_streak,
        "old_streak": old.current_streak,
        "changed": changed,
        "milestone_action": milestone_action,
        "earned_freeze_token": earned_freeze_token,
        "message": message,
        "state": new,
    }


async def save_streak(plan: Dict[str, any]) -> None:
    """Persist a plan from plan_streak (no-op when nothing changed)"""
    if not plan["changed"]:
        return

    new = plan["state"]
    await queries.upsert_user_streak(
        plan["user_id"],
        new.current_streak,
        new.longest_streak,
        new.last_activity_date,
        freeze_tokens_earned=1 if plan["earned_freeze_token"] else 0,
    )
    logger.info(
        f"Updated streak for user {plan['user_id']}: "
        f"{plan['old_streak']} → {new.current_streak} days"
    )


async def update_streak(
    user_id: str,
    activity_date: Optional[date] = None
) -> Dict[str, any]:
    """
    Record an activity and persist the new streak right away

    Returns:
        Same dict as plan_streak
    """
    plan = await plan_streak(user_id, activity_date)
    await save_streak(plan)
    return plan


async def use_streak_freeze(
    user_id: str,
    today: Optional[date] = None
) -> Dict[str, any]:
    """
    Spend a freeze token to protect the streak today

    Returns:
        {
            'success': bool,
            'current_streak': int,
            'freeze_tokens': int,
            'message': str
        }
    """
    if today is None:
        today = date.today()

    state = await get_user_streak(user_id)
    frozen = use_freeze(state, today)

    if frozen is None:
        if state.freeze_tokens <= 0:
            message = "Você não tem gelos disponíveis para proteger sua sequência"
        elif state.last_freeze_date == today:
            message = "Você já usou um gelo hoje"
        elif state.last_activity_date == today:
            message = "Sua sequência de hoje já está garantida"
        else:
            message = "Não há sequência ativa para proteger"
        return {
            "success": False,
            "current_streak": state.current_streak,
            "freeze_tokens": state.freeze_tokens,
            "message": message,
        }

    row = await queries.spend_freeze_token(user_id, today)
    if row is None:
        # Spent by a concurrent request
        current = await get_user_streak(user_id)
        return {
            "success": False,
            "current_streak": current.current_streak,
            "freeze_tokens": current.freeze_tokens,
            "message": "Você já usou um gelo hoje",
        }

    saved = _state_from_row(user_id, row)
    return {
        "success": True,
        "current_streak": saved.current_streak,
        "freeze_tokens": saved.freeze_tokens,
        "message": f"Sequência Protegida! ❄️ Sua sequência de {saved.current_streak} dias está segura!",
    }
