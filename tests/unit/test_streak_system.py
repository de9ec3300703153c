"""Unit tests for the Daily Streak System (glowup/gamification/streak_system.py)"""
import pytest
from unittest.mock import AsyncMock, patch
from datetime import date, timedelta

from glowup.gamification.streak_system import (
    advance_streak,
    can_use_freeze,
    earn_freeze_token,
    get_user_streak,
    is_streak_active,
    plan_streak,
    save_streak,
    update_streak,
    use_freeze,
    use_streak_freeze,
)
from glowup.models.scoring import ActionKey, StreakState


TODAY = date(2026, 3, 10)
YESTERDAY = TODAY - timedelta(days=1)


def make_state(current=0, longest=0, last=None, user_id="user-1", **freeze):
    return StreakState(
        user_id=user_id,
        current_streak=current,
        longest_streak=longest,
        last_activity_date=last,
        **freeze,
    )


def make_row(current, longest, last, freeze_tokens=0, freeze_tokens_used=0, last_freeze_date=None):
    return {
        "current_streak": current,
        "longest_streak": longest,
        "last_activity_date": last,
        "freeze_tokens": freeze_tokens,
        "freeze_tokens_used": freeze_tokens_used,
        "last_freeze_date": last_freeze_date,
    }


# ============================================================================
# State Transition Tests
# ============================================================================

def test_first_activity_starts_streak():
    new = advance_streak(make_state(), TODAY)

    assert new.current_streak == 1
    assert new.longest_streak == 1
    assert new.last_activity_date == TODAY


def test_activity_day_after_continues_streak():
    new = advance_streak(make_state(4, 4, YESTERDAY), TODAY)

    assert new.current_streak == 5
    assert new.longest_streak == 5


def test_same_day_activity_is_not_double_counted():
    state = make_state(4, 6, TODAY)
    new = advance_streak(state, TODAY)

    assert new == state
    assert new is not state


def test_gap_resets_streak_keeping_longest():
    """Two or more days without activity restarts at 1"""
    new = advance_streak(make_state(8, 8, TODAY - timedelta(days=2)), TODAY)

    assert new.current_streak == 1
    assert new.longest_streak == 8


def test_longest_only_grows_when_current_passes_it():
    new = advance_streak(make_state(2, 10, YESTERDAY), TODAY)
    assert new.current_streak == 3
    assert new.longest_streak == 10


def test_late_activity_for_past_day_is_ignored():
    state = make_state(3, 3, TODAY)
    assert advance_streak(state, YESTERDAY) == state


def test_advance_streak_does_not_modify_input():
    state = make_state(1, 1, YESTERDAY)
    advance_streak(state, TODAY)
    assert state.current_streak == 1


def test_is_streak_active():
    assert is_streak_active(make_state(3, 3, TODAY), today=TODAY) is True
    assert is_streak_active(make_state(3, 3, YESTERDAY), today=TODAY) is True
    assert is_streak_active(make_state(3, 3, TODAY - timedelta(days=2)), today=TODAY) is False
    assert is_streak_active(make_state(), today=TODAY) is False


# ============================================================================
# Freeze Token Tests
# ============================================================================

def test_freeze_token_earned_every_seven_days():
    assert earn_freeze_token(make_state(7, 7, TODAY)).freeze_tokens == 1
    assert earn_freeze_token(make_state(14, 14, TODAY, freeze_tokens=2)).freeze_tokens == 3
    assert earn_freeze_token(make_state(8, 8, TODAY)).freeze_tokens == 0
    assert earn_freeze_token(make_state()).freeze_tokens == 0


def test_use_freeze_keeps_streak_alive():
    state = make_state(5, 5, YESTERDAY, freeze_tokens=2)

    frozen = use_freeze(state, TODAY)

    assert frozen.freeze_tokens == 1
    assert frozen.freeze_tokens_used == 1
    assert frozen.last_freeze_date == TODAY
    assert frozen.last_activity_date == TODAY
    assert frozen.current_streak == 5

    # The next day's activity continues the streak
    assert advance_streak(frozen, TODAY + timedelta(days=1)).current_streak == 6


def test_use_freeze_once_per_day():
    state = make_state(5, 5, YESTERDAY, freeze_tokens=2, last_freeze_date=TODAY)
    assert use_freeze(state, TODAY) is None


def test_use_freeze_refused():
    # No tokens
    assert use_freeze(make_state(5, 5, YESTERDAY), TODAY) is None
    # Today already counts
    assert use_freeze(make_state(5, 5, TODAY, freeze_tokens=1), TODAY) is None
    # Streak already broken
    assert use_freeze(make_state(5, 5, TODAY - timedelta(days=3), freeze_tokens=1), TODAY) is None


def test_can_use_freeze():
    assert can_use_freeze(make_state(2, 2, YESTERDAY, freeze_tokens=1), TODAY) is True
    assert can_use_freeze(make_state(0, 0, None, freeze_tokens=1), TODAY) is False


def test_advance_streak_keeps_freeze_fields():
    state = make_state(3, 3, YESTERDAY, freeze_tokens=2, last_freeze_date=YESTERDAY)
    new = advance_streak(state, TODAY)

    assert new.freeze_tokens == 2
    assert new.last_freeze_date == YESTERDAY


# ============================================================================
# Persistence Tests
# ============================================================================

@pytest.mark.asyncio
async def test_get_user_streak_without_row():
    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=None)):
        state = await get_user_streak("user-1")

    assert state.current_streak == 0
    assert state.last_activity_date is None
    assert state.freeze_tokens == 0


@pytest.mark.asyncio
async def test_update_streak_reaches_milestone():
    """Crossing 3 days reports the 3-day bonus action"""
    row = make_row(2, 2, YESTERDAY)

    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=row)):
        with patch('glowup.gamification.streak_system.queries.upsert_user_streak', AsyncMock()) as mock_upsert:
            result = await update_streak("user-1", TODAY)

    assert result["current_streak"] == 3
    assert result["longest_streak"] == 3
    assert result["old_streak"] == 2
    assert result["changed"] is True
    assert result["milestone_action"] == ActionKey.STREAK_BONUS_3
    assert result["earned_freeze_token"] is False
    assert "Marco de 3 dias" in result["message"]
    mock_upsert.assert_called_once_with("user-1", 3, 3, TODAY, freeze_tokens_earned=0)


@pytest.mark.asyncio
async def test_update_streak_earns_freeze_token_at_seven():
    row = make_row(6, 6, YESTERDAY, freeze_tokens=1)

    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=row)):
        with patch('glowup.gamification.streak_system.queries.upsert_user_streak', AsyncMock()) as mock_upsert:
            result = await update_streak("user-1", TODAY)

    assert result["milestone_action"] == ActionKey.STREAK_BONUS_7
    assert result["earned_freeze_token"] is True
    assert result["state"].freeze_tokens == 2
    assert "gelo" in result["message"]
    mock_upsert.assert_called_once_with("user-1", 7, 7, TODAY, freeze_tokens_earned=1)


@pytest.mark.asyncio
async def test_update_streak_same_day_writes_nothing():
    row = make_row(2, 5, TODAY)

    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=row)):
        with patch('glowup.gamification.streak_system.queries.upsert_user_streak', AsyncMock()) as mock_upsert:
            result = await update_streak("user-1", TODAY)

    assert result["changed"] is False
    assert result["current_streak"] == 2
    assert result["milestone_action"] is None
    mock_upsert.assert_not_called()


@pytest.mark.asyncio
async def test_update_streak_broken():
    row = make_row(5, 5, TODAY - timedelta(days=3))

    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=row)):
        with patch('glowup.gamification.streak_system.queries.upsert_user_streak', AsyncMock()):
            result = await update_streak("user-1", TODAY)

    assert result["current_streak"] == 1
    assert result["longest_streak"] == 5
    assert "reiniciada" in result["message"]


@pytest.mark.asyncio
async def test_update_streak_first_activity():
    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=None)):
        with patch('glowup.gamification.streak_system.queries.upsert_user_streak', AsyncMock()):
            result = await update_streak("user-1", TODAY)

    assert result["current_streak"] == 1
    assert result["milestone_action"] is None
    assert "iniciada" in result["message"]


@pytest.mark.asyncio
async def test_plan_streak_writes_nothing():
    """Planning is repeatable until the plan is saved"""
    row = make_row(2, 2, YESTERDAY)

    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=row)):
        with patch('glowup.gamification.streak_system.queries.upsert_user_streak', AsyncMock()) as mock_upsert:
            first = await plan_streak("user-1", TODAY)
            second = await plan_streak("user-1", TODAY)

    mock_upsert.assert_not_called()
    assert first["milestone_action"] == second["milestone_action"] == ActionKey.STREAK_BONUS_3


@pytest.mark.asyncio
async def test_save_streak_skips_unchanged_plan():
    row = make_row(2, 2, TODAY)

    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=row)):
        with patch('glowup.gamification.streak_system.queries.upsert_user_streak', AsyncMock()) as mock_upsert:
            plan = await plan_streak("user-1", TODAY)
            await save_streak(plan)

    mock_upsert.assert_not_called()


@pytest.mark.asyncio
async def test_use_streak_freeze_success():
    row = make_row(5, 5, YESTERDAY, freeze_tokens=2)
    spent = make_row(5, 5, TODAY, freeze_tokens=1, freeze_tokens_used=1, last_freeze_date=TODAY)

    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=row)):
        with patch('glowup.gamification.streak_system.queries.spend_freeze_token', AsyncMock(return_value=spent)) as mock_spend:
            result = await use_streak_freeze("user-1", TODAY)

    assert result["success"] is True
    assert result["freeze_tokens"] == 1
    assert result["current_streak"] == 5
    assert "Protegida" in result["message"]
    mock_spend.assert_awaited_once_with("user-1", TODAY)


@pytest.mark.asyncio
async def test_use_streak_freeze_without_tokens():
    row = make_row(5, 5, YESTERDAY)

    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(return_value=row)):
        with patch('glowup.gamification.streak_system.queries.spend_freeze_token', AsyncMock()) as mock_spend:
            result = await use_streak_freeze("user-1", TODAY)

    assert result["success"] is False
    assert "não tem gelos" in result["message"]
    mock_spend.assert_not_called()


@pytest.mark.asyncio
async def test_use_streak_freeze_lost_race():
    """Another request spent the last token between the read and the update"""
    before = make_row(5, 5, YESTERDAY, freeze_tokens=1)
    after = make_row(5, 5, TODAY, freeze_tokens=0, freeze_tokens_used=1, last_freeze_date=TODAY)

    with patch('glowup.gamification.streak_system.queries.get_user_streak', AsyncMock(side_effect=[before, after])):
        with patch('glowup.gamification.streak_system.queries.spend_freeze_token', AsyncMock(return_value=None)):
            result = await use_streak_freeze("user-1", TODAY)

    assert result["success"] is False
    assert result["freeze_tokens"] == 0
