"""Unit tests for database queries (glowup/db/queries/)"""
import pytest
from unittest.mock import patch
from datetime import date

from psycopg.types.json import Jsonb

from glowup.db.queries.notifications import create_notification
from glowup.db.queries.scoring import apply_score_delta, get_category_counters, get_user_score_state
from glowup.db.queries.streaks import get_user_streak, spend_freeze_token, upsert_user_streak


USER_ID = "6f1c2a3e-0000-4000-8000-000000000001"


# ============================================================================
# Score Queries Tests
# ============================================================================

@pytest.mark.asyncio
async def test_get_user_score_state(fake_db_factory):
    row = {"id": USER_ID, "pontos": 10, "experience_points": 25, "level": 1, "conquistas": []}
    fake_db = fake_db_factory(row)

    with patch('glowup.db.queries.scoring.db', fake_db):
        result = await get_user_score_state(USER_ID)

    assert result == row
    query, params = fake_db.cursor.executed[0]
    assert "FROM profiles" in query
    assert params == (USER_ID,)


@pytest.mark.asyncio
async def test_get_user_score_state_missing(fake_db_factory):
    with patch('glowup.db.queries.scoring.db', fake_db_factory()):
        assert await get_user_score_state(USER_ID) is None


@pytest.mark.asyncio
async def test_apply_score_delta_increments_in_sql(fake_db_factory):
    """Points are added in the UPDATE itself, guarded against re-unlocking"""
    row = {"id": USER_ID, "pontos": 50, "experience_points": 50, "level": 1, "conquistas": ["primeiro-passo"]}
    fake_db = fake_db_factory(row)

    with patch('glowup.db.queries.scoring.db', fake_db):
        result = await apply_score_delta(USER_ID, 50, 50, ["primeiro-passo"], lambda xp: 1)

    assert result == row
    assert fake_db.conn.transactions == 1
    assert len(fake_db.cursor.executed) == 1

    query, params = fake_db.cursor.executed[0]
    assert "pontos = COALESCE(pontos, 0) + %(points)s" in query
    assert "?| %(id_list)s::text[]" in query
    assert params["points"] == 50
    assert params["xp"] == 50
    assert params["id_list"] == ["primeiro-passo"]
    assert isinstance(params["ids"], Jsonb)


@pytest.mark.asyncio
async def test_apply_score_delta_raises_level(fake_db_factory):
    """A higher computed level is stored with GREATEST in the same transaction"""
    row = {"id": USER_ID, "pontos": 100, "experience_points": 200, "level": 1, "conquistas": []}
    fake_db = fake_db_factory(row, {"level": 2})

    with patch('glowup.db.queries.scoring.db', fake_db):
        result = await apply_score_delta(USER_ID, 100, 200, [], lambda xp: 2)

    assert result["level"] == 2
    assert len(fake_db.cursor.executed) == 2

    level_query, level_params = fake_db.cursor.executed[1]
    assert "GREATEST" in level_query
    assert level_params == (2, USER_ID)


@pytest.mark.asyncio
async def test_apply_score_delta_no_row(fake_db_factory):
    """Missing profile or already-unlocked id: nothing written"""
    fake_db = fake_db_factory()

    with patch('glowup.db.queries.scoring.db', fake_db):
        result = await apply_score_delta(USER_ID, 50, 50, ["social"], lambda xp: 5)

    assert result is None
    assert len(fake_db.cursor.executed) == 1


@pytest.mark.asyncio
async def test_get_category_counters(fake_db_factory):
    row = {
        "current_streak": 3,
        "longest_streak": 5,
        "friends_count": 1,
        "total_challenges": 0,
        "login_days": 2,
    }
    fake_db = fake_db_factory(row)

    with patch('glowup.db.queries.scoring.db', fake_db):
        result = await get_category_counters(USER_ID)

    assert result == row
    query, _ = fake_db.cursor.executed[0]
    assert "friendships" in query
    assert "status = 'accepted'" in query


@pytest.mark.asyncio
async def test_get_category_counters_missing_profile(fake_db_factory):
    with patch('glowup.db.queries.scoring.db', fake_db_factory()):
        result = await get_category_counters(USER_ID)

    assert set(result) == {"current_streak", "longest_streak", "friends_count", "total_challenges", "login_days"}
    assert all(value == 0 for value in result.values())


# ============================================================================
# Streak Queries Tests
# ============================================================================

@pytest.mark.asyncio
async def test_get_user_streak(fake_db_factory):
    row = {
        "current_streak": 4,
        "longest_streak": 9,
        "last_activity_date": date(2026, 3, 9),
        "freeze_tokens": 1,
        "freeze_tokens_used": 0,
        "last_freeze_date": None,
    }

    fake_db = fake_db_factory(row)
    with patch('glowup.db.queries.streaks.db', fake_db):
        assert await get_user_streak(USER_ID) == row

    query, _ = fake_db.cursor.executed[0]
    assert "freeze_tokens" in query

    with patch('glowup.db.queries.streaks.db', fake_db_factory()):
        assert await get_user_streak(USER_ID) is None


@pytest.mark.asyncio
async def test_upsert_user_streak(fake_db_factory):
    fake_db = fake_db_factory()

    with patch('glowup.db.queries.streaks.db', fake_db):
        await upsert_user_streak(USER_ID, 7, 9, date(2026, 3, 10), freeze_tokens_earned=1)

    query, params = fake_db.cursor.executed[0]
    assert "ON CONFLICT (user_id)" in query
    assert "streaks.freeze_tokens, 0) + EXCLUDED.freeze_tokens" in query
    assert params == (USER_ID, 7, 9, date(2026, 3, 10), 1)
    assert fake_db.conn.commits == 1


@pytest.mark.asyncio
async def test_spend_freeze_token_guarded_update(fake_db_factory):
    """One token, at most once a day, only on a day without activity"""
    day = date(2026, 3, 10)
    row = {
        "current_streak": 4,
        "longest_streak": 9,
        "last_activity_date": day,
        "freeze_tokens": 0,
        "freeze_tokens_used": 1,
        "last_freeze_date": day,
    }
    fake_db = fake_db_factory(row)

    with patch('glowup.db.queries.streaks.db', fake_db):
        result = await spend_freeze_token(USER_ID, day)

    assert result == row
    query, params = fake_db.cursor.executed[0]
    assert "freeze_tokens = freeze_tokens - 1" in query
    assert "COALESCE(freeze_tokens, 0) > 0" in query
    assert "last_freeze_date IS DISTINCT FROM %(day)s" in query
    assert params == {"user_id": USER_ID, "day": day}
    assert fake_db.conn.commits == 1


@pytest.mark.asyncio
async def test_spend_freeze_token_nothing_spent(fake_db_factory):
    with patch('glowup.db.queries.streaks.db', fake_db_factory()):
        assert await spend_freeze_token(USER_ID, date(2026, 3, 10)) is None


# ============================================================================
# Notification Queries Tests
# ============================================================================

@pytest.mark.asyncio
async def test_create_notification(fake_db_factory):
    fake_db = fake_db_factory({"id": "b3f1"})

    with patch('glowup.db.queries.notifications.db', fake_db):
        notification_id = await create_notification(USER_ID, "🏆 Nova Conquista!", "Social desbloqueado!", "achievement")

    assert notification_id == "b3f1"
    _, params = fake_db.cursor.executed[0]
    assert params == (USER_ID, "🏆 Nova Conquista!", "Social desbloqueado!", "achievement", None)
    assert fake_db.conn.commits == 1
