"""
Score Action Catalog

Points and XP granted per user action, plus the streak multiplier applied to
points (never to XP).

Streak multipliers (last matching bracket):
- 1+ days: 1.0x
- 3+ days: 1.2x
- 7+ days: 1.5x
- 14+ days: 1.8x
- 30+ days: 2.0x
- 60+ days: 2.5x
- 100+ days: 3.0x
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Tuple, Union
import logging

from glowup.exceptions import ConfigurationError
from glowup.gamification.xp_system import find_bracket_index
from glowup.models.scoring import ActionKey, ScoreAction

logger = logging.getLogger(__name__)


def _action(key: ActionKey, base_points: int, xp_reward: int, description: str, emoji: str) -> ScoreAction:
    return ScoreAction(
        key=key,
        base_points=base_points,
        xp_reward=xp_reward,
        description=description,
        emoji=emoji,
    )


SCORE_ACTIONS: Dict[ActionKey, ScoreAction] = {
    # Daily activities
    ActionKey.DAILY_CHECKIN: _action(ActionKey.DAILY_CHECKIN, 10, 25, "Check-in diário", "✅"),
    ActionKey.COMPLETE_TASK: _action(ActionKey.COMPLETE_TASK, 15, 30, "Completar tarefa", "📋"),
    ActionKey.COMPLETE_PLAN: _action(ActionKey.COMPLETE_PLAN, 100, 200, "Completar plano", "🎯"),

    # Social
    ActionKey.SEND_CHALLENGE: _action(ActionKey.SEND_CHALLENGE, 20, 40, "Enviar desafio", "⚔️"),
    ActionKey.COMPLETE_CHALLENGE: _action(ActionKey.COMPLETE_CHALLENGE, 50, 100, "Completar desafio", "🏆"),
    ActionKey.ACCEPT_CHALLENGE: _action(ActionKey.ACCEPT_CHALLENGE, 10, 20, "Aceitar desafio", "🤝"),
    ActionKey.ADD_FRIEND: _action(ActionKey.ADD_FRIEND, 25, 50, "Adicionar amigo", "👥"),
    ActionKey.SEND_MESSAGE: _action(ActionKey.SEND_MESSAGE, 5, 10, "Enviar mensagem", "💬"),

    # Content creation
    ActionKey.CREATE_STORY: _action(ActionKey.CREATE_STORY, 30, 60, "Criar story", "📸"),
    ActionKey.CREATE_PRODUCT: _action(ActionKey.CREATE_PRODUCT, 100, 200, "Criar produto", "🛍️"),
    ActionKey.MAKE_SALE: _action(ActionKey.MAKE_SALE, 200, 400, "Realizar venda", "💰"),
    ActionKey.LEAVE_REVIEW: _action(ActionKey.LEAVE_REVIEW, 25, 50, "Deixar avaliação", "⭐"),

    # Focus timer
    ActionKey.FOCUS_SESSION: _action(ActionKey.FOCUS_SESSION, 25, 50, "Sessão de foco completa", "🎯"),
    ActionKey.FOCUS_STREAK_4: _action(ActionKey.FOCUS_STREAK_4, 50, 100, "4 sessões consecutivas", "⚡"),

    # Streak milestones
    ActionKey.STREAK_BONUS_3: _action(ActionKey.STREAK_BONUS_3, 50, 100, "Streak de 3 dias", "🔥"),
    ActionKey.STREAK_BONUS_7: _action(ActionKey.STREAK_BONUS_7, 150, 300, "Streak de 7 dias", "🔥🔥"),
    ActionKey.STREAK_BONUS_30: _action(ActionKey.STREAK_BONUS_30, 500, 1000, "Streak de 30 dias", "👑"),

    # Goals
    ActionKey.CREATE_GOAL: _action(ActionKey.CREATE_GOAL, 20, 40, "Criar meta", "🎯"),
    ActionKey.COMPLETE_GOAL: _action(ActionKey.COMPLETE_GOAL, 150, 300, "Completar meta", "🏅"),
}

# (minimum streak days, multiplier)
STREAK_MULTIPLIERS: List[Tuple[int, float]] = [
    (1, 1.0),
    (3, 1.2),
    (7, 1.5),
    (14, 1.8),
    (30, 2.0),
    (60, 2.5),
    (100, 3.0),
]


def get_score_action(key: Union[ActionKey, str]) -> ScoreAction:
    """
    Look up an action definition

    Args:
        key: ActionKey member or its string value (e.g. "FOCUS_SESSION")

    Raises:
        ConfigurationError: the string is not a known action key
    """
    try:
        action_key = ActionKey(key)
    except ValueError:
        raise ConfigurationError(
            f"Unknown score action: {key!r}",
            config_key="SCORE_ACTIONS",
            operation="get_score_action",
        )
    return SCORE_ACTIONS[action_key]


def get_streak_multiplier(streak_days: int) -> float:
    """Points multiplier for the current streak length (1.0 with no streak)"""
    if streak_days < STREAK_MULTIPLIERS[0][0]:
        return 1.0
    index = find_bracket_index(streak_days, [days for days, _ in STREAK_MULTIPLIERS])
    return STREAK_MULTIPLIERS[index][1]


def calculate_points_with_streak(base_points: int, streak_days: int) -> int:
    """
    Apply the streak multiplier to base points

    Rounds half up, so 25 points at 1.5x is 38, not 37.
    """
    multiplier = Decimal(str(get_streak_multiplier(streak_days)))
    return int((Decimal(base_points) * multiplier).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
