"""
Gamification core for GlowUp

- Level and rank calculator
- Point-granting action catalog with streak multipliers
- Achievement catalog and evaluator
- Daily streak tracking
"""

from glowup.gamification.xp_system import calculate_level_from_xp, get_rank, get_rank_tier
from glowup.gamification.actions import get_score_action, calculate_points_with_streak
from glowup.gamification.achievement_system import evaluate_achievements, get_achievement_progress
from glowup.gamification.streak_system import advance_streak, update_streak, use_streak_freeze

__all__ = [
    "calculate_level_from_xp",
    "get_rank",
    "get_rank_tier",
    "get_score_action",
    "calculate_points_with_streak",
    "evaluate_achievements",
    "get_achievement_progress",
    "advance_streak",
    "update_streak",
    "use_streak_freeze",
]
