"""Pydantic models for the GlowUp scoring engine"""
from glowup.models.scoring import (
    ActionKey,
    AchievementCategory,
    Rarity,
    CelebrationType,
    NotificationKind,
    AwardStatus,
    ScoreAction,
    AchievementDefinition,
    UserScoreState,
    ScoreDelta,
    CategoryCounters,
    StreakState,
    LevelInfo,
    RankInfo,
    RankTier,
    AchievementProgress,
    Notification,
    Celebration,
    AwardResult,
)

__all__ = [
    "ActionKey",
    "AchievementCategory",
    "Rarity",
    "CelebrationType",
    "NotificationKind",
    "AwardStatus",
    "ScoreAction",
    "AchievementDefinition",
    "UserScoreState",
    "ScoreDelta",
    "CategoryCounters",
    "StreakState",
    "LevelInfo",
    "RankInfo",
    "RankTier",
    "AchievementProgress",
    "Notification",
    "Celebration",
    "AwardResult",
]
