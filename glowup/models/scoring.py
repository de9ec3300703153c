"""Scoring and achievement models for gamification"""
from datetime import date
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ActionKey(str, Enum):
    """Every user action that grants points"""
    DAILY_CHECKIN = "DAILY_CHECKIN"
    COMPLETE_TASK = "COMPLETE_TASK"
    COMPLETE_PLAN = "COMPLETE_PLAN"
    SEND_CHALLENGE = "SEND_CHALLENGE"
    COMPLETE_CHALLENGE = "COMPLETE_CHALLENGE"
    ACCEPT_CHALLENGE = "ACCEPT_CHALLENGE"
    ADD_FRIEND = "ADD_FRIEND"
    SEND_MESSAGE = "SEND_MESSAGE"
    CREATE_STORY = "CREATE_STORY"
    CREATE_PRODUCT = "CREATE_PRODUCT"
    MAKE_SALE = "MAKE_SALE"
    LEAVE_REVIEW = "LEAVE_REVIEW"
    FOCUS_SESSION = "FOCUS_SESSION"
    FOCUS_STREAK_4 = "FOCUS_STREAK_4"
    STREAK_BONUS_3 = "STREAK_BONUS_3"
    STREAK_BONUS_7 = "STREAK_BONUS_7"
    STREAK_BONUS_30 = "STREAK_BONUS_30"
    CREATE_GOAL = "CREATE_GOAL"
    COMPLETE_GOAL = "COMPLETE_GOAL"


class AchievementCategory(str, Enum):
    """Achievement categories"""
    STREAK = "streak"
    SOCIAL = "social"
    CHALLENGES = "challenges"
    LOGIN = "login"
    SPECIAL = "special"


class Rarity(str, Enum):
    """Achievement rarity (display only)"""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class CelebrationType(str, Enum):
    """Full-screen celebration animations the UI knows how to play"""
    STREAK = "streak"
    LEVEL_UP = "level_up"
    ACHIEVEMENT = "achievement"
    CHALLENGE_COMPLETE = "challenge_complete"
    GOAL_COMPLETE = "goal_complete"
    BUDDY_WIN = "buddy_win"
    POINTS_MILESTONE = "points_milestone"


class NotificationKind(str, Enum):
    """Kinds of persisted reward notifications"""
    ACHIEVEMENT = "achievement"
    LEVEL_UP = "level_up"
    POINTS = "points"


class AwardStatus(str, Enum):
    """Outcome of an award command"""
    CONFIRMED = "confirmed"  # written and read back from the store
    SKIPPED = "skipped"  # nothing to do (no profile, nothing newly unlocked)
    FAILED = "failed"  # write failed or caller referenced an unknown catalog entry


class ScoreAction(BaseModel):
    """Static definition of a point-granting action"""
    model_config = ConfigDict(frozen=True)

    key: ActionKey
    base_points: int = Field(..., ge=0)
    xp_reward: int = Field(..., ge=0)
    description: str
    emoji: str


class AchievementDefinition(BaseModel):
    """Static achievement definition"""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    emoji: str
    category: AchievementCategory
    requirement: int = Field(..., ge=0)
    reward_points: int = Field(..., ge=0)
    rarity: Rarity = Rarity.COMMON


class UserScoreState(BaseModel):
    """Score-related subset of the user's profile row"""
    user_id: str
    points: int = Field(0, ge=0)
    experience_points: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    unlocked_achievement_ids: set[str] = Field(default_factory=set)


class ScoreDelta(BaseModel):
    """Additive change applied to a user's score in a single write"""
    points_delta: int = Field(0, ge=0)
    xp_delta: int = Field(0, ge=0)
    new_achievement_ids: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.points_delta or self.xp_delta or self.new_achievement_ids)


class CategoryCounters(BaseModel):
    """Counters the achievement evaluator compares requirements against"""
    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    friends_count: int = Field(0, ge=0)
    total_challenges: int = Field(0, ge=0)
    login_days: int = Field(0, ge=0)


class StreakState(BaseModel):
    """Daily activity streak for a user"""
    user_id: str
    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    last_activity_date: Optional[date] = None
    freeze_tokens: int = Field(0, ge=0)
    freeze_tokens_used: int = Field(0, ge=0)
    last_freeze_date: Optional[date] = None


class LevelInfo(BaseModel):
    """Level derived from experience points"""
    level: int
    title: str
    emoji: str
    progress: float  # 0-100 within the current level
    xp_to_next_level: int
    current_level_floor: int
    next_level_floor: int


class RankInfo(BaseModel):
    """Rank title derived from lifetime points"""
    title: str
    emoji: str
    color: str


class RankTier(BaseModel):
    """Leaderboard tier"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    emoji: str
    min_points: int
    max_points: Optional[int] = None  # None for the open-ended top tier
    color: str
    benefits: list[str] = Field(default_factory=list)
    badge: str


class AchievementProgress(BaseModel):
    """Progress toward a single achievement"""
    achievement: AchievementDefinition
    current: int
    required: int
    percentage: int
    unlocked: bool


class Notification(BaseModel):
    """Persisted, user-visible reward notification"""
    user_id: str
    title: str
    message: str
    kind: NotificationKind


class Celebration(BaseModel):
    """In-process event asking the presentation layer for a reward animation"""
    type: CelebrationType
    title: str
    subtitle: str
    points: int = 0
    value: Optional[int] = None


class AwardResult(BaseModel):
    """Confirmed-or-failed result of an award command"""
    user_id: Optional[str] = None
    status: AwardStatus
    points_added: int = 0
    xp_added: int = 0
    state: Optional[UserScoreState] = None
    level_info: Optional[LevelInfo] = None
    leveled_up: bool = False
    unlocked: list[AchievementDefinition] = Field(default_factory=list)
    user_message: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.status == AwardStatus.CONFIRMED
