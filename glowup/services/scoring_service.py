"""
ScoringService - Scoring Business Logic

Entry point for every user action that grants points. Each call is one
sequential chain: read current state, compute, write, notify.

Scoring is always a secondary effect of the user's action: failures here are
reported through the returned AwardResult and never raised into the caller,
except for unknown catalog entries while SCORING_STRICT_CATALOG is on.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Union

import psycopg

from glowup.config import SCORING_STRICT_CATALOG
from glowup.exceptions import (
    ConfigurationError,
    DatabaseError,
    RecordNotFoundError,
)
from glowup.gamification.achievement_system import (
    ACHIEVEMENTS_BY_ID,
    EPIC_LEVEL,
    EPIC_LEVEL_ACHIEVEMENT_ID,
    evaluate_achievements,
    get_achievement_by_id,
    get_achievement_progress,
)
from glowup.gamification.actions import calculate_points_with_streak, get_score_action
from glowup.gamification.notifications import CelebrationBus, DatabaseNotifier, Notifier
from glowup.gamification.store import PostgresScoreStore, ScoreStore
from glowup.gamification.streak_system import plan_streak, save_streak
from glowup.gamification.xp_system import (
    calculate_level_from_xp,
    get_next_rank_tier,
    get_rank,
    get_rank_progress,
    get_rank_tier,
)
from glowup.auth.identity import IdentityProvider
from glowup.models.scoring import (
    AchievementCategory,
    AchievementDefinition,
    ActionKey,
    AwardResult,
    AwardStatus,
    Celebration,
    CelebrationType,
    CategoryCounters,
    Notification,
    NotificationKind,
    ScoreDelta,
    UserScoreState,
)
from glowup.resilience.metrics import (
    record_achievement_unlocked,
    record_award,
    record_notification_failure,
)
from glowup.resilience.retry import MAX_RETRIES, retry_with_backoff

logger = logging.getLogger(__name__)


class ScoringService:
    """
    Service for scoring and achievements.

    Responsibilities:
    - Crediting points/XP for catalog actions (with streak multiplier)
    - Evaluating and awarding achievements exactly once
    - Recomputing level and celebrating level-ups
    - Emitting reward notifications and celebrations
    """

    def __init__(
        self,
        store: Optional[ScoreStore] = None,
        notifier: Optional[Notifier] = None,
        celebrations: Optional[CelebrationBus] = None,
        identity: Optional[IdentityProvider] = None,
        strict_catalog: bool = SCORING_STRICT_CATALOG,
        max_retries: int = MAX_RETRIES
    ):
        """
        Initialize ScoringService.

        Args:
            store: Where score state is read and written (PostgreSQL by default)
            notifier: Persisted notification sink (notifications table by default)
            celebrations: In-process celebration bus
            identity: Current user provider, used when a call omits user_id
            strict_catalog: Raise on unknown action keys/achievement ids instead of logging
            max_retries: Automatic retries of a failed score write
        """
        self.store = store or PostgresScoreStore()
        self.notifier = notifier or DatabaseNotifier()
        self.celebrations = celebrations or CelebrationBus()
        self.identity = identity
        self.strict_catalog = strict_catalog
        self.max_retries = max_retries
        logger.debug("ScoringService initialized")

    # ==========================================
    # Entry points
    # ==========================================

    async def grant_action(
        self,
        action_key: Union[ActionKey, str],
        current_streak: int = 0,
        user_id: Optional[str] = None
    ) -> AwardResult:
        """
        Credit a catalog action.

        Points are base_points scaled by the streak multiplier; XP is the
        action's xp_reward.

        Args:
            action_key: ActionKey (or its string value)
            current_streak: User's current streak in days
            user_id: Target user (defaults to the current identity)

        Returns:
            AwardResult with the confirmed post-write state
        """
        user_id = self._resolve_user(user_id)

        try:
            action = get_score_action(action_key)
        except ConfigurationError as e:
            return self._catalog_failure(e, user_id, source="action")

        points = calculate_points_with_streak(action.base_points, current_streak)
        delta = ScoreDelta(points_delta=points, xp_delta=action.xp_reward)

        result = await self._apply_delta(user_id, delta, source="action")
        if result.confirmed:
            result.user_message = f"{action.emoji} +{points} pontos! {action.description}"
            logger.info(
                f"Granted {action.key.value} to user {user_id}: "
                f"+{points} pontos, +{action.xp_reward} XP (streak {current_streak})"
            )
            await self._after_write(result, delta)
        return result

    async def grant_reward(
        self,
        points: int,
        reason: str,
        user_id: Optional[str] = None,
        xp: Optional[int] = None,
        source: str = "reward"
    ) -> AwardResult:
        """
        Credit a caller-defined reward (completed challenge, daily mission).

        The amount comes from the caller's own record rather than the action
        catalog. It is added to both points and XP unless xp is given, and
        goes through the same write, retry and level-up path as catalog
        actions.

        Args:
            points: Points to credit (>= 0)
            reason: Shown to the user, e.g. the mission title
            user_id: Target user (defaults to the current identity)
            xp: Experience points to credit (defaults to points)
            source: Metrics label for where the reward came from
        """
        if points < 0 or (xp is not None and xp < 0):
            raise ValueError(f"Rewards cannot be negative: points={points}, xp={xp}")

        user_id = self._resolve_user(user_id)
        delta = ScoreDelta(points_delta=points, xp_delta=points if xp is None else xp)

        result = await self._apply_delta(user_id, delta, source=source)
        if result.confirmed:
            result.user_message = f"🎁 +{delta.points_delta} pontos! {reason}"
            logger.info(
                f"Granted reward to user {user_id} ({source}): "
                f"+{delta.points_delta} pontos, +{delta.xp_delta} XP - {reason}"
            )
            await self._after_write(result, delta)
        return result

    async def check_achievements(
        self,
        user_id: Optional[str] = None,
        counters: Optional[CategoryCounters] = None
    ) -> AwardResult:
        """
        Evaluate counter-driven achievements and award the new ones.

        Args:
            user_id: Target user (defaults to the current identity)
            counters: Category counters; read from the store when omitted

        Returns:
            AwardResult; SKIPPED when nothing is newly unlocked
        """
        user_id = self._resolve_user(user_id)

        try:
            if counters is None:
                counters = await self.store.read_category_counters(user_id)
            state = await self.store.read_user_score_state(user_id)
        except RecordNotFoundError:
            record_award("achievement", AwardStatus.SKIPPED.value)
            return AwardResult(user_id=user_id, status=AwardStatus.SKIPPED)
        except DatabaseError as e:
            record_award("achievement", AwardStatus.FAILED.value)
            return AwardResult(user_id=user_id, status=AwardStatus.FAILED, user_message=e.user_message)

        newly_qualifying = evaluate_achievements(counters, state.unlocked_achievement_ids)
        if not newly_qualifying:
            return AwardResult(user_id=user_id, status=AwardStatus.SKIPPED, state=state)

        return await self.award_achievements(newly_qualifying, user_id=user_id)

    async def award_achievements(
        self,
        achievements: List[AchievementDefinition],
        user_id: Optional[str] = None
    ) -> AwardResult:
        """
        Persist achievements and credit their rewards in one write.

        Duplicate ids in the input are awarded once. If another writer
        unlocked one of them first, the state is re-read and only the
        still-missing ones are written.
        """
        user_id = self._resolve_user(user_id)
        pending = list({a.id: a for a in achievements}.values())

        for _ in range(2):
            if not pending:
                break

            total = sum(a.reward_points for a in pending)
            delta = ScoreDelta(
                points_delta=total,
                xp_delta=total,
                new_achievement_ids=[a.id for a in pending],
            )

            result = await self._apply_delta(user_id, delta, source="achievement")
            if result.status != AwardStatus.SKIPPED:
                if result.confirmed:
                    result.unlocked = pending
                    result.user_message = self._unlock_message(pending)
                    await self._announce_achievements(user_id, pending)
                    await self._after_write(result, delta)
                return result

            # Someone else unlocked part of this batch first
            try:
                state = await self.store.read_user_score_state(user_id)
            except RecordNotFoundError:
                return result
            except DatabaseError as e:
                record_award("achievement", AwardStatus.FAILED.value)
                return AwardResult(user_id=user_id, status=AwardStatus.FAILED, user_message=e.user_message)
            pending = [a for a in pending if a.id not in state.unlocked_achievement_ids]

        record_award("achievement", AwardStatus.SKIPPED.value)
        return AwardResult(user_id=user_id, status=AwardStatus.SKIPPED)

    async def award_special_achievement(
        self,
        achievement_id: str,
        user_id: Optional[str] = None
    ) -> AwardResult:
        """
        Grant a special (non counter-driven) achievement by id.

        Already-unlocked achievements are SKIPPED, never credited twice.
        """
        user_id = self._resolve_user(user_id)

        try:
            achievement = get_achievement_by_id(achievement_id)
            if achievement.category != AchievementCategory.SPECIAL:
                raise ConfigurationError(
                    f"Achievement {achievement_id!r} is counter-driven and cannot be granted directly",
                    config_key="ACHIEVEMENTS",
                    operation="award_special_achievement",
                )
        except ConfigurationError as e:
            return self._catalog_failure(e, user_id, source="special")

        return await self.award_achievements([achievement], user_id=user_id)

    async def record_activity(
        self,
        action_key: Union[ActionKey, str],
        user_id: Optional[str] = None,
        activity_date: Optional[date] = None
    ) -> AwardResult:
        """
        Full chain for a streak-counting activity.

        Plans the daily streak, grants the action with the streak multiplier,
        grants a streak milestone bonus when one is reached, then checks
        achievements. The returned result is the action grant with the bonus
        and achievement outcomes folded in.

        The new streak is saved only after the action (and the milestone
        bonus, if any) is confirmed. A failed grant leaves the stored streak
        untouched, so retrying the activity the same day reaches the same
        milestone again instead of losing its bonus.
        """
        user_id = self._resolve_user(user_id)

        plan = None
        try:
            plan = await plan_streak(user_id, activity_date)
        except psycopg.Error as e:
            logger.warning(f"Streak read failed for user {user_id}, scoring without multiplier: {e}")

        current_streak = plan["current_streak"] if plan else 0
        milestone_action = plan["milestone_action"] if plan else None

        result = await self.grant_action(action_key, current_streak=current_streak, user_id=user_id)
        if not result.confirmed:
            return result

        bonus = None
        if milestone_action is not None:
            bonus = await self.grant_action(milestone_action, user_id=user_id)
            self._fold(result, bonus)

        if plan is not None and (bonus is None or bonus.confirmed):
            saved = await self._save_streak(plan)
            self._celebrate_streak(plan, bonus, token_saved=saved)

        achievements = await self.check_achievements(user_id=user_id)
        self._fold(result, achievements)
        return result

    async def get_score_summary(self, user_id: Optional[str] = None) -> Optional[dict]:
        """
        Level, rank and achievement progress for display.

        Returns:
            None if the user has no profile, otherwise
            {
                'state': UserScoreState,
                'level_info': LevelInfo,
                'rank': RankInfo,
                'rank_tier': RankTier,
                'next_rank_tier': Optional[RankTier],
                'rank_progress': int,
                'achievements': list[AchievementProgress],
                'special_unlocked': list[AchievementDefinition]
            }
        """
        user_id = self._resolve_user(user_id)

        try:
            state = await self.store.read_user_score_state(user_id)
            counters = await self.store.read_category_counters(user_id)
        except RecordNotFoundError:
            return None

        special_unlocked = [
            ACHIEVEMENTS_BY_ID[i] for i in sorted(state.unlocked_achievement_ids)
            if i in ACHIEVEMENTS_BY_ID and ACHIEVEMENTS_BY_ID[i].category == AchievementCategory.SPECIAL
        ]

        return {
            "state": state,
            "level_info": calculate_level_from_xp(state.experience_points),
            "rank": get_rank(state.points),
            "rank_tier": get_rank_tier(state.points),
            "next_rank_tier": get_next_rank_tier(state.points),
            "rank_progress": get_rank_progress(state.points),
            "achievements": get_achievement_progress(counters, state.unlocked_achievement_ids),
            "special_unlocked": special_unlocked,
        }

    # ==========================================
    # Write path
    # ==========================================

    async def _apply_delta(self, user_id: str, delta: ScoreDelta, source: str) -> AwardResult:
        """Single atomic write with one automatic retry on transient failure"""
        try:
            state = await retry_with_backoff(
                self.store.write_user_score_state,
                user_id,
                delta,
                max_retries=self.max_retries,
            )
        except RecordNotFoundError:
            logger.info(f"No profile for user {user_id}; {source} grants nothing")
            record_award(source, AwardStatus.SKIPPED.value)
            return AwardResult(user_id=user_id, status=AwardStatus.SKIPPED)
        except DatabaseError as e:
            record_award(source, AwardStatus.FAILED.value)
            return AwardResult(user_id=user_id, status=AwardStatus.FAILED, user_message=e.user_message)

        if state is None:
            # Achievement id already present; caller reconciles
            return AwardResult(user_id=user_id, status=AwardStatus.SKIPPED)

        level_before = calculate_level_from_xp(state.experience_points - delta.xp_delta).level
        level_info = calculate_level_from_xp(state.experience_points)

        record_award(source, AwardStatus.CONFIRMED.value)
        return AwardResult(
            user_id=user_id,
            status=AwardStatus.CONFIRMED,
            points_added=delta.points_delta,
            xp_added=delta.xp_delta,
            state=state,
            level_info=level_info,
            leveled_up=level_info.level > level_before,
        )

    async def _after_write(self, result: AwardResult, delta: ScoreDelta) -> None:
        """Level-up announcements and the level-based special achievement"""
        if not result.leveled_up:
            return

        info = result.level_info
        logger.info(f"User {result.user_id} leveled up to {info.level} ({info.title})")

        await self._notify(Notification(
            user_id=result.user_id,
            title=f"🎉 Level Up! Nível {info.level}",
            message=f"Parabéns! Você agora é {info.title}! {info.emoji}",
            kind=NotificationKind.LEVEL_UP,
        ))
        self._celebrate(Celebration(
            type=CelebrationType.LEVEL_UP,
            title=f"Nível {info.level}! {info.emoji}",
            subtitle=f"Você evoluiu para {info.title}!",
            points=delta.points_delta,
            value=info.level,
        ))

        if info.level >= EPIC_LEVEL and EPIC_LEVEL_ACHIEVEMENT_ID not in result.state.unlocked_achievement_ids:
            epic = await self.award_achievements(
                [ACHIEVEMENTS_BY_ID[EPIC_LEVEL_ACHIEVEMENT_ID]],
                user_id=result.user_id,
            )
            self._fold(result, epic)

    # ==========================================
    # Reward signals (best-effort)
    # ==========================================

    async def _announce_achievements(self, user_id: str, achievements: Iterable[AchievementDefinition]) -> None:
        for achievement in achievements:
            record_achievement_unlocked(achievement.category.value)
            logger.info(
                f"User {user_id} unlocked achievement: {achievement.id} "
                f"({achievement.title}) +{achievement.reward_points} pontos"
            )
            await self._notify(Notification(
                user_id=user_id,
                title=f"{achievement.emoji} Nova Conquista!",
                message=f"{achievement.title} desbloqueado! +{achievement.reward_points} pontos",
                kind=NotificationKind.ACHIEVEMENT,
            ))
            self._celebrate(Celebration(
                type=CelebrationType.ACHIEVEMENT,
                title=achievement.title,
                subtitle=achievement.description,
                points=achievement.reward_points,
            ))

    async def _notify(self, notification: Notification) -> None:
        try:
            await self.notifier.emit_notification(notification)
        except Exception as e:
            record_notification_failure(notification.kind.value)
            logger.warning(
                f"Failed to store {notification.kind.value} notification "
                f"for user {notification.user_id}: {e}"
            )

    def _celebrate(self, celebration: Celebration) -> None:
        self.celebrations.emit_celebration(celebration)

    def _celebrate_streak(self, plan: dict, bonus: Optional[AwardResult], token_saved: bool) -> None:
        days = plan["current_streak"]
        earned_token = plan["earned_freeze_token"] and token_saved

        if bonus is not None and bonus.confirmed:
            subtitle = "Sua sequência está pegando fogo!"
            if earned_token:
                subtitle += " + 1 gelo de bônus!"
            self._celebrate(Celebration(
                type=CelebrationType.STREAK,
                title=f"{days} dias seguidos!",
                subtitle=subtitle,
                points=bonus.points_added,
                value=days,
            ))
        elif earned_token:
            self._celebrate(Celebration(
                type=CelebrationType.STREAK,
                title="SEQUÊNCIA INCRÍVEL!",
                subtitle=f"{days} dias seguidos + 1 gelo de bônus!",
                value=days,
            ))

    async def _save_streak(self, plan: dict) -> bool:
        try:
            await save_streak(plan)
        except psycopg.Error as e:
            logger.warning(f"Failed to save streak for user {plan['user_id']}: {e}")
            return False
        return True

    # ==========================================
    # Helpers
    # ==========================================

    def _resolve_user(self, user_id: Optional[str]) -> str:
        if user_id:
            return user_id
        if self.identity is None:
            raise ValueError("user_id is required when no identity provider is configured")
        return self.identity.current_user_id()

    def _catalog_failure(self, error: ConfigurationError, user_id: str, source: str) -> AwardResult:
        if self.strict_catalog:
            raise error
        record_award(source, AwardStatus.FAILED.value)
        return AwardResult(user_id=user_id, status=AwardStatus.FAILED, user_message=error.user_message)

    @staticmethod
    def _unlock_message(achievements: List[AchievementDefinition]) -> str:
        if len(achievements) == 1:
            a = achievements[0]
            return f"🏆 {a.title} desbloqueado! +{a.reward_points} pontos"
        total = sum(a.reward_points for a in achievements)
        return f"🏆 {len(achievements)} conquistas desbloqueadas! +{total} pontos"

    @staticmethod
    def _fold(into: AwardResult, other: AwardResult) -> None:
        """Merge a follow-up award (bonus, achievements) into a confirmed result"""
        if not other.confirmed:
            return
        into.points_added += other.points_added
        into.xp_added += other.xp_added
        into.unlocked.extend(other.unlocked)
        into.state = other.state
        into.level_info = other.level_info
        into.leveled_up = into.leveled_up or other.leveled_up


def apply_confirmed(local: UserScoreState, result: AwardResult) -> UserScoreState:
    """
    Reconcile a locally displayed state with a command result

    Confirmed results replace the local copy; anything else keeps it, so an
    optimistic guess is never kept once the store has answered.
    """
    if result.confirmed and result.state is not None:
        return result.state
    return local
