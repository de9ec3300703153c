"""
Achievement System

Static achievement catalog and the pure evaluator that decides which
achievements a user has newly qualified for.

Categories:
- streak: best of current and longest streak
- social: number of friends
- challenges: completed challenges
- login: distinct login days
- special: never counter-driven, granted explicitly by id

The evaluator only reads. Persisting unlocks, crediting reward points and
notifying the user happen in the scoring service.
"""

from typing import Dict, Iterable, List, Optional
import logging
import re
import unicodedata

from glowup.exceptions import ConfigurationError
from glowup.models.scoring import (
    AchievementCategory,
    AchievementDefinition,
    AchievementProgress,
    CategoryCounters,
    Rarity,
)

logger = logging.getLogger(__name__)


def slugify_title(title: str) -> str:
    """
    Derive a stable achievement id from its title

    "Primeiro Passo" -> "primeiro-passo", "Constância" -> "constancia"
    """
    normalized = unicodedata.normalize("NFKD", title)
    ascii_title = normalized.encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_title.lower()).strip("-")


def _achievement(
    title: str,
    description: str,
    emoji: str,
    category: AchievementCategory,
    requirement: int,
    reward_points: int,
    rarity: Rarity,
) -> AchievementDefinition:
    return AchievementDefinition(
        id=slugify_title(title),
        title=title,
        description=description,
        emoji=emoji,
        category=category,
        requirement=requirement,
        reward_points=reward_points,
        rarity=rarity,
    )


# Definition order is evaluation order
ACHIEVEMENTS: List[AchievementDefinition] = [
    # Streak
    _achievement("Primeiro Passo", "Complete sua primeira sequência de 3 dias", "⚡",
                 AchievementCategory.STREAK, 3, 50, Rarity.COMMON),
    _achievement("Constância", "Mantenha uma sequência de 7 dias", "🎯",
                 AchievementCategory.STREAK, 7, 100, Rarity.UNCOMMON),
    _achievement("Determinação", "Conquiste uma sequência de 30 dias", "👑",
                 AchievementCategory.STREAK, 30, 500, Rarity.RARE),

    # Social
    _achievement("Social", "Adicione seu primeiro amigo", "👥",
                 AchievementCategory.SOCIAL, 1, 25, Rarity.COMMON),
    _achievement("Popular", "Tenha 10 amigos conectados", "⭐",
                 AchievementCategory.SOCIAL, 10, 200, Rarity.UNCOMMON),

    # Challenges
    _achievement("Desafiante", "Complete seu primeiro desafio", "🏆",
                 AchievementCategory.CHALLENGES, 1, 75, Rarity.COMMON),
    _achievement("Competidor", "Complete 10 desafios", "🏅",
                 AchievementCategory.CHALLENGES, 10, 300, Rarity.RARE),

    # Login
    _achievement("Dedicado", "Faça login por 15 dias diferentes", "📅",
                 AchievementCategory.LOGIN, 15, 150, Rarity.UNCOMMON),

    # Special (granted explicitly)
    _achievement("Primeiro Login", "Bem-vindo ao GlowUp! Sua jornada de transformação começou.", "🌟",
                 AchievementCategory.SPECIAL, 1, 50, Rarity.COMMON),
    _achievement("Planejador Nato", "Criou seu primeiro plano personalizado.", "📋",
                 AchievementCategory.SPECIAL, 1, 200, Rarity.COMMON),
    _achievement("Nível Épico", "Alcançou o nível 10 - você evoluiu muito!", "⭐",
                 AchievementCategory.SPECIAL, 10, 750, Rarity.EPIC),
    _achievement("Influenciador", "Convidou 5 amigos para a plataforma.", "📱",
                 AchievementCategory.SPECIAL, 5, 800, Rarity.LEGENDARY),
]

ACHIEVEMENTS_BY_ID: Dict[str, AchievementDefinition] = {a.id: a for a in ACHIEVEMENTS}

# Granted by the scoring service when an award lifts the user to this level
EPIC_LEVEL_ACHIEVEMENT_ID = slugify_title("Nível Épico")
EPIC_LEVEL = ACHIEVEMENTS_BY_ID[EPIC_LEVEL_ACHIEVEMENT_ID].requirement

RARITY_EMOJI = {
    Rarity.LEGENDARY: '💫',
    Rarity.EPIC: '🔮',
    Rarity.RARE: '🥇',
    Rarity.UNCOMMON: '🥈',
    Rarity.COMMON: '🥉',
}


def get_achievement_by_id(achievement_id: str) -> AchievementDefinition:
    """
    Look up an achievement definition

    Raises:
        ConfigurationError: no achievement with this id exists
    """
    achievement = ACHIEVEMENTS_BY_ID.get(achievement_id)
    if achievement is None:
        raise ConfigurationError(
            f"Unknown achievement id: {achievement_id!r}",
            config_key="ACHIEVEMENTS",
            operation="get_achievement_by_id",
        )
    return achievement


def get_counter_for_category(
    counters: CategoryCounters,
    category: AchievementCategory
) -> Optional[int]:
    """
    Counter an achievement category is compared against

    Streaks use the best of current and longest, so a streak reset never
    locks a badge the user already reached. Returns None for special
    achievements, which have no counter.
    """
    if category == AchievementCategory.STREAK:
        return max(counters.current_streak, counters.longest_streak)
    if category == AchievementCategory.SOCIAL:
        return counters.friends_count
    if category == AchievementCategory.CHALLENGES:
        return counters.total_challenges
    if category == AchievementCategory.LOGIN:
        return counters.login_days
    return None


def evaluate_achievements(
    counters: CategoryCounters,
    unlocked_ids: Iterable[str],
    catalog: Optional[List[AchievementDefinition]] = None
) -> List[AchievementDefinition]:
    """
    Achievements whose requirement is met and which are not yet unlocked

    Args:
        counters: Current category counters for the user
        unlocked_ids: Persisted unlocked achievement ids
        catalog: Definitions to evaluate (defaults to ACHIEVEMENTS)

    Returns:
        Newly qualifying definitions in catalog order; often empty
    """
    unlocked = set(unlocked_ids)
    newly_qualifying = []

    for achievement in catalog if catalog is not None else ACHIEVEMENTS:
        if achievement.id in unlocked:
            continue

        current = get_counter_for_category(counters, achievement.category)
        if current is None:
            continue

        if current >= achievement.requirement:
            newly_qualifying.append(achievement)

    return newly_qualifying


def get_achievement_progress(
    counters: CategoryCounters,
    unlocked_ids: Iterable[str]
) -> List[AchievementProgress]:
    """
    Progress toward every counter-driven achievement, in catalog order

    Unlocked is read from the persisted ids only; a counter past the
    requirement without a persisted id reports 100% but unlocked=False.
    """
    unlocked = set(unlocked_ids)
    progress = []

    for achievement in ACHIEVEMENTS:
        current = get_counter_for_category(counters, achievement.category)
        if current is None:
            continue

        required = achievement.requirement
        percentage = min(100, int(current / required * 100)) if required > 0 else 100

        progress.append(AchievementProgress(
            achievement=achievement,
            current=current,
            required=required,
            percentage=percentage,
            unlocked=achievement.id in unlocked,
        ))

    return progress


def get_achievement_recommendations(
    counters: CategoryCounters,
    unlocked_ids: Iterable[str],
    limit: int = 3
) -> List[AchievementProgress]:
    """Locked achievements at least halfway done, closest to completion first"""
    locked = [
        p for p in get_achievement_progress(counters, unlocked_ids)
        if not p.unlocked and p.percentage >= 50
    ]
    locked.sort(key=lambda p: p.percentage, reverse=True)
    return locked[:limit]


def format_achievement_display(unlocked_ids: Iterable[str]) -> str:
    """
    Format a user's unlocked achievements for display

    Args:
        unlocked_ids: Persisted unlocked achievement ids (unknown ids are ignored)

    Returns:
        Formatted string grouped by rarity
    """
    unlocked = [ACHIEVEMENTS_BY_ID[i] for i in set(unlocked_ids) if i in ACHIEVEMENTS_BY_ID]

    if not unlocked:
        return "🏆 Nenhuma conquista ainda. Continue evoluindo! 💪"

    total_points = sum(a.reward_points for a in unlocked)
    lines = [
        f"🏆 SUAS CONQUISTAS ({len(unlocked)}/{len(ACHIEVEMENTS)})",
        f"⭐ Pontos de conquistas: {total_points}\n"
    ]

    for rarity in [Rarity.LEGENDARY, Rarity.EPIC, Rarity.RARE, Rarity.UNCOMMON, Rarity.COMMON]:
        group = [a for a in ACHIEVEMENTS if a in unlocked and a.rarity == rarity]
        if group:
            lines.append(f"{RARITY_EMOJI[rarity]} {rarity.value.upper()}")
            for achievement in group:
                lines.append(f"{achievement.emoji} {achievement.title} (+{achievement.reward_points} pontos)")
            lines.append("")

    return "\n".join(lines).rstrip()


def format_achievement_unlock_message(achievement: AchievementDefinition) -> str:
    """Celebration text for a newly unlocked achievement"""
    rarity_symbol = RARITY_EMOJI.get(achievement.rarity, '🏆')

    return f"""🎉 NOVA CONQUISTA! 🎉

{rarity_symbol} {achievement.emoji} {achievement.title} {rarity_symbol}

{achievement.description}

⭐ +{achievement.reward_points} pontos!"""
