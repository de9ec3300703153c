"""
XP, Leveling and Ranking

Pure calculators mapping experience points to a level and lifetime points to
a rank. Nothing in this module touches the database.

Leveling Curve (XP required to reach the level):
- Levels 1-5: 0, 100, 300, 600, 1000
- Levels 6-10: 1500, 2200, 3000, 4000, 5500
- Levels 11-15: 7500, 10000, 13000, 17000, 22000

Rank (by lifetime points):
- Novato < 1000 <= Bronze < 5000 <= Prata < 10000 <= Ouro
  < 25000 <= Platina < 50000 <= Diamante
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple
import logging

from glowup.models.scoring import LevelInfo, RankInfo, RankTier

logger = logging.getLogger(__name__)

# (level, xp required, title, emoji)
LEVEL_THRESHOLDS: List[Tuple[int, int, str, str]] = [
    (1, 0, "Iniciante", "🌱"),
    (2, 100, "Aprendiz", "📚"),
    (3, 300, "Praticante", "💪"),
    (4, 600, "Competente", "⭐"),
    (5, 1000, "Habilidoso", "🌟"),
    (6, 1500, "Experiente", "💎"),
    (7, 2200, "Avançado", "🔥"),
    (8, 3000, "Expert", "🏆"),
    (9, 4000, "Mestre", "👑"),
    (10, 5500, "Grão-Mestre", "⚡"),
    (11, 7500, "Lendário", "🦅"),
    (12, 10000, "Mítico", "🐉"),
    (13, 13000, "Divino", "✨"),
    (14, 17000, "Celestial", "🌙"),
    (15, 22000, "Transcendente", "🌌"),
]

MAX_LEVEL = LEVEL_THRESHOLDS[-1][0]

# (points required, title, emoji, color)
RANK_THRESHOLDS: List[Tuple[int, str, str, str]] = [
    (0, "Novato", "🌱", "text-green-400"),
    (1000, "Bronze", "🥉", "text-orange-400"),
    (5000, "Prata", "🥈", "text-gray-300"),
    (10000, "Ouro", "🥇", "text-yellow-400"),
    (25000, "Platina", "🌟", "text-purple-400"),
    (50000, "Diamante", "💎", "text-cyan-400"),
]

RANK_TIERS: List[RankTier] = [
    RankTier(id="bronze", name="Bronze", emoji="🥉", min_points=0, max_points=499,
             color="text-amber-700", benefits=["Acesso básico", "Missões diárias"], badge="🛡️"),
    RankTier(id="silver", name="Prata", emoji="🥈", min_points=500, max_points=1499,
             color="text-gray-400", benefits=["Desafios exclusivos", "+10% pontos bônus"], badge="⚔️"),
    RankTier(id="gold", name="Ouro", emoji="🥇", min_points=1500, max_points=3999,
             color="text-yellow-500",
             benefits=["Conquistas especiais", "+25% pontos bônus", "Avatar dourado"], badge="👑"),
    RankTier(id="platinum", name="Platina", emoji="💎", min_points=4000, max_points=7999,
             color="text-cyan-400",
             benefits=["Missões VIP", "+40% pontos bônus", "Destaque no ranking"], badge="💠"),
    RankTier(id="diamond", name="Diamante", emoji="💠", min_points=8000, max_points=14999,
             color="text-purple-400",
             benefits=["Acesso antecipado", "+60% pontos bônus", "Título exclusivo"], badge="🔮"),
    RankTier(id="master", name="Mestre", emoji="🏆", min_points=15000, max_points=29999,
             color="text-red-500",
             benefits=["Mentor oficial", "+80% pontos bônus", "Comunidade VIP"], badge="🎖️"),
    RankTier(id="legend", name="Lendário", emoji="⭐", min_points=30000, max_points=None,
             color="text-amber-400",
             benefits=["Lenda da plataforma", "+100% pontos bônus", "Personalização total"], badge="🌟"),
]

POSITION_TITLES = {
    1: {"title": "Campeão", "emoji": "🏆", "color": "text-yellow-500"},
    2: {"title": "Vice-Campeão", "emoji": "🥈", "color": "text-gray-400"},
    3: {"title": "Terceiro Lugar", "emoji": "🥉", "color": "text-amber-600"},
    4: {"title": "Top 5", "emoji": "⭐", "color": "text-blue-400"},
    5: {"title": "Top 5", "emoji": "⭐", "color": "text-blue-400"},
}


def find_bracket_index(value: int, floors: Sequence[int]) -> int:
    """
    Index of the highest floor not exceeding value

    Floors must be sorted ascending. Values below the first floor map to 0.
    """
    index = 0
    for i, floor in enumerate(floors):
        if value >= floor:
            index = i
        else:
            break
    return index


def calculate_level_from_xp(total_xp: int) -> LevelInfo:
    """
    Calculate level, title and in-level progress from total XP

    Args:
        total_xp: Lifetime experience points (negative values are treated as 0)

    Returns:
        LevelInfo with progress clamped to 0-100; progress is 100 and
        xp_to_next_level is 0 once the final level is reached
    """
    total_xp = max(total_xp, 0)
    index = find_bracket_index(total_xp, [t[1] for t in LEVEL_THRESHOLDS])
    level, floor, title, emoji = LEVEL_THRESHOLDS[index]

    if index == len(LEVEL_THRESHOLDS) - 1:
        return LevelInfo(
            level=level,
            title=title,
            emoji=emoji,
            progress=100.0,
            xp_to_next_level=0,
            current_level_floor=floor,
            next_level_floor=floor,
        )

    next_floor = LEVEL_THRESHOLDS[index + 1][1]
    progress = (total_xp - floor) / (next_floor - floor) * 100

    return LevelInfo(
        level=level,
        title=title,
        emoji=emoji,
        progress=min(max(progress, 0.0), 100.0),
        xp_to_next_level=next_floor - total_xp,
        current_level_floor=floor,
        next_level_floor=next_floor,
    )


def get_rank(points: int) -> RankInfo:
    """Rank title, emoji and display color for lifetime points"""
    index = find_bracket_index(points, [r[0] for r in RANK_THRESHOLDS])
    _, title, emoji, color = RANK_THRESHOLDS[index]
    return RankInfo(title=title, emoji=emoji, color=color)


def get_rank_tier(points: int) -> RankTier:
    """Leaderboard tier for lifetime points"""
    index = find_bracket_index(points, [tier.min_points for tier in RANK_TIERS])
    return RANK_TIERS[index]


def get_next_rank_tier(points: int) -> Optional[RankTier]:
    """Tier after the current one, or None at the top"""
    index = RANK_TIERS.index(get_rank_tier(points))
    if index < len(RANK_TIERS) - 1:
        return RANK_TIERS[index + 1]
    return None


def get_rank_progress(points: int) -> int:
    """Percentage (0-100) of the way from the current tier to the next"""
    current = get_rank_tier(points)
    next_tier = get_next_rank_tier(points)

    if next_tier is None:
        return 100

    in_tier = max(points, 0) - current.min_points
    needed = next_tier.min_points - current.min_points
    # Half up, so 0.5% shows as 1
    percent = (Decimal(in_tier) * 100 / Decimal(needed)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(100, int(percent))


def get_points_to_next_rank(points: int) -> int:
    """Points still missing to reach the next tier (0 at the top)"""
    next_tier = get_next_rank_tier(points)
    if next_tier is None:
        return 0
    return next_tier.min_points - max(points, 0)


def get_position_info(position: int) -> dict:
    """Leaderboard title for a 1-based position"""
    if position in POSITION_TITLES:
        return POSITION_TITLES[position]
    if position <= 10:
        return {"title": "Top 10", "emoji": "🔥", "color": "text-orange-400"}
    if position <= 25:
        return {"title": "Top 25", "emoji": "💪", "color": "text-green-400"}
    if position <= 50:
        return {"title": "Top 50", "emoji": "🚀", "color": "text-cyan-400"}
    if position <= 100:
        return {"title": "Top 100", "emoji": "📈", "color": "text-purple-400"}
    return {"title": f"#{position}", "emoji": "🎯", "color": "text-muted-foreground"}


def format_number(num: int) -> str:
    """Compact display for large numbers (1000 -> 1.0K, 1000000 -> 1.0M)"""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    return str(num)


def format_level_display(total_xp: int, points: int) -> str:
    """
    Format level and rank for display

    Args:
        total_xp: Lifetime experience points
        points: Lifetime points

    Returns:
        Multi-line summary with a text progress bar
    """
    info = calculate_level_from_xp(total_xp)
    rank = get_rank(points)

    filled = int(info.progress // 10)
    bar = "█" * filled + "░" * (10 - filled)

    lines = [
        f"{info.emoji} Nível {info.level}: {info.title}",
        f"{bar} {info.progress:.0f}%",
        f"{rank.emoji} {rank.title} · {format_number(points)} pontos",
    ]
    if info.level < MAX_LEVEL:
        lines.insert(2, f"Faltam {info.xp_to_next_level} XP para o nível {info.level + 1}")

    return "\n".join(lines)
