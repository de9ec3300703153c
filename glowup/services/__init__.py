"""
Service Layer Package

- ScoringService: action grants, achievement awards, level-ups, reward signals
- SessionTally: "today's points" counter for the current session
"""

from glowup.services.scoring_service import ScoringService, apply_confirmed
from glowup.services.session_tally import SessionTally

__all__ = [
    "ScoringService",
    "apply_confirmed",
    "SessionTally",
]
