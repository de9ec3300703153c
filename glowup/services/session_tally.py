"""
Session points tally

"Today's points" shown next to the focus timer. This is a session counter,
independent of the lifetime `points` stored on the profile: it starts at
zero, only grows from confirmed award results, and resets on a new day or
when the session ends. It is never written back to the store.
"""

import logging
from datetime import date
from typing import Optional

from glowup.models.scoring import AwardResult

logger = logging.getLogger(__name__)


class SessionTally:
    def __init__(self, today: Optional[date] = None):
        self.day = today or date.today()
        self.points = 0
        self.xp = 0

    def add(self, result: AwardResult, today: Optional[date] = None) -> int:
        """Count a command result; skipped and failed results add nothing"""
        today = today or date.today()
        if today != self.day:
            self.reset(today)

        if result.confirmed:
            self.points += result.points_added
            self.xp += result.xp_added
            logger.debug(f"Session tally for {self.day}: {self.points} pontos")
        return self.points

    def reset(self, today: Optional[date] = None) -> None:
        self.day = today or date.today()
        self.points = 0
        self.xp = 0
