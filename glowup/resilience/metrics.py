"""Prometheus metrics for scoring

Counts awards, unlocks, write retries and notification failures.
Metrics are exposed on HTTP endpoint for scraping by Prometheus.
"""

import logging
from prometheus_client import Counter

from glowup.config import ENABLE_METRICS

logger = logging.getLogger(__name__)

# Award commands
# Labels: source (action/achievement/special), status (confirmed/skipped/failed)
score_awards_total = Counter(
    'score_awards_total',
    'Total number of score award commands',
    ['source', 'status']
)

# Unlocked achievements
# Labels: category (streak/social/challenges/login/special)
achievements_unlocked_total = Counter(
    'achievements_unlocked_total',
    'Total number of achievements unlocked',
    ['category']
)

# Retry attempts counter
# Labels: operation (function name)
score_write_retries_total = Counter(
    'score_write_retries_total',
    'Total number of score write retry attempts',
    ['operation']
)

# Notification failures
# Labels: kind (achievement/level_up/points)
notifications_failed_total = Counter(
    'notifications_failed_total',
    'Total number of reward notifications that failed to persist',
    ['kind']
)


def record_award(source: str, status: str) -> None:
    """
    Record an award command outcome.

    Args:
        source: action, achievement or special
        status: confirmed, skipped or failed
    """
    if not ENABLE_METRICS:
        return
    try:
        score_awards_total.labels(source=source, status=status).inc()
        logger.debug(f"[METRICS] Award {source}: {status}")
    except Exception as e:
        logger.error(f"Failed to record award metrics: {e}")


def record_achievement_unlocked(category: str) -> None:
    """Record one achievement unlock."""
    if not ENABLE_METRICS:
        return
    try:
        achievements_unlocked_total.labels(category=category).inc()
    except Exception as e:
        logger.error(f"Failed to record achievement unlock: {e}")


def record_retry(operation: str) -> None:
    """
    Record retry attempt.

    Args:
        operation: Name of the retried function
    """
    if not ENABLE_METRICS:
        return
    try:
        score_write_retries_total.labels(operation=operation).inc()
        logger.debug(f"[METRICS] Retry attempt for {operation}")
    except Exception as e:
        logger.error(f"Failed to record retry: {e}")


def record_notification_failure(kind: str) -> None:
    """Record a notification that could not be persisted."""
    if not ENABLE_METRICS:
        return
    try:
        notifications_failed_total.labels(kind=kind).inc()
    except Exception as e:
        logger.error(f"Failed to record notification failure: {e}")
