"""Resilience patterns for score writes

This module provides retry logic and metrics collection so that a transient
datastore failure never blocks the user action that triggered scoring.
"""

from glowup.resilience.retry import retry_with_backoff, with_retry, is_retryable_error
from glowup.resilience.metrics import (
    record_award,
    record_achievement_unlocked,
    record_retry,
    record_notification_failure,
)

__all__ = [
    # Retry
    "retry_with_backoff",
    "with_retry",
    "is_retryable_error",
    # Metrics
    "record_award",
    "record_achievement_unlocked",
    "record_retry",
    "record_notification_failure",
]
