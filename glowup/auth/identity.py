"""Current identity providers

The scoring service receives the signed-in user through an injected provider
instead of reading a global session.
"""
import logging
from typing import Optional, Protocol

from glowup.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def current_user_id(self) -> str:
        """Id of the signed-in user; raises AuthenticationError without a session"""
        ...


class StaticIdentity:
    """Identity fixed at construction (request-scoped or tests)"""

    def __init__(self, user_id: Optional[str]):
        self._user_id = user_id

    def current_user_id(self) -> str:
        if not self._user_id:
            raise AuthenticationError("No authenticated user in session", operation="current_user_id")
        return self._user_id
