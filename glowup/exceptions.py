"""
Exception hierarchy for the GlowUp scoring engine

Scoring never blocks the user's primary action, so most of these end up as
a FAILED or SKIPPED AwardResult rather than propagating. Each error still
logs itself once on creation, with the context needed to trace the award.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class GlowUpError(Exception):
    """
    Base exception for all GlowUp errors

    Class attributes:
        retryable: whether the retry layer may try the operation again
        log_level: level used for the automatic log entry

    Example:
        raise GlowUpError(
            message="Failed to credit points",
            user_id="6f1c...",
            operation="grant_action",
            context={"action": "FOCUS_SESSION"}
        )
    """

    retryable: bool = False
    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "Ocorreu um erro. Tente novamente."
        self.timestamp = datetime.utcnow()

        self._log_error()

    def _log_error(self) -> None:
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "retryable": self.retryable,
        }
        logger.log(
            self.log_level,
            f"{self.__class__.__name__}: {self.message}",
            extra=log_data,
            exc_info=self.cause if self.cause else None
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API responses and AwardResult diagnostics"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Database Errors
# ==========================================

class DatabaseError(GlowUpError):
    """Reading or writing score state failed"""


class RecordNotFoundError(DatabaseError):
    """No profile row for the user; scoring treats this as a no-op"""

    log_level = logging.INFO

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Registro'} não encontrado.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


class WriteError(DatabaseError):
    """
    Score write failed for a transient reason (network, connection, lock timeout)

    Retryable: the scoring service retries these once before giving up.
    """

    retryable = True
    log_level = logging.WARNING

    def __init__(self, message: str = "Score write failed", **kwargs):
        super().__init__(
            message=message,
            user_message="Recompensa não salva, tentaremos novamente.",
            **kwargs
        )


class QueryError(DatabaseError):
    """Database query execution failed (not retryable)"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            user_message="Não foi possível salvar seus dados. Tente novamente.",
            context={"query": query},
            **kwargs
        )


# ==========================================
# Authentication
# ==========================================

class AuthenticationError(GlowUpError):
    """No authenticated identity is available"""

    def __init__(
        self,
        message: str = "Authentication failed",
        **kwargs
    ):
        super().__init__(
            message=message,
            user_message="Sessão expirada. Entre novamente.",
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(GlowUpError):
    """
    System configuration is invalid, or a caller referenced a catalog entry
    (action key, achievement id) that does not exist
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="O sistema não está configurado corretamente.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# psycopg mapping
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> GlowUpError:
    """
    Translate a driver error into a GlowUpError

    OperationalError (dropped connection, pool timeout, serialization
    failure) becomes a retryable WriteError. Any other psycopg.Error is a
    QueryError. GlowUpError instances come back unchanged.

    Example:
        except psycopg.Error as e:
            raise wrap_external_exception(e, "write_user_score_state", user_id)
    """
    import psycopg

    if isinstance(error, GlowUpError):
        return error

    details = dict(context or {})
    details.setdefault("driver_error", type(error).__name__)

    if isinstance(error, psycopg.OperationalError):
        return WriteError(
            message=f"Score write failed during {operation}: {error}",
            user_id=user_id,
            operation=operation,
            context=details,
            cause=error
        )
    if isinstance(error, psycopg.Error):
        wrapped = QueryError(
            message=f"Score query failed during {operation}: {error}",
            user_id=user_id,
            operation=operation,
            cause=error
        )
        wrapped.context.update(details)
        return wrapped

    return GlowUpError(
        message=f"{operation} failed: {error}",
        user_id=user_id,
        operation=operation,
        context=details,
        cause=error
    )
