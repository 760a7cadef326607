"""
Exception hierarchy for the MindWell progression engine
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class MindwellError(Exception):
    """
    Base exception for all MindWell errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise MindwellError(
            message="Failed to persist progression update",
            user_id="uid-123",
            operation="refresh",
            context={"fields": ["unlocked_achievement_ids"]}
        )
    """

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
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (Invalid Input)
# ==========================================

class ValidationError(MindwellError):
    """
    Raised when input to the engine is invalid

    The pure evaluators reject bad input instead of clamping it, so
    upstream corruption is not masked.

    Examples:
    - Negative XP total
    - Non-date passed as an activity date
    - Unknown challenge or catalog id

    Example:
        raise ValidationError(
            message="XP total cannot be negative",
            field="total_xp",
            value=-5,
        )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        kwargs.setdefault("user_message", f"Invalid {field}: {message}" if field else message)
        kwargs.setdefault("context", {"field": field, "value": value})
        super().__init__(message=message, **kwargs)


class ChallengeNotClaimableError(ValidationError):
    """Challenge cannot be claimed (incomplete, expired or already claimed)"""

    def __init__(
        self,
        message: str,
        challenge_id: Optional[str] = None,
        reason: Optional[str] = None,
        **kwargs
    ):
        self.challenge_id = challenge_id
        self.reason = reason
        super().__init__(
            message=message,
            field="challenge_id",
            value=challenge_id,
            user_message="This challenge can't be claimed right now.",
            context={"challenge_id": challenge_id, "reason": reason},
            **kwargs
        )


# ==========================================
# Persistence Errors (Document Store)
# ==========================================

class PersistenceError(MindwellError):
    """
    Base class for document store failures

    Evaluation is pure, so callers may retry the whole
    evaluate-then-persist cycle after one of these.
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("user_message", "We couldn't save your progress. Please try again.")
        super().__init__(message=message, **kwargs)


class ConnectionError(PersistenceError):
    """Document store connection failed (transient)"""

    def __init__(self, message: str = "Document store connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble reaching the server. Please try again in a moment.",
            **kwargs
        )


class QueryError(PersistenceError):
    """Document store read or write failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            context={"query": query},
            **kwargs
        )


class RecordNotFoundError(PersistenceError):
    """Requested document does not exist"""

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
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


# ==========================================
# Authentication
# ==========================================

class AuthenticationError(MindwellError):
    """No signed-in user is available"""

    def __init__(
        self,
        message: str = "No signed-in user",
        **kwargs
    ):
        super().__init__(
            message=message,
            user_message="Please sign in to track your progress.",
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(MindwellError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> MindwellError:
    """
    Wrap driver exceptions (psycopg) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate MindwellError subclass

    Example:
        try:
            await cur.execute(query, params)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="apply_update", user_id=user_id)
    """
    import psycopg

    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Database connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            cause=error
        )

    return MindwellError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
