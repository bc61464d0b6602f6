"""
Standardized exception hierarchy for the progression engine
Provides rich context, consistent logging, and user-friendly error messages

None of these errors are meant to reach the host application: the engine
raises them inside its storage and validation layers and catches them at the
facade, where in-memory state stays authoritative.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import json
import logging

from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class ProgressionError(Exception):
    """
    Base exception for all progression engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise ProgressionError(
            message="Failed to save profile",
            operation="save_profile",
            context={"path": "/data/profile.json"}
        )
    """

    def __init__(
        self,
        message: str,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "Something went wrong with your progress. It has been kept on this device."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # 'message' is reserved by logging
            "request_id": self.request_id,
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
        """Serialize exception for host-side diagnostics"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Persistence Errors
# ==========================================

class PersistenceError(ProgressionError):
    """Reading or writing the stored profile failed"""

    def __init__(self, message: str, store: Optional[str] = None, **kwargs):
        self.store = store
        kwargs.setdefault("context", {"store": store})
        super().__init__(
            message=message,
            user_message="We couldn't save your progress right now. It will be saved with your next activity.",
            **kwargs
        )


class ProfileLoadError(PersistenceError):
    """Stored profile could not be read or decoded"""
    pass


class ProfileValidationError(ProgressionError):
    """Stored or imported profile does not have the expected structure"""

    def __init__(
        self,
        message: str,
        errors: Optional[list] = None,
        **kwargs
    ):
        self.errors = errors or []
        super().__init__(
            message=message,
            user_message="Your saved progress could not be read. Starting from a fresh profile.",
            context={"errors": self.errors[:10]},
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(ProgressionError):
    """Engine configuration is invalid"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The progression engine is not properly configured.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_persistence_exception(
    error: Exception,
    operation: str,
    store: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> ProgressionError:
    """
    Wrap low-level storage exceptions into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed (load_profile, save_profile)
        store: Name of the store that failed
        context: Additional context

    Returns:
        Appropriate ProgressionError subclass

    Example:
        try:
            path.write_text(payload)
        except OSError as e:
            raise wrap_persistence_exception(e, operation="save_profile", store="json_file")
    """
    if isinstance(error, PydanticValidationError):
        return ProfileValidationError(
            message=f"Profile failed validation during {operation}",
            errors=[f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()],
            operation=operation,
            cause=error
        )
    elif isinstance(error, (json.JSONDecodeError, UnicodeDecodeError)):
        return ProfileLoadError(
            message=f"Stored profile is not valid JSON: {str(error)}",
            store=store,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, OSError):
        return PersistenceError(
            message=f"{operation} failed: {str(error)}",
            store=store,
            operation=operation,
            context=context,
            cause=error
        )

    # Generic fallback
    else:
        return ProgressionError(
            message=f"{operation} failed: {str(error)}",
            operation=operation,
            context=context,
            cause=error
        )
