"""
Error Handler for the board subscription service

Defines the error kinds raised by the logic layer and provides centralized
classification and logging for callers that need to turn an exception into
a result value.
"""

import logging
import traceback
from enum import Enum
from typing import Optional
from dataclasses import dataclass

from sqlalchemy.exc import OperationalError


logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification."""
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PERMISSION = "permission"
    VALIDATION = "validation"
    STORAGE = "storage"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Context information for an error."""
    category: ErrorCategory
    severity: ErrorSeverity
    operation: str
    user_message: str
    technical_details: str
    retryable: bool = False
    board_id: Optional[int] = None
    clone_id: Optional[int] = None
    user_id: Optional[int] = None


# Custom Exception Classes

class BoardHubError(Exception):
    """Base exception for board service errors."""

    retryable = False

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN):
        super().__init__(message)
        self.category = category


class NotFoundError(BoardHubError):
    """A referenced record does not exist or is not visible."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.NOT_FOUND)


class BoardNotFoundError(NotFoundError):
    """Board is missing or soft-deleted."""

    def __init__(self, board_id: int):
        super().__init__(f"Board {board_id} not found")
        self.board_id = board_id


class UserNotFoundError(NotFoundError):
    """User is missing or inactive."""

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class CloneNotFoundError(NotFoundError):
    """Clone is missing."""

    def __init__(self, clone_id: int):
        super().__init__(f"Clone {clone_id} not found")
        self.clone_id = clone_id


class SubscriptionNotFoundError(NotFoundError):
    """No subscription record exists for the clone/board pair."""

    def __init__(self, clone_id: int, board_id: int):
        super().__init__(f"Clone {clone_id} has no subscription to board {board_id}")
        self.clone_id = clone_id
        self.board_id = board_id


class AlreadyActiveError(BoardHubError):
    """The clone already holds an active subscription to the board."""

    def __init__(self, clone_id: int, board_id: int):
        super().__init__(
            f"Clone {clone_id} is already subscribed to board {board_id}",
            ErrorCategory.CONFLICT
        )
        self.clone_id = clone_id
        self.board_id = board_id


class NotBoardOwnerError(BoardHubError):
    """Only the board's creator may modify it."""

    def __init__(self, user_id: int, board_id: int):
        super().__init__(
            f"User {user_id} is not the creator of board {board_id}",
            ErrorCategory.PERMISSION
        )
        self.user_id = user_id
        self.board_id = board_id


class TransientStorageError(BoardHubError):
    """The store was unreachable or the write lost a race; safe to retry."""

    retryable = True

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.STORAGE)


class ErrorHandler:
    """
    Global error handler for the board service.

    Provides centralized error handling with:
    - Error categorization (not found, conflict, permission, storage)
    - Severity classification
    - User-friendly error messages
    - Detailed logging for debugging

    Usage:
        error_handler = get_error_handler()

        try:
            subscription_manager.subscribe(clone_id, board_id)
        except Exception as e:
            context = error_handler.handle_error(e, "subscribe", board_id=board_id)
    """

    def __init__(self):
        """Initialize error handler."""
        self._error_count = 0

    def handle_error(
        self,
        error: Exception,
        context: str,
        board_id: Optional[int] = None,
        clone_id: Optional[int] = None,
        user_id: Optional[int] = None
    ) -> ErrorContext:
        """
        Handle an error with appropriate categorization and logging.

        Args:
            error: The exception that occurred
            context: Description of the operation that failed
            board_id: Optional board ID if error relates to a board
            clone_id: Optional clone ID if error relates to a clone
            user_id: Optional user ID if error relates to a user

        Returns:
            ErrorContext with categorized error information
        """
        self._error_count += 1

        if isinstance(error, BoardHubError):
            category = error.category
        else:
            category = self._categorize_error(error)

        error_context = ErrorContext(
            category=category,
            severity=self._determine_severity(error, category),
            operation=context,
            user_message=self._generate_user_message(error, category, context),
            technical_details=self._get_technical_details(error),
            retryable=self._is_retryable(error),
            board_id=board_id,
            clone_id=clone_id,
            user_id=user_id
        )

        self._log_error(error_context)

        return error_context

    def _categorize_error(self, error: Exception) -> ErrorCategory:
        """
        Categorize a foreign exception based on its type.

        Args:
            error: The exception to categorize

        Returns:
            ErrorCategory
        """
        if isinstance(error, OperationalError):
            return ErrorCategory.STORAGE

        if isinstance(error, (ValueError, TypeError)):
            return ErrorCategory.VALIDATION

        error_type = type(error).__name__.lower()
        if any(keyword in error_type for keyword in ['database', 'sql', 'integrity', 'storage']):
            return ErrorCategory.STORAGE

        return ErrorCategory.UNKNOWN

    def _is_retryable(self, error: Exception) -> bool:
        if isinstance(error, BoardHubError):
            return error.retryable
        return isinstance(error, OperationalError)

    def _determine_severity(
        self,
        error: Exception,
        category: ErrorCategory
    ) -> ErrorSeverity:
        """
        Determine the severity of an error.

        Args:
            error: The exception
            category: Error category

        Returns:
            ErrorSeverity
        """
        # Caller mistakes, the request is simply rejected
        if category in (ErrorCategory.NOT_FOUND, ErrorCategory.CONFLICT, ErrorCategory.VALIDATION):
            return ErrorSeverity.INFO

        if category == ErrorCategory.PERMISSION:
            return ErrorSeverity.WARNING

        if category == ErrorCategory.STORAGE:
            if self._is_retryable(error):
                return ErrorSeverity.WARNING
            return ErrorSeverity.ERROR

        return ErrorSeverity.CRITICAL

    def _generate_user_message(
        self,
        error: Exception,
        category: ErrorCategory,
        context: str
    ) -> str:
        """
        Generate a user-friendly error message.

        Args:
            error: The exception
            category: Error category
            context: Operation context

        Returns:
            User-friendly error message
        """
        if isinstance(error, BoardHubError) and category != ErrorCategory.STORAGE:
            return str(error)
        if category == ErrorCategory.VALIDATION:
            return f"Invalid input for {context}: {error}"
        if category == ErrorCategory.STORAGE:
            return "The data store is temporarily unavailable. Please try again."
        return f"An error occurred during {context}. Please try again."

    def _get_technical_details(self, error: Exception) -> str:
        """
        Get technical details for logging.

        Args:
            error: The exception

        Returns:
            Technical details string
        """
        details = [
            f"Exception Type: {type(error).__name__}",
            f"Message: {str(error)}",
            "Traceback:",
            "".join(traceback.format_exception(type(error), error, error.__traceback__))
        ]
        return "\n".join(details)

    def _log_error(self, error_context: ErrorContext):
        """
        Log error with appropriate level.

        Args:
            error_context: Error context information
        """
        log_message = (
            f"[{error_context.category.value.upper()}] "
            f"{error_context.operation}: {error_context.user_message}"
        )

        extra_info = []
        if error_context.board_id is not None:
            extra_info.append(f"board_id={error_context.board_id}")
        if error_context.clone_id is not None:
            extra_info.append(f"clone_id={error_context.clone_id}")
        if error_context.user_id is not None:
            extra_info.append(f"user_id={error_context.user_id}")

        if extra_info:
            log_message += f" ({', '.join(extra_info)})"

        if error_context.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
            logger.critical(f"Technical details:\n{error_context.technical_details}")
        elif error_context.severity == ErrorSeverity.ERROR:
            logger.error(log_message)
            logger.debug(f"Technical details:\n{error_context.technical_details}")
        elif error_context.severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
            logger.debug(f"Technical details:\n{error_context.technical_details}")
        else:
            logger.info(log_message)

    def get_error_count(self) -> int:
        """
        Get total number of errors handled.

        Returns:
            Error count
        """
        return self._error_count

    def reset_error_count(self):
        """Reset error counter."""
        self._error_count = 0


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """
    Get the global error handler instance.

    Returns:
        Global ErrorHandler instance
    """
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def set_error_handler(handler: ErrorHandler):
    """
    Set the global error handler instance.

    Args:
        handler: ErrorHandler instance to use globally
    """
    global _global_error_handler
    _global_error_handler = handler
