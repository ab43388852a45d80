"""
Core module for the board service.

This module contains the core functionality including:
- Database operations (the entity store)
- Error kinds and centralized error handling
"""

__version__ = "0.1.0"

from core.error_handler import (
    BoardHubError,
    NotFoundError,
    BoardNotFoundError,
    UserNotFoundError,
    CloneNotFoundError,
    SubscriptionNotFoundError,
    AlreadyActiveError,
    NotBoardOwnerError,
    TransientStorageError,
    ErrorHandler,
    get_error_handler,
)
from core.db_manager import DBManager

__all__ = [
    'BoardHubError',
    'NotFoundError',
    'BoardNotFoundError',
    'UserNotFoundError',
    'CloneNotFoundError',
    'SubscriptionNotFoundError',
    'AlreadyActiveError',
    'NotBoardOwnerError',
    'TransientStorageError',
    'ErrorHandler',
    'get_error_handler',
    'DBManager',
]
