"""Tests for error kinds and the ErrorHandler."""

import logging
import pytest
from sqlalchemy.exc import OperationalError

from core.error_handler import (
    AlreadyActiveError,
    BoardNotFoundError,
    CloneNotFoundError,
    ErrorCategory,
    ErrorHandler,
    ErrorSeverity,
    NotBoardOwnerError,
    NotFoundError,
    SubscriptionNotFoundError,
    TransientStorageError,
    UserNotFoundError,
    get_error_handler,
    set_error_handler,
)


@pytest.fixture
def handler():
    return ErrorHandler()


class TestErrorKinds:
    """Error kinds are distinct and carry their category."""

    @pytest.mark.parametrize("error", [
        BoardNotFoundError(1),
        UserNotFoundError(1),
        CloneNotFoundError(1),
        SubscriptionNotFoundError(1, 2),
    ])
    def test_not_found_kinds(self, error):
        assert isinstance(error, NotFoundError)
        assert error.category is ErrorCategory.NOT_FOUND
        assert error.retryable is False

    def test_already_active(self):
        error = AlreadyActiveError(3, 4)
        assert error.category is ErrorCategory.CONFLICT
        assert (error.clone_id, error.board_id) == (3, 4)
        assert not isinstance(error, NotFoundError)

    def test_only_storage_errors_are_retryable(self):
        assert TransientStorageError("down").retryable is True
        assert NotBoardOwnerError(1, 2).retryable is False


class TestErrorHandler:
    """Tests for ErrorHandler.handle_error."""

    def test_domain_error(self, handler):
        context = handler.handle_error(BoardNotFoundError(7), "board-info", board_id=7)

        assert context.category is ErrorCategory.NOT_FOUND
        assert context.severity is ErrorSeverity.INFO
        assert context.user_message == "Board 7 not found"
        assert context.retryable is False
        assert context.board_id == 7

    def test_transient_error(self, handler, caplog):
        with caplog.at_level(logging.WARNING, logger="core.error_handler"):
            context = handler.handle_error(TransientStorageError("locked"), "subscribe", clone_id=1, board_id=2)

        assert context.category is ErrorCategory.STORAGE
        assert context.severity is ErrorSeverity.WARNING
        assert context.retryable is True
        assert "clone_id=1" in caplog.text

    def test_raw_operational_error(self, handler):
        error = OperationalError("SELECT 1", {}, Exception("database is locked"))

        context = handler.handle_error(error, "list-boards")

        assert context.category is ErrorCategory.STORAGE
        assert context.retryable is True

    def test_value_error(self, handler):
        context = handler.handle_error(ValueError("Board name must be 1-50 characters"), "create-board")

        assert context.category is ErrorCategory.VALIDATION
        assert "create-board" in context.user_message

    def test_permission_error(self, handler):
        context = handler.handle_error(NotBoardOwnerError(1, 2), "delete-board")

        assert context.category is ErrorCategory.PERMISSION
        assert context.severity is ErrorSeverity.WARNING

    def test_unknown_error_is_critical(self, handler):
        context = handler.handle_error(RuntimeError("boom"), "board-info")

        assert context.category is ErrorCategory.UNKNOWN
        assert context.severity is ErrorSeverity.CRITICAL
        assert "RuntimeError" in context.technical_details

    def test_error_count(self, handler):
        handler.handle_error(BoardNotFoundError(1), "a")
        handler.handle_error(UserNotFoundError(1), "b")
        assert handler.get_error_count() == 2

        handler.reset_error_count()
        assert handler.get_error_count() == 0

    def test_global_handler(self, handler):
        set_error_handler(handler)
        assert get_error_handler() is handler
