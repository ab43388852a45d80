"""
Board Catalog for the board service

Manages board creation, editing and soft deletion, and assembles the board
views (board + creator + live statistics) handed back to callers.
"""

import logging
from typing import List

from core.db_manager import DBManager
from core.error_handler import BoardNotFoundError, NotBoardOwnerError, UserNotFoundError
from logic.statistics_aggregator import StatisticsAggregator
from models.database import Board
from models.views import BoardInfoView, BoardSummaryView


logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 500


class BoardCatalog:
    """
    Manages board operations.

    Responsibilities:
    - Create boards owned by an active user
    - Retrieve single boards and board listings with live statistics
    - List the boards a user's clones, or a single clone, follow
    - Let a board's creator edit or soft-delete it
    """

    def __init__(self, db_manager: DBManager, statistics: StatisticsAggregator):
        """
        Initialize BoardCatalog.

        Args:
            db_manager: DBManager instance for database operations
            statistics: StatisticsAggregator used to attach counts to board views
        """
        self.db = db_manager
        self.statistics = statistics

    def create_board(self, user_id: int, name: str, description: str = "") -> int:
        """
        Create a new board owned by a user.

        Args:
            user_id: Creator's user identifier
            name: Board name (1-50 characters after trimming)
            description: Board description (up to 500 characters)

        Returns:
            The new board id

        Raises:
            UserNotFoundError: If the user is missing or inactive
            ValueError: If name or description is invalid
        """
        name, description = self._validate(name, description)

        with self.db.get_session() as session:
            if self.db.get_user(user_id, session=session) is None:
                raise UserNotFoundError(user_id)

            board = self.db.save_board(
                Board(name=name, description=description, creator_id=user_id),
                session=session
            )
            board_id = board.id

        logger.info(f"Created board '{name}' with ID {board_id} for user {user_id}")
        return board_id

    def get_board_info(self, board_id: int) -> BoardInfoView:
        """
        Retrieve a live board with its creator's nickname and statistics.

        Args:
            board_id: Board identifier

        Returns:
            BoardInfoView for the board

        Raises:
            BoardNotFoundError: If the board is missing or soft-deleted
        """
        row = self.db.get_board_with_creator(board_id)
        if row is None:
            raise BoardNotFoundError(board_id)

        board, nickname = row
        return self._to_info_view(board, nickname)

    def list_all_boards(self) -> List[BoardInfoView]:
        """
        Retrieve every live board, oldest first.

        Returns:
            List of BoardInfoView
        """
        boards = [self._to_info_view(board, nickname) for board, nickname in self.db.list_non_deleted_boards()]
        logger.debug(f"Retrieved {len(boards)} boards")
        return boards

    def list_boards_via_my_clones(self, user_id: int) -> List[BoardInfoView]:
        """
        Retrieve live boards followed by at least one of the user's clones.

        A board followed by several of the user's clones is listed once.

        Args:
            user_id: User identifier

        Returns:
            List of BoardInfoView
        """
        boards = [
            self._to_info_view(board, nickname)
            for board, nickname in self.db.list_boards_for_user_clones(user_id)
        ]
        logger.debug(f"Retrieved {len(boards)} boards followed by clones of user {user_id}")
        return boards

    def list_boards_for_clone(self, clone_id: int) -> List[BoardSummaryView]:
        """
        Retrieve live boards a clone follows, each with its subscription id.

        Args:
            clone_id: Clone identifier

        Returns:
            List of BoardSummaryView
        """
        return [
            BoardSummaryView(
                subscription_id=subscription.id,
                board_id=board.id,
                clone_id=subscription.clone_id,
                name=board.name,
                description=board.description,
                creator_nickname=nickname,
                created_at=board.created_at,
                updated_at=board.updated_at
            )
            for subscription, board, nickname in self.db.list_active_subscriptions_for_clone(clone_id)
        ]

    def update_board(self, user_id: int, board_id: int, name: str, description: str = "") -> BoardInfoView:
        """
        Update a board's name and description. Only the creator may do this.

        Args:
            user_id: Acting user identifier
            board_id: Board identifier
            name: New name
            description: New description

        Returns:
            Updated BoardInfoView

        Raises:
            BoardNotFoundError: If the board is missing or soft-deleted
            NotBoardOwnerError: If the user did not create the board
            ValueError: If name or description is invalid
        """
        name, description = self._validate(name, description)

        with self.db.get_session() as session:
            board = self._get_owned_board(session, user_id, board_id)
            board.name = name
            board.description = description

        logger.info(f"Updated board '{name}' ({board_id})")
        return self.get_board_info(board_id)

    def delete_board(self, user_id: int, board_id: int) -> None:
        """
        Soft-delete a board. Only the creator may do this.

        Posts, replies and subscriptions on the board are left in place; they
        simply stop appearing in board listings and statistics.

        Args:
            user_id: Acting user identifier
            board_id: Board identifier

        Raises:
            BoardNotFoundError: If the board is missing or already deleted
            NotBoardOwnerError: If the user did not create the board
        """
        with self.db.get_session() as session:
            self._get_owned_board(session, user_id, board_id)
            self.db.soft_delete_board(board_id, session=session)

        logger.info(f"Deleted board {board_id}")

    def _get_owned_board(self, session, user_id: int, board_id: int) -> Board:
        board = self.db.get_board(board_id, session=session)
        if board is None:
            raise BoardNotFoundError(board_id)
        if board.creator_id != user_id:
            raise NotBoardOwnerError(user_id, board_id)
        return board

    def _validate(self, name: str, description: str):
        name = (name or "").strip()
        description = description or ""
        if not name or len(name) > MAX_NAME_LENGTH:
            raise ValueError(f"Board name must be 1-{MAX_NAME_LENGTH} characters")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f"Board description must be at most {MAX_DESCRIPTION_LENGTH} characters")
        return name, description

    def _to_info_view(self, board: Board, nickname: str) -> BoardInfoView:
        stats = self.statistics.board_stats(board.id)
        return BoardInfoView(
            board_id=board.id,
            name=board.name,
            creator_nickname=nickname,
            description=board.description,
            subscriber_count=stats.subscriber_count,
            post_count=stats.post_count,
            reply_count=stats.reply_count,
            created_at=board.created_at,
            updated_at=board.updated_at
        )
