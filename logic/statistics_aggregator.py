"""
Statistics Aggregator for the board service

Computes live counts per board and per user at query time.
"""

import logging

from core.db_manager import DBManager
from core.error_handler import UserNotFoundError
from models.views import BoardStats, UserStats


logger = logging.getLogger(__name__)


class StatisticsAggregator:
    """
    Computes aggregate statistics from the store.

    Nothing is cached or materialized; every call reads the current rows, so
    soft-deleting a board, post or reply is reflected on the next read.
    """

    def __init__(self, db_manager: DBManager):
        """
        Initialize StatisticsAggregator.

        Args:
            db_manager: DBManager instance for database operations
        """
        self.db = db_manager

    def board_stats(self, board_id: int) -> BoardStats:
        """
        Count active subscribers, live posts and live replies of a board.

        The three figures are computed independently. Replies under a
        soft-deleted post are not counted.

        Args:
            board_id: Board identifier

        Returns:
            BoardStats for the board
        """
        stats = BoardStats(
            subscriber_count=self.db.count_active_subscribers(board_id),
            post_count=self.db.count_live_posts(board_id),
            reply_count=self.db.count_live_replies(board_id)
        )
        logger.debug(f"Board {board_id} stats: {stats}")
        return stats

    def user_stats(self, user_id: int) -> UserStats:
        """
        Count live posts, live replies and clones across a user's clones.

        Args:
            user_id: User identifier

        Returns:
            UserStats for the user

        Raises:
            UserNotFoundError: If the user is missing or inactive
        """
        if self.db.get_user(user_id) is None:
            raise UserNotFoundError(user_id)

        stats = self.db.aggregate_user_stats(user_id)
        logger.debug(f"User {user_id} stats: {stats}")
        return stats
