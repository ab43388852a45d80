"""
Subscription Manager for the board service

Owns the lifecycle of the Clone <-> Board subscription record: creation on
first subscribe, then toggling between ACTIVE and INACTIVE. A record is never
deleted and never duplicated.
"""

import logging
from enum import Enum
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.db_manager import DBManager
from core.error_handler import (
    AlreadyActiveError,
    BoardNotFoundError,
    CloneNotFoundError,
    SubscriptionNotFoundError,
    TransientStorageError,
)
from models.database import Subscription, SubscriptionState


logger = logging.getLogger(__name__)


class SubscriptionAction(Enum):
    """Requests that move a subscription record between states."""
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


def next_subscription_state(
    current: Optional[SubscriptionState],
    action: SubscriptionAction,
    clone_id: int,
    board_id: int
) -> SubscriptionState:
    """
    Compute the state a subscription record moves to.

    ``current`` is None when no record exists for the pair yet.

    Args:
        current: Current record state, or None for no record
        action: Requested action
        clone_id: Clone identifier, used in error messages
        board_id: Board identifier, used in error messages

    Returns:
        The target SubscriptionState

    Raises:
        AlreadyActiveError: Subscribing while already ACTIVE
        SubscriptionNotFoundError: Unsubscribing with no record
    """
    if action is SubscriptionAction.SUBSCRIBE:
        if current is SubscriptionState.ACTIVE:
            raise AlreadyActiveError(clone_id, board_id)
        return SubscriptionState.ACTIVE

    if current is None:
        raise SubscriptionNotFoundError(clone_id, board_id)
    # Unsubscribing an INACTIVE record is a no-op
    return SubscriptionState.INACTIVE


class SubscriptionManager:
    """
    Manages clone subscriptions to boards.

    Responsibilities:
    - Create a subscription the first time a clone follows a board
    - Reactivate the existing record on re-subscribe
    - Deactivate the record on unsubscribe
    - Keep at most one record per (clone, board) pair under concurrent calls
    """

    def __init__(self, db_manager: DBManager, max_conflict_retries: int = 3):
        """
        Initialize SubscriptionManager.

        Args:
            db_manager: DBManager instance for database operations
            max_conflict_retries: How many times a subscribe that lost an
                insert race is re-run before giving up
        """
        self.db = db_manager
        self.max_conflict_retries = max_conflict_retries

    def subscribe(self, clone_id: int, board_id: int) -> int:
        """
        Subscribe a clone to a board.

        Reactivates the pair's record if it is INACTIVE, otherwise creates
        it. The lookup and the write run in one transaction. When a
        concurrent caller inserts the same pair first, the unique constraint
        rejects our insert, the transaction rolls back and the whole step is
        re-run against the now existing record.

        Args:
            clone_id: Clone identifier
            board_id: Board identifier

        Returns:
            Subscription id

        Raises:
            AlreadyActiveError: If the clone already follows the board
            CloneNotFoundError: If no record exists and the clone is missing
            BoardNotFoundError: If no record exists and the board is missing or deleted
            TransientStorageError: If the store is unavailable or the conflict persists
        """
        for attempt in range(1, self.max_conflict_retries + 2):
            try:
                with self.db.get_session() as session:
                    subscription = self._apply(session, SubscriptionAction.SUBSCRIBE, clone_id, board_id)
                    subscription_id = subscription.id
            except IntegrityError:
                logger.warning(
                    f"Subscription for clone {clone_id} on board {board_id} was created "
                    f"concurrently (attempt {attempt}), re-reading"
                )
                continue

            logger.info(f"Clone {clone_id} subscribed to board {board_id} (subscription {subscription_id})")
            return subscription_id

        raise TransientStorageError(
            f"Subscription for clone {clone_id} on board {board_id} kept conflicting "
            f"after {self.max_conflict_retries} retries"
        )

    def unsubscribe(self, clone_id: int, board_id: int) -> None:
        """
        Unsubscribe a clone from a board.

        The record is kept and marked INACTIVE. Unsubscribing an already
        inactive record succeeds without changes.

        Args:
            clone_id: Clone identifier
            board_id: Board identifier

        Raises:
            SubscriptionNotFoundError: If the pair has never been subscribed
            TransientStorageError: If the store is unavailable
        """
        with self.db.get_session() as session:
            subscription = self._apply(session, SubscriptionAction.UNSUBSCRIBE, clone_id, board_id)
            subscription_id = subscription.id

        logger.info(f"Clone {clone_id} unsubscribed from board {board_id} (subscription {subscription_id})")

    def get_subscription(self, clone_id: int, board_id: int) -> Optional[Subscription]:
        """
        Get the subscription record for a pair in any state.

        Args:
            clone_id: Clone identifier
            board_id: Board identifier

        Returns:
            Subscription if one was ever created, None otherwise
        """
        return self.db.get_subscription(clone_id, board_id)

    def is_subscribed(self, clone_id: int, board_id: int) -> bool:
        """
        Check if a clone currently follows a board.

        Args:
            clone_id: Clone identifier
            board_id: Board identifier

        Returns:
            True if an ACTIVE record exists, False otherwise
        """
        subscription = self.db.get_subscription(clone_id, board_id)
        return subscription is not None and subscription.is_active

    def _apply(
        self,
        session: Session,
        action: SubscriptionAction,
        clone_id: int,
        board_id: int
    ) -> Subscription:
        """Run one transition for the pair inside the caller's transaction."""
        subscription = self.db.get_subscription(clone_id, board_id, session=session, lock=True)
        current = subscription.state if subscription is not None else None

        target = next_subscription_state(current, action, clone_id, board_id)

        if action is SubscriptionAction.SUBSCRIBE:
            if subscription is None and self.db.get_clone(clone_id, session=session) is None:
                raise CloneNotFoundError(clone_id)
            # Reactivation also requires a live board
            if self.db.get_board(board_id, session=session) is None:
                raise BoardNotFoundError(board_id)

        if subscription is None:
            subscription = Subscription(clone_id=clone_id, board_id=board_id, state=target)
            return self.db.save_subscription(subscription, session=session)

        if subscription.state is not target:
            logger.debug(f"Subscription {subscription.id}: {subscription.state.value} -> {target.value}")
            subscription.state = target
            session.flush()

        return subscription
