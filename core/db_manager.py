"""
Database manager for the board subscription service.

This module provides the DBManager class which handles all database operations
including initialization, lookups, aggregate counting and transaction
management.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
from contextlib import contextmanager
from sqlalchemy import create_engine, event, func, distinct, select
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import OperationalError

from core.error_handler import TransientStorageError
from models.database import (
    Base,
    User,
    Clone,
    Board,
    Subscription,
    Post,
    Reply,
    LifecycleState,
    SubscriptionState,
)
from models.views import UserStats


logger = logging.getLogger(__name__)


class DBManager:
    """
    Manages database operations for the board service.

    Provides methods for initializing the database, saving and retrieving
    data, and managing transactions with automatic rollback on errors.

    Lookup and save methods accept an optional ``session``. When one is
    given the call joins that unit of work and nothing is committed; when
    omitted the call runs in its own short transaction.
    """

    def __init__(self, db_path: Path, echo: bool = False):
        """
        Initialize the database manager.

        Args:
            db_path: Path to the SQLite database file
            echo: Log every SQL statement through SQLAlchemy
        """
        self.db_path = db_path
        self.echo = echo
        self.engine = None
        self.SessionLocal = None

    def initialize_database(self):
        """
        Initialize the database by creating the schema if it doesn't exist.

        Creates all tables defined in the models and sets up the session factory.

        Raises:
            TransientStorageError: If the database file cannot be opened
        """
        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        db_url = f"sqlite:///{self.db_path}"
        self.engine = create_engine(
            db_url,
            echo=self.echo,
            connect_args={"check_same_thread": False}
        )

        # Enable foreign key constraints for SQLite
        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        try:
            Base.metadata.create_all(self.engine)
        except OperationalError as e:
            logger.error(f"Cannot open database at {self.db_path}: {e.orig}")
            raise TransientStorageError(f"Storage unavailable: {e.orig}") from e

        # expire_on_commit=False keeps loaded attributes usable after the session closes
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.info(f"Database ready at {self.db_path}")

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """
        Context manager for database sessions with automatic rollback on error.

        Operational failures (database unreachable, locked, missing schema)
        are re-raised as TransientStorageError so callers can retry.

        Yields:
            Session: SQLAlchemy session object

        Example:
            with db_manager.get_session() as session:
                session.add(board)
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except OperationalError as e:
            session.rollback()
            logger.warning(f"Storage operation failed: {e.orig}")
            raise TransientStorageError(f"Storage unavailable: {e.orig}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def _session_scope(self, session: Optional[Session] = None) -> Iterator[Session]:
        """Join the caller's session, or open a short-lived one."""
        if session is not None:
            yield session
            return
        with self.get_session() as own:
            yield own

    # User and clone operations

    def save_user(self, user: User, session: Optional[Session] = None) -> User:
        """
        Save a user to the database.

        Args:
            user: User object to save

        Returns:
            The saved user with its id populated
        """
        with self._session_scope(session) as s:
            s.add(user)
            s.flush()
        return user

    def get_user(self, user_id: int, session: Optional[Session] = None) -> Optional[User]:
        """
        Retrieve an active user by ID.

        Args:
            user_id: User identifier

        Returns:
            User object if found and active, None otherwise
        """
        with self._session_scope(session) as s:
            return s.query(User).filter(
                User.id == user_id,
                User.is_active == True
            ).first()

    def save_clone(self, clone: Clone, session: Optional[Session] = None) -> Clone:
        """
        Save a clone to the database.

        Args:
            clone: Clone object to save

        Returns:
            The saved clone with its id populated

        Raises:
            IntegrityError: If the owning user does not exist
        """
        with self._session_scope(session) as s:
            s.add(clone)
            s.flush()
        return clone

    def get_clone(self, clone_id: int, session: Optional[Session] = None) -> Optional[Clone]:
        """
        Retrieve a clone by ID.

        Args:
            clone_id: Clone identifier

        Returns:
            Clone object if found, None otherwise
        """
        with self._session_scope(session) as s:
            return s.query(Clone).filter(Clone.id == clone_id).first()

    # Board operations

    def save_board(self, board: Board, session: Optional[Session] = None) -> Board:
        """
        Save a board to the database.

        Args:
            board: Board object to save

        Returns:
            The saved board with its id populated

        Raises:
            IntegrityError: If the creator does not exist
        """
        with self._session_scope(session) as s:
            s.add(board)
            s.flush()
        return board

    def get_board(self, board_id: int, session: Optional[Session] = None) -> Optional[Board]:
        """
        Retrieve a live board by ID.

        Args:
            board_id: Board identifier

        Returns:
            Board object if found and not soft-deleted, None otherwise
        """
        with self._session_scope(session) as s:
            return s.query(Board).filter(
                Board.id == board_id,
                Board.state == LifecycleState.LIVE
            ).first()

    def get_board_with_creator(self, board_id: int) -> Optional[Tuple[Board, str]]:
        """
        Retrieve a live board together with its creator's nickname.

        Args:
            board_id: Board identifier

        Returns:
            (Board, nickname) if the board is live, None otherwise
        """
        with self.get_session() as session:
            row = session.query(Board, User.nickname).join(
                User, User.id == Board.creator_id
            ).filter(
                Board.id == board_id,
                Board.state == LifecycleState.LIVE
            ).first()
            return (row[0], row[1]) if row else None

    def list_non_deleted_boards(self) -> List[Tuple[Board, str]]:
        """
        Retrieve every live board with its creator's nickname.

        Returns:
            List of (Board, nickname) ordered by creation time, then id
        """
        with self.get_session() as session:
            rows = session.query(Board, User.nickname).join(
                User, User.id == Board.creator_id
            ).filter(
                Board.state == LifecycleState.LIVE
            ).order_by(Board.created_at.asc(), Board.id.asc()).all()
            return [(board, nickname) for board, nickname in rows]

    def list_boards_for_user_clones(self, user_id: int) -> List[Tuple[Board, str]]:
        """
        Retrieve live boards that any clone of the user actively follows.

        Each board appears once no matter how many of the user's clones
        follow it.

        Args:
            user_id: User identifier

        Returns:
            List of (Board, nickname) ordered by creation time, then id
        """
        followed = select(Subscription.board_id).join(
            Clone, Clone.id == Subscription.clone_id
        ).where(
            Clone.user_id == user_id,
            Subscription.state == SubscriptionState.ACTIVE
        )
        with self.get_session() as session:
            rows = session.query(Board, User.nickname).join(
                User, User.id == Board.creator_id
            ).filter(
                Board.state == LifecycleState.LIVE,
                Board.id.in_(followed)
            ).order_by(Board.created_at.asc(), Board.id.asc()).all()
            return [(board, nickname) for board, nickname in rows]

    def soft_delete_board(self, board_id: int, session: Optional[Session] = None) -> bool:
        """
        Mark a board as deleted. Posts, replies and subscriptions stay untouched.

        Args:
            board_id: Board identifier

        Returns:
            True if a live board was flipped, False otherwise
        """
        with self._session_scope(session) as s:
            updated = s.query(Board).filter(
                Board.id == board_id,
                Board.state == LifecycleState.LIVE
            ).update({Board.state: LifecycleState.DELETED}, synchronize_session=False)
            return updated > 0

    # Subscription operations

    def get_subscription(
        self,
        clone_id: int,
        board_id: int,
        session: Optional[Session] = None,
        lock: bool = False
    ) -> Optional[Subscription]:
        """
        Retrieve the subscription record for a clone/board pair in any state.

        Args:
            clone_id: Clone identifier
            board_id: Board identifier
            lock: Take a row lock where the backend supports it

        Returns:
            Subscription object if a record exists, None otherwise
        """
        with self._session_scope(session) as s:
            query = s.query(Subscription).filter(
                Subscription.clone_id == clone_id,
                Subscription.board_id == board_id
            )
            if lock:
                query = query.with_for_update()
            return query.first()

    def save_subscription(self, subscription: Subscription, session: Optional[Session] = None) -> Subscription:
        """
        Save a subscription to the database.

        Args:
            subscription: Subscription object to save

        Returns:
            The saved subscription with its id populated

        Raises:
            IntegrityError: If a record for the same pair already exists
        """
        with self._session_scope(session) as s:
            s.add(subscription)
            s.flush()
        return subscription

    def list_active_subscriptions_for_clone(self, clone_id: int) -> List[Tuple[Subscription, Board, str]]:
        """
        Retrieve the clone's active subscriptions to live boards.

        Args:
            clone_id: Clone identifier

        Returns:
            List of (Subscription, Board, creator nickname) ordered by board
            creation time, then board id
        """
        with self.get_session() as session:
            rows = session.query(Subscription, Board, User.nickname).join(
                Board, Board.id == Subscription.board_id
            ).join(
                User, User.id == Board.creator_id
            ).filter(
                Subscription.clone_id == clone_id,
                Subscription.state == SubscriptionState.ACTIVE,
                Board.state == LifecycleState.LIVE
            ).order_by(Board.created_at.asc(), Board.id.asc()).all()
            return [(sub, board, nickname) for sub, board, nickname in rows]

    # Post and reply operations

    def save_post(self, post: Post, session: Optional[Session] = None) -> Post:
        """
        Save a post to the database.

        Args:
            post: Post object to save

        Returns:
            The saved post with its id populated
        """
        with self._session_scope(session) as s:
            s.add(post)
            s.flush()
        return post

    def save_reply(self, reply: Reply, session: Optional[Session] = None) -> Reply:
        """
        Save a reply to the database.

        Args:
            reply: Reply object to save

        Returns:
            The saved reply with its id populated
        """
        with self._session_scope(session) as s:
            s.add(reply)
            s.flush()
        return reply

    def soft_delete_post(self, post_id: int) -> bool:
        """Mark a post as deleted. Returns True if a live post was flipped."""
        with self.get_session() as session:
            updated = session.query(Post).filter(
                Post.id == post_id,
                Post.state == LifecycleState.LIVE
            ).update({Post.state: LifecycleState.DELETED}, synchronize_session=False)
            return updated > 0

    def soft_delete_reply(self, reply_id: int) -> bool:
        """Mark a reply as deleted. Returns True if a live reply was flipped."""
        with self.get_session() as session:
            updated = session.query(Reply).filter(
                Reply.id == reply_id,
                Reply.state == LifecycleState.LIVE
            ).update({Reply.state: LifecycleState.DELETED}, synchronize_session=False)
            return updated > 0

    # Aggregate counts

    def count_active_subscribers(self, board_id: int) -> int:
        """
        Count distinct clones holding an active subscription to a board.

        Args:
            board_id: Board identifier

        Returns:
            Number of subscribed clones
        """
        with self.get_session() as session:
            return session.query(func.count(distinct(Subscription.clone_id))).filter(
                Subscription.board_id == board_id,
                Subscription.state == SubscriptionState.ACTIVE
            ).scalar() or 0

    def count_live_posts(self, board_id: int) -> int:
        """
        Count posts on a board that are not soft-deleted.

        Args:
            board_id: Board identifier

        Returns:
            Number of live posts
        """
        with self.get_session() as session:
            return session.query(func.count(Post.id)).filter(
                Post.board_id == board_id,
                Post.state == LifecycleState.LIVE
            ).scalar() or 0

    def count_live_replies(self, board_id: int) -> int:
        """
        Count live replies under live posts of a board.

        A reply whose parent post was soft-deleted is excluded even though
        the reply row itself is still LIVE.

        Args:
            board_id: Board identifier

        Returns:
            Number of live replies
        """
        with self.get_session() as session:
            return session.query(func.count(Reply.id)).join(
                Post, Post.id == Reply.post_id
            ).filter(
                Post.board_id == board_id,
                Post.state == LifecycleState.LIVE,
                Reply.state == LifecycleState.LIVE
            ).scalar() or 0

    def aggregate_user_stats(self, user_id: int) -> UserStats:
        """
        Count live posts, live replies and clones across all of a user's clones.

        Each figure is a separate COUNT(DISTINCT ...) so that joining posts
        and replies through the same clone can never multiply the result.

        Args:
            user_id: User identifier

        Returns:
            UserStats for the user
        """
        with self.get_session() as session:
            clone_ids = select(Clone.id).where(Clone.user_id == user_id)

            post_count = session.query(func.count(distinct(Post.id))).filter(
                Post.author_clone_id.in_(clone_ids),
                Post.state == LifecycleState.LIVE
            ).scalar() or 0

            reply_count = session.query(func.count(distinct(Reply.id))).join(
                Post, Post.id == Reply.post_id
            ).filter(
                Reply.author_clone_id.in_(clone_ids),
                Reply.state == LifecycleState.LIVE,
                Post.state == LifecycleState.LIVE
            ).scalar() or 0

            clone_count = session.query(func.count(distinct(Clone.id))).filter(
                Clone.user_id == user_id
            ).scalar() or 0

            return UserStats(
                post_count=post_count,
                reply_count=reply_count,
                clone_count=clone_count
            )
