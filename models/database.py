"""
SQLAlchemy database models for the board subscription service.

This module defines User, Clone, Board, Subscription, Post and Reply.
References between records are plain foreign-key columns; lookups across
entities go through DBManager queries rather than ORM relationships.
"""

import enum
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Boolean, Text, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class LifecycleState(enum.Enum):
    """Soft-delete state shared by boards, posts and replies."""
    LIVE = "live"
    DELETED = "deleted"


class SubscriptionState(enum.Enum):
    """Whether a clone currently follows a board."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(Base):
    """
    Represents an account holder.

    Users own clones; only active users may create boards or be asked for
    statistics.
    """
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, autoincrement=True)
    nickname = Column(String, nullable=False)
    email = Column(String, nullable=True, unique=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, nickname={self.nickname})>"


class Clone(Base):
    """
    Represents an actor identity controlled by exactly one user.

    Posts, replies and board subscriptions are attributed to a clone.
    """
    __tablename__ = 'clones'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    name = Column(String, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Clone(id={self.id}, user_id={self.user_id})>"


class Board(Base):
    """
    Represents a discussion board.

    A board is owned by the user who created it. Deleting a board only flips
    its state; posts and replies made on it stay in place.
    """
    __tablename__ = 'boards'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    creator_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    state = Column(Enum(LifecycleState), nullable=False, default=LifecycleState.LIVE)

    def __repr__(self):
        return f"<Board(id={self.id}, name={self.name})>"


class Subscription(Base):
    """
    Represents the Clone <-> Board relationship.

    There is at most one row per (clone, board) pair. The row is created on
    the first subscribe and afterwards only toggled between ACTIVE and
    INACTIVE.
    """
    __tablename__ = 'clone_boards'
    __table_args__ = (
        UniqueConstraint('clone_id', 'board_id', name='uq_clone_board'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    clone_id = Column(Integer, ForeignKey('clones.id'), nullable=False, index=True)
    board_id = Column(Integer, ForeignKey('boards.id'), nullable=False, index=True)
    state = Column(Enum(SubscriptionState), nullable=False, default=SubscriptionState.ACTIVE)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return self.state is SubscriptionState.ACTIVE

    def __repr__(self):
        return f"<Subscription(id={self.id}, clone={self.clone_id}, board={self.board_id}, state={self.state})>"


class Post(Base):
    """A post made by a clone on a board."""
    __tablename__ = 'posts'

    id = Column(Integer, primary_key=True, autoincrement=True)
    board_id = Column(Integer, ForeignKey('boards.id'), nullable=False, index=True)
    author_clone_id = Column(Integer, ForeignKey('clones.id'), nullable=False, index=True)
    title = Column(String, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    state = Column(Enum(LifecycleState), nullable=False, default=LifecycleState.LIVE)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Post(id={self.id}, board={self.board_id}, author={self.author_clone_id})>"


class Reply(Base):
    """A reply by a clone to a post."""
    __tablename__ = 'replies'

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey('posts.id'), nullable=False, index=True)
    author_clone_id = Column(Integer, ForeignKey('clones.id'), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    state = Column(Enum(LifecycleState), nullable=False, default=LifecycleState.LIVE)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Reply(id={self.id}, post={self.post_id}, author={self.author_clone_id})>"
