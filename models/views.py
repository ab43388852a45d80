"""
Read-side views assembled from several tables.

These are plain frozen dataclasses handed back to callers; they carry no
session state and can be serialized freely by the layer above.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class BoardStats:
    """Live counts for a single board."""
    subscriber_count: int = 0
    post_count: int = 0
    reply_count: int = 0


@dataclass(frozen=True)
class UserStats:
    """Live authored content across all of a user's clones."""
    post_count: int = 0
    reply_count: int = 0
    clone_count: int = 0


@dataclass(frozen=True)
class BoardInfoView:
    """A board together with its creator's nickname and live statistics."""
    board_id: int
    name: str
    creator_nickname: str
    description: str
    subscriber_count: int
    post_count: int
    reply_count: int
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class BoardSummaryView:
    """A board a clone follows, paired with the subscription that links them."""
    subscription_id: int
    board_id: int
    clone_id: int
    name: str
    description: str
    creator_nickname: str
    created_at: datetime
    updated_at: datetime
