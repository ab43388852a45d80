"""Tests for StatisticsAggregator."""

import pytest

from core.db_manager import DBManager
from core.error_handler import UserNotFoundError
from logic.statistics_aggregator import StatisticsAggregator
from logic.subscription_manager import SubscriptionManager
from models.database import User, Clone, Board, Post, Reply
from models.views import BoardStats, UserStats


@pytest.fixture
def db_manager(tmp_path):
    db = DBManager(tmp_path / "test.db")
    db.initialize_database()
    return db


@pytest.fixture
def statistics(db_manager):
    return StatisticsAggregator(db_manager)


@pytest.fixture
def subscriptions(db_manager):
    return SubscriptionManager(db_manager)


@pytest.fixture
def user(db_manager):
    return db_manager.save_user(User(nickname="alice"))


@pytest.fixture
def board(db_manager, user):
    return db_manager.save_board(Board(name="General", creator_id=user.id))


def make_clones(db_manager, user, count):
    return [db_manager.save_clone(Clone(user_id=user.id, name=f"clone-{i}")) for i in range(count)]


class TestBoardStats:
    """Tests for per-board counts."""

    def test_empty_board(self, statistics, board):
        assert statistics.board_stats(board.id) == BoardStats(0, 0, 0)

    def test_counts_ignore_deleted_posts(self, db_manager, statistics, subscriptions, user, board):
        """N subscribers, M deleted posts, K live posts with R live replies."""
        clones = make_clones(db_manager, user, 3)
        for clone in clones:
            subscriptions.subscribe(clone.id, board.id)

        author = clones[0]
        live_posts = [db_manager.save_post(Post(board_id=board.id, author_clone_id=author.id)) for _ in range(4)]
        for _ in range(2):
            dead = db_manager.save_post(Post(board_id=board.id, author_clone_id=author.id))
            db_manager.save_reply(Reply(post_id=dead.id, author_clone_id=author.id))
            db_manager.soft_delete_post(dead.id)
        for post in live_posts[:2]:
            db_manager.save_reply(Reply(post_id=post.id, author_clone_id=clones[1].id))
            db_manager.save_reply(Reply(post_id=post.id, author_clone_id=clones[2].id))

        assert statistics.board_stats(board.id) == BoardStats(
            subscriber_count=3,
            post_count=4,
            reply_count=4
        )

    def test_inactive_subscriptions_not_counted(self, db_manager, statistics, subscriptions, user, board):
        first, second = make_clones(db_manager, user, 2)
        subscriptions.subscribe(first.id, board.id)
        subscriptions.subscribe(second.id, board.id)
        subscriptions.unsubscribe(second.id, board.id)

        assert statistics.board_stats(board.id).subscriber_count == 1

    def test_deleted_reply_not_counted(self, db_manager, statistics, user, board):
        (clone,) = make_clones(db_manager, user, 1)
        post = db_manager.save_post(Post(board_id=board.id, author_clone_id=clone.id))
        reply = db_manager.save_reply(Reply(post_id=post.id, author_clone_id=clone.id))
        db_manager.save_reply(Reply(post_id=post.id, author_clone_id=clone.id))

        db_manager.soft_delete_reply(reply.id)

        assert statistics.board_stats(board.id).reply_count == 1


class TestUserStats:
    """Tests for per-user counts."""

    def test_counts_across_clones(self, db_manager, statistics, user, board):
        """A post with many replies must not inflate the post count."""
        first, second = make_clones(db_manager, user, 2)
        post = db_manager.save_post(Post(board_id=board.id, author_clone_id=first.id))
        db_manager.save_post(Post(board_id=board.id, author_clone_id=second.id))
        for _ in range(5):
            db_manager.save_reply(Reply(post_id=post.id, author_clone_id=second.id))

        assert statistics.user_stats(user.id) == UserStats(post_count=2, reply_count=5, clone_count=2)

    def test_deleted_content_excluded(self, db_manager, statistics, user, board):
        (clone,) = make_clones(db_manager, user, 1)
        kept = db_manager.save_post(Post(board_id=board.id, author_clone_id=clone.id))
        dropped = db_manager.save_post(Post(board_id=board.id, author_clone_id=clone.id))
        db_manager.save_reply(Reply(post_id=kept.id, author_clone_id=clone.id))
        db_manager.save_reply(Reply(post_id=dropped.id, author_clone_id=clone.id))
        db_manager.soft_delete_post(dropped.id)

        assert statistics.user_stats(user.id) == UserStats(post_count=1, reply_count=1, clone_count=1)

    def test_other_users_not_counted(self, db_manager, statistics, user, board):
        other = db_manager.save_user(User(nickname="bob"))
        (other_clone,) = make_clones(db_manager, other, 1)
        db_manager.save_post(Post(board_id=board.id, author_clone_id=other_clone.id))

        assert statistics.user_stats(user.id) == UserStats(0, 0, 0)

    def test_inactive_user(self, db_manager, statistics):
        inactive = db_manager.save_user(User(nickname="ghost", is_active=False))

        with pytest.raises(UserNotFoundError):
            statistics.user_stats(inactive.id)

    def test_missing_user(self, statistics):
        with pytest.raises(UserNotFoundError):
            statistics.user_stats(999)
