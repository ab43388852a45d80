"""Tests for the command-line entry point."""

import json
import logging
import pytest
import yaml

import main
from core.db_manager import DBManager
from models.database import User, Clone


@pytest.fixture(autouse=True)
def restore_root_logger():
    """main.setup_logging replaces the root handlers; put the originals back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path):
    """Write a configuration that keeps the database and logs under tmp_path."""
    path = tmp_path / "settings.yaml"
    with open(path, 'w') as f:
        yaml.dump({
            'storage': {'db_path': str(tmp_path / "data" / "boardhub.db"), 'echo_sql': False},
            'subscriptions': {'max_conflict_retries': 1},
            'logging': {
                'level': 'DEBUG',
                'log_path': str(tmp_path / "logs" / "boardhub.log"),
                'max_log_size': 1048576,
                'backup_count': 1
            }
        }, f)
    return path


@pytest.fixture
def seeded(tmp_path, config_path):
    """Create the schema and one user with one clone."""
    db = DBManager(tmp_path / "data" / "boardhub.db")
    db.initialize_database()
    user = db.save_user(User(nickname="alice"))
    clone = db.save_clone(Clone(user_id=user.id, name="alice-1"))
    return user.id, clone.id


def run(config_path, capsys, *argv):
    code = main.main(['--config', str(config_path), *argv])
    captured = capsys.readouterr()
    return code, captured.out, captured.err


class TestMain:
    """Tests for main.main."""

    def test_init_db(self, tmp_path, config_path, capsys):
        code, out, _ = run(config_path, capsys, 'init-db')

        assert code == main.EXIT_OK
        assert json.loads(out) == {'initialized': True}
        assert (tmp_path / "data" / "boardhub.db").exists()
        assert (tmp_path / "logs" / "boardhub.log").exists()

    def test_board_and_subscription_flow(self, config_path, seeded, capsys):
        user_id, clone_id = seeded

        code, out, _ = run(config_path, capsys, 'create-board', '--user', str(user_id), '--name', 'General')
        assert code == main.EXIT_OK
        board_id = json.loads(out)['board_id']

        code, out, _ = run(config_path, capsys, 'subscribe', str(clone_id), str(board_id))
        assert code == main.EXIT_OK
        subscription_id = json.loads(out)['subscription_id']

        code, out, _ = run(config_path, capsys, 'subscribe', str(clone_id), str(board_id))
        assert code == main.EXIT_FAILED
        assert json.loads(out)['error'] == 'AlreadyActiveError'

        code, out, _ = run(config_path, capsys, 'board-info', str(board_id))
        info = json.loads(out)
        assert info['subscriber_count'] == 1
        assert info['creator_nickname'] == 'alice'

        code, out, _ = run(config_path, capsys, 'clone-boards', str(clone_id))
        assert json.loads(out)[0]['subscription_id'] == subscription_id

        code, out, _ = run(config_path, capsys, 'my-boards', str(user_id))
        assert [b['board_id'] for b in json.loads(out)] == [board_id]

        code, _, _ = run(config_path, capsys, 'unsubscribe', str(clone_id), str(board_id))
        assert code == main.EXIT_OK

        code, out, _ = run(config_path, capsys, 'list-boards')
        assert json.loads(out)[0]['subscriber_count'] == 0

        code, out, _ = run(config_path, capsys, 'user-stats', str(user_id))
        assert json.loads(out) == {'post_count': 0, 'reply_count': 0, 'clone_count': 1}

    def test_not_found_exit_code(self, config_path, seeded, capsys):
        code, out, _ = run(config_path, capsys, 'board-info', '42')

        assert code == main.EXIT_FAILED
        assert json.loads(out) == {'error': 'BoardNotFoundError', 'message': 'Board 42 not found'}

    def test_invalid_name_exit_code(self, config_path, seeded, capsys):
        user_id, _ = seeded

        code, out, _ = run(config_path, capsys, 'create-board', '--user', str(user_id), '--name', '  ')

        assert code == main.EXIT_FAILED
        assert json.loads(out)['error'] == 'ValueError'

    def test_delete_board(self, config_path, seeded, capsys):
        user_id, _ = seeded
        _, out, _ = run(config_path, capsys, 'create-board', '--user', str(user_id), '--name', 'Temp')
        board_id = json.loads(out)['board_id']

        code, _, _ = run(config_path, capsys, 'delete-board', '--user', str(user_id), str(board_id))
        assert code == main.EXIT_OK

        code, out, _ = run(config_path, capsys, 'list-boards')
        assert json.loads(out) == []

    def test_unreachable_store_exit_code(self, tmp_path, config_path, capsys):
        with open(config_path) as f:
            config = yaml.safe_load(f)
        config['storage']['db_path'] = str(tmp_path)
        with open(config_path, 'w') as f:
            yaml.dump(config, f)

        code, out, _ = run(config_path, capsys, 'list-boards')

        assert code == main.EXIT_RETRYABLE
        assert json.loads(out)['error'] == 'TransientStorageError'
