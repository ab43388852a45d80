"""boardhub operator entry point.

Loads configuration, sets up logging, initializes the database and runs a
single board or subscription command. Results and errors are printed to
stdout as JSON, logs go to stderr and the log file, and the exit code tells
success (0), a rejected request (1) and a retryable storage failure (2) apart.
"""

import sys
import json
import argparse
import logging
from dataclasses import asdict, is_dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, List, Optional

from config.config_manager import ConfigManager
from core.db_manager import DBManager
from core.error_handler import BoardHubError, get_error_handler
from logic.board_catalog import BoardCatalog
from logic.subscription_manager import SubscriptionManager
from logic.statistics_aggregator import StatisticsAggregator


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_RETRYABLE = 2


def setup_logging(log_level: str, log_path: Path, max_bytes: int = 10485760, backup_count: int = 5):
    """
    Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_path: Path to log file
        max_bytes: Size at which the log file is rotated
        backup_count: Number of rotated files to keep
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'),
            logging.StreamHandler(sys.stderr)
        ],
        force=True
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging initialized at level {log_level}, file {log_path}")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description='boardhub - boards, clone subscriptions and board statistics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the schema
  boardhub init-db

  # Create a board and subscribe clone 7 to it
  boardhub create-board --user 1 --name "General" --description "Anything goes"
  boardhub subscribe 7 1

  # Show board 1 with live counts
  boardhub board-info 1
        """
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        metavar='PATH',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Override logging level from config'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('init-db', help='Create the database schema')

    create = commands.add_parser('create-board', help='Create a board')
    create.add_argument('--user', type=int, required=True, help='Creator user id')
    create.add_argument('--name', type=str, required=True)
    create.add_argument('--description', type=str, default='')

    delete = commands.add_parser('delete-board', help='Soft-delete a board')
    delete.add_argument('--user', type=int, required=True, help='Acting user id')
    delete.add_argument('board_id', type=int)

    info = commands.add_parser('board-info', help='Show a board with live statistics')
    info.add_argument('board_id', type=int)

    commands.add_parser('list-boards', help='List all live boards')

    mine = commands.add_parser('my-boards', help="List boards followed by a user's clones")
    mine.add_argument('user_id', type=int)

    clone_boards = commands.add_parser('clone-boards', help='List boards a clone follows')
    clone_boards.add_argument('clone_id', type=int)

    for name, help_text in (('subscribe', 'Subscribe a clone to a board'),
                            ('unsubscribe', 'Unsubscribe a clone from a board')):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument('clone_id', type=int)
        sub.add_argument('board_id', type=int)

    stats = commands.add_parser('user-stats', help="Count a user's live posts, replies and clones")
    stats.add_argument('user_id', type=int)

    return parser.parse_args(argv)


def run_command(
    args: argparse.Namespace,
    catalog: BoardCatalog,
    subscriptions: SubscriptionManager,
    statistics: StatisticsAggregator
) -> Any:
    """
    Dispatch one parsed command.

    Returns:
        The command's result, ready for JSON output
    """
    if args.command == 'init-db':
        return {'initialized': True}
    if args.command == 'create-board':
        return {'board_id': catalog.create_board(args.user, args.name, args.description)}
    if args.command == 'delete-board':
        catalog.delete_board(args.user, args.board_id)
        return {'deleted': args.board_id}
    if args.command == 'board-info':
        return catalog.get_board_info(args.board_id)
    if args.command == 'list-boards':
        return catalog.list_all_boards()
    if args.command == 'my-boards':
        return catalog.list_boards_via_my_clones(args.user_id)
    if args.command == 'clone-boards':
        return catalog.list_boards_for_clone(args.clone_id)
    if args.command == 'subscribe':
        return {'subscription_id': subscriptions.subscribe(args.clone_id, args.board_id)}
    if args.command == 'unsubscribe':
        subscriptions.unsubscribe(args.clone_id, args.board_id)
        return {'unsubscribed': True}
    if args.command == 'user-stats':
        return statistics.user_stats(args.user_id)
    raise ValueError(f"Unknown command: {args.command}")


def _to_jsonable(result: Any) -> Any:
    if is_dataclass(result):
        return asdict(result)
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    return result


def main(argv: Optional[List[str]] = None) -> int:
    """Run one command and return the process exit code."""
    args = parse_arguments(argv)

    config_path = Path(args.config) if args.config else None
    config_manager = ConfigManager(config_path)

    logging_config = config_manager.get_logging_config()
    if args.log_level:
        logging_config.level = args.log_level
    setup_logging(
        logging_config.level,
        config_manager.expand_path(logging_config.log_path),
        logging_config.max_log_size,
        logging_config.backup_count
    )
    logger = logging.getLogger(__name__)

    error_handler = get_error_handler()

    try:
        storage_config = config_manager.get_storage_config()
        db_manager = DBManager(config_manager.expand_path(storage_config.db_path), echo=storage_config.echo_sql)
        db_manager.initialize_database()

        statistics = StatisticsAggregator(db_manager)
        catalog = BoardCatalog(db_manager, statistics)
        subscriptions = SubscriptionManager(
            db_manager,
            max_conflict_retries=config_manager.get_subscription_config().max_conflict_retries
        )

        result = run_command(args, catalog, subscriptions, statistics)
    except (BoardHubError, ValueError) as e:
        context = error_handler.handle_error(
            e,
            args.command,
            board_id=getattr(args, 'board_id', None),
            clone_id=getattr(args, 'clone_id', None),
            user_id=getattr(args, 'user_id', getattr(args, 'user', None))
        )
        print(json.dumps({'error': type(e).__name__, 'message': context.user_message}))
        return EXIT_RETRYABLE if context.retryable else EXIT_FAILED

    print(json.dumps(_to_jsonable(result), default=str, indent=2))
    logger.debug(f"Command {args.command} completed")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
