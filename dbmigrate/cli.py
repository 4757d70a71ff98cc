"""
Command line runner

    dbmigrate                          # apply all pending migrations
    dbmigrate --check                  # exit 1 when migrations are pending
    dbmigrate --status                 # print applied / pending migrations
    dbmigrate --rollback 2             # revert the last two migrations
    dbmigrate --to 20240101120000      # move to an exact version

The migration list is read from "module:attribute" (--module, or the
MIGRATIONS_MODULE setting).
"""
import argparse
import importlib
import sys
from typing import List, Optional, Sequence

from loguru import logger

from dbmigrate.config.settings import settings
from dbmigrate.database.connection import create_db_engine
from dbmigrate.services.migration import (
    ConfigurationError,
    Migration,
    MigrationFailure,
    MigrationManager,
)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def load_migrations(path: str) -> List[Migration]:
    """Import the migration list named by "module:attribute" """
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(f"Expected 'module:attribute', got '{path}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import migrations module '{module_name}': {e}") from e

    try:
        migrations = getattr(module, attribute)
    except AttributeError as e:
        raise ConfigurationError(f"Module '{module_name}' has no attribute '{attribute}'") from e

    try:
        return list(migrations)
    except TypeError as e:
        raise ConfigurationError(f"'{path}' is not a list of migrations: {e}") from e


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dbmigrate", description="Apply or revert database migrations")
    parser.add_argument("--database-url", help="SQLAlchemy database URL (default: from settings)")
    parser.add_argument("--module", help="migration list as module:attribute (default: from settings)")
    parser.add_argument("--log-level", help="log level (default: from settings)")

    action = parser.add_mutually_exclusive_group()
    action.add_argument("--check", action="store_true", help="only check whether migrations are pending")
    action.add_argument("--status", action="store_true", help="show migration status")
    action.add_argument("--rollback", type=non_negative_int, metavar="STEPS", help="revert the last STEPS migrations")
    action.add_argument("--to", type=int, metavar="VERSION", help="migrate up or down to VERSION")
    return parser


def configure_logging(level: str):
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or settings.log_level)

    try:
        migrations = load_migrations(args.module or settings.migrations_module)
    except ConfigurationError as e:
        logger.error(f"❌ Configuration error: {e}")
        return EXIT_CONFIG

    engine = create_db_engine(args.database_url or settings.database_url, echo=settings.database_echo)
    try:
        manager = MigrationManager(engine, migrations)

        if args.check:
            pending = manager.status().pending_migrations
            if pending:
                logger.warning(f"⚠️ {len(pending)} pending migration(s)")
                return EXIT_FAILED
            logger.success("✅ All migrations applied")
            return EXIT_OK

        if args.status:
            manager.print_status()
            return EXIT_OK

        if args.rollback is not None:
            result = manager.rollback(args.rollback)
        elif args.to is not None:
            result = manager.migrate_to(args.to)
        else:
            result = manager.migrate()
    except ConfigurationError:
        return EXIT_CONFIG
    except MigrationFailure as e:
        logger.error(f"Migration failed: {e}")
        return EXIT_FAILED
    finally:
        engine.dispose()

    if not result.is_success:
        logger.error(f"⚠️ {result.failed} migration(s) could not be processed, check the log")
        return EXIT_FAILED

    logger.success("✅ Migration run finished")
    return EXIT_OK
