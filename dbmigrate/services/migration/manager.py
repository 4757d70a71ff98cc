"""
Migration manager

Applies and reverts migrations in version order. Each migration runs in its
own transaction together with its schema_migrations row, so a migration is
either fully applied (schema + history) or not applied at all. A batch can
stop part way: migrations before the failing one stay committed, the rest
are never attempted.

The manager takes no lock. Two processes running it against the same
database at the same time can double-apply migrations or corrupt history;
deployments must make sure only one runner is active.
"""
import time
from collections import Counter
from typing import Iterable, List, Optional, Sequence

from loguru import logger
from sqlalchemy.engine import Engine
from sqlmodel import Session

from dbmigrate.database.connection import run_in_transaction
from dbmigrate.database.ddl import DDLBuilder
from dbmigrate.models import SchemaMigration
from dbmigrate.services.migration.errors import ConfigurationError, MigrationFailure
from dbmigrate.services.migration.history import MigrationHistoryStore, format_applied_at
from dbmigrate.services.migration.record import Migration
from dbmigrate.services.migration.results import MigrationResult, MigrationStatus
from dbmigrate.utils.status_report import format_status

# Versions are stored as BIGINT
MIN_VERSION = -(2 ** 63)
MAX_VERSION = 2 ** 63 - 1


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class MigrationManager:
    """
    Runs a fixed, ordered list of migrations against one database.

    The list is validated on construction: versions must be unique and
    already in ascending order (it is never re-sorted, an unordered list is
    treated as a configuration mistake).
    """

    def __init__(
        self,
        engine: Engine,
        migrations: Sequence[Migration],
        history: Optional[MigrationHistoryStore] = None,
    ):
        self.engine = engine
        self.migrations: List[Migration] = list(migrations)
        self.history = history or MigrationHistoryStore(engine)

        self._validate()
        self._by_version = {m.version: m for m in self.migrations}

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self):
        for item in self.migrations:
            self._validate_migration(item)

        versions = [m.version for m in self.migrations]

        duplicates = sorted(v for v, count in Counter(versions).items() if count > 1)
        if duplicates:
            raise self._configuration_error(f"Duplicate migration versions found: {duplicates}")

        for previous, current in zip(versions, versions[1:]):
            if current < previous:
                raise self._configuration_error(
                    f"Migrations must be provided in ascending version order "
                    f"(version {current} follows {previous})"
                )

    def _validate_migration(self, item):
        if not isinstance(item, Migration):
            raise self._configuration_error(
                f"Expected a Migration, got {type(item).__name__}: {item!r}"
            )

        version = item.version
        if isinstance(version, bool) or not isinstance(version, int):
            raise self._configuration_error(
                f"Migration version must be an integer, got {version!r} ({item.description})"
            )
        if not MIN_VERSION <= version <= MAX_VERSION:
            raise self._configuration_error(f"Migration version {version} is out of the 64-bit range")

        if type(item).up is Migration.up:
            raise self._configuration_error(f"Migration {version} must define an 'up' block")
        if type(item).down is Migration.down:
            raise self._configuration_error(f"Migration {version} must define a 'down' block")

    @staticmethod
    def _configuration_error(message: str) -> ConfigurationError:
        logger.error(f"❌ {message}")
        return ConfigurationError(message)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def initialize(self):
        """Create the history table if it does not exist yet"""
        self.history.ensure_exists()

    def get_applied_migrations(self) -> List[SchemaMigration]:
        return self.history.list_applied()

    def get_pending_migrations(
        self, applied: Optional[Iterable[SchemaMigration]] = None
    ) -> List[Migration]:
        if applied is None:
            applied = self.get_applied_migrations()
        applied_versions = {record.version for record in applied}
        return [m for m in self.migrations if m.version not in applied_versions]

    def current_version(self, applied: Optional[Iterable[SchemaMigration]] = None) -> int:
        """Highest applied version, 0 when nothing is applied"""
        if applied is None:
            applied = self.get_applied_migrations()
        return max((record.version for record in applied), default=0)

    def status(self) -> MigrationStatus:
        """Snapshot of applied and pending migrations; never writes"""
        applied = self.get_applied_migrations()
        return MigrationStatus(
            current_version=self.current_version(applied),
            applied_migrations=applied,
            pending_migrations=self.get_pending_migrations(applied),
            total_migrations=len(self.migrations),
        )

    def print_status(self):
        for line in format_status(self.status()).splitlines():
            logger.info(line)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def migrate(self) -> MigrationResult:
        """Apply every pending migration, stopping at the first failure"""
        self.initialize()

        pending = self.get_pending_migrations()
        if not pending:
            logger.info("✅ Database is up to date")
            return MigrationResult(applied=0, failed=0)

        logger.info(f"🔍 Found {len(pending)} pending migration(s)")

        applied = self._apply_all(pending)

        logger.success(f"🎉 Applied {applied} migration(s)")
        return MigrationResult(applied=applied, failed=0)

    def migrate_to(self, target_version: int) -> MigrationResult:
        """
        Move the schema to target_version.

        The target state is "every supplied migration with version <=
        target_version applied, nothing above it". Applied migrations above
        the target are reverted newest first, then pending migrations at or
        below it (including ones merged in below the current version) are
        applied in ascending order. Running it again with the same target
        changes nothing.

        The returned `applied` counts the migrations applied or reverted. A
        version-0 migration is applied by migrate_to(0); reverting it needs a
        negative target.
        """
        self.initialize()

        applied = self.get_applied_migrations()
        current = self.current_version(applied)

        to_revert = [r for r in reversed(applied) if r.version > target_version]
        to_apply = [
            m for m in self.get_pending_migrations(applied)
            if m.version <= target_version
        ]

        if not to_revert and not to_apply:
            logger.info(f"✅ Already at version {target_version}")
            return MigrationResult(applied=0, failed=0)

        if to_revert:
            logger.info(f"⬇️  Migrating from version {current} down to {target_version} ({len(to_revert)} migration(s))")
        reverted = self._revert_all(to_revert)

        if to_apply:
            logger.info(f"⬆️  Migrating up to version {target_version} ({len(to_apply)} migration(s))")
        applied_count = self._apply_all(to_apply, done=reverted)

        logger.success(f"🎉 Now at version {self.current_version()}")
        return MigrationResult(applied=reverted.applied + applied_count, failed=reverted.failed)

    def rollback(self, steps: int = 1) -> MigrationResult:
        """
        Revert the last `steps` applied migrations, newest first.

        A history row whose version is not in the supplied list is counted
        as failed and skipped; a down() that raises stops the rollback.
        """
        if steps < 0:
            raise ValueError(f"steps must be >= 0, got {steps}")

        self.initialize()

        applied = self.get_applied_migrations()
        if not applied or steps == 0:
            logger.info("✅ No migrations to rollback")
            return MigrationResult(applied=0, failed=0)

        to_rollback = applied[-steps:]
        logger.info(f"↩️  Rolling back {len(to_rollback)} migration(s)")

        result = self._revert_all(list(reversed(to_rollback)))

        logger.success(f"🎉 Rolled back {result.applied} migration(s)")
        return result

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _apply_all(
        self, migrations: List[Migration], done: MigrationResult = MigrationResult()
    ) -> int:
        """Apply in order; `done` is work already committed by the same operation"""
        applied = 0
        for migration in migrations:
            try:
                self._apply_one(migration)
            except Exception as e:
                partial = MigrationResult(applied=done.applied + applied, failed=done.failed)
                raise self._failure(migration, "up", e, partial) from e
            applied += 1
        return applied

    def _revert_all(self, records: List[SchemaMigration]) -> MigrationResult:
        reverted = 0
        failed = 0

        for record in records:
            migration = self._by_version.get(record.version)
            if migration is None:
                logger.warning(f"⚠️ Migration {record.version} not found in migration list, skipping")
                failed += 1
                continue

            try:
                self._revert_one(migration)
            except Exception as e:
                raise self._failure(
                    migration, "down", e, MigrationResult(applied=reverted, failed=failed)
                ) from e
            reverted += 1

        return MigrationResult(applied=reverted, failed=failed)

    def _apply_one(self, migration: Migration):
        logger.info(f"→ Applying migration {migration.version}: {migration.description}")
        start = time.perf_counter()

        def apply(session: Session):
            migration.up(DDLBuilder(session.connection()))
            self.history.record_applied(
                session,
                version=migration.version,
                description=migration.description,
                applied_at=format_applied_at(),
                execution_time_ms=_elapsed_ms(start),
            )

        run_in_transaction(self.engine, apply)
        logger.info(f"  ✅ Completed in {_elapsed_ms(start)}ms")

    def _revert_one(self, migration: Migration):
        logger.info(f"← Rolling back migration {migration.version}: {migration.description}")
        start = time.perf_counter()

        def revert(session: Session):
            migration.down(DDLBuilder(session.connection()))
            self.history.record_reverted(session, migration.version)

        run_in_transaction(self.engine, revert)
        logger.info(f"  ✅ Rolled back in {_elapsed_ms(start)}ms")

    @staticmethod
    def _failure(
        migration: Migration, direction: str, cause: Exception, result: MigrationResult
    ) -> MigrationFailure:
        failure = MigrationFailure(migration.version, direction, cause, result)
        logger.error(f"❌ {failure}")
        logger.error("⚠️ Transaction rolled back")
        return failure
