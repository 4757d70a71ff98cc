from dbmigrate.services.migration.errors import MigrationError, ConfigurationError, MigrationFailure
from dbmigrate.services.migration.record import Migration
from dbmigrate.services.migration.dsl import MigrationBuilder, FunctionMigration, migration
from dbmigrate.services.migration.history import MigrationHistoryStore, format_applied_at
from dbmigrate.services.migration.results import MigrationResult, MigrationStatus
from dbmigrate.services.migration.manager import MigrationManager

__all__ = [
    "MigrationError",
    "ConfigurationError",
    "MigrationFailure",
    "Migration",
    "MigrationBuilder",
    "FunctionMigration",
    "migration",
    "MigrationHistoryStore",
    "format_applied_at",
    "MigrationResult",
    "MigrationStatus",
    "MigrationManager",
]
