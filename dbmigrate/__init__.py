"""
Versioned, reversible schema migrations on SQLAlchemy / SQLModel.
"""
from dbmigrate.database.ddl import DDLBuilder, TableModifier
from dbmigrate.services.migration import (
    ConfigurationError,
    Migration,
    MigrationBuilder,
    MigrationError,
    MigrationFailure,
    MigrationHistoryStore,
    MigrationManager,
    MigrationResult,
    MigrationStatus,
    migration,
)

__version__ = "0.1.0"

__all__ = [
    "DDLBuilder",
    "TableModifier",
    "ConfigurationError",
    "Migration",
    "MigrationBuilder",
    "MigrationError",
    "MigrationFailure",
    "MigrationHistoryStore",
    "MigrationManager",
    "MigrationResult",
    "MigrationStatus",
    "migration",
]
