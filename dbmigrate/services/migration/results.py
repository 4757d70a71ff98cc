from dataclasses import dataclass, field
from typing import List

from dbmigrate.models import SchemaMigration
from dbmigrate.services.migration.record import Migration


@dataclass(frozen=True)
class MigrationResult:
    """Outcome of migrate / migrate_to / rollback

    applied counts migrations whose up() (or down(), when reverting)
    committed; failed counts history rows that could not be matched to a
    supplied migration.
    """
    applied: int = 0
    failed: int = 0

    @property
    def is_success(self) -> bool:
        return self.failed == 0


@dataclass
class MigrationStatus:
    current_version: int
    applied_migrations: List[SchemaMigration] = field(default_factory=list)
    pending_migrations: List[Migration] = field(default_factory=list)
    total_migrations: int = 0
