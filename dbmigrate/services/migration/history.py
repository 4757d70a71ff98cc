from datetime import datetime
from typing import List, Optional

from loguru import logger
from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlmodel import Session, SQLModel, select

from dbmigrate.models import SchemaMigration

APPLIED_AT_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_applied_at(moment: Optional[datetime] = None) -> str:
    """Local-time timestamp stored in schema_migrations.applied_at"""
    return (moment or datetime.now()).strftime(APPLIED_AT_FORMAT)


def _is_already_exists(error: DBAPIError) -> bool:
    return "already exists" in str(error.orig).lower()


class MigrationHistoryStore:
    """
    Reads and writes the schema_migrations table.

    Writes go through the caller's session so they share the transaction of
    the migration being applied or reverted.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @property
    def table_name(self) -> str:
        return SchemaMigration.__tablename__

    def has_table(self) -> bool:
        return inspect(self.engine).has_table(self.table_name)

    def ensure_exists(self):
        """Create the history table if it is missing"""
        try:
            SQLModel.metadata.create_all(self.engine, tables=[SchemaMigration.__table__])
        except DBAPIError as e:
            # Another runner may have created it between the check and the CREATE
            if not _is_already_exists(e):
                raise
            logger.debug(f"History table {self.table_name} already exists: {e.orig}")

    def list_applied(self) -> List[SchemaMigration]:
        """Applied migrations ordered by version; empty before the table exists"""
        if not self.has_table():
            return []

        with Session(self.engine) as session:
            statement = select(SchemaMigration).order_by(SchemaMigration.version)
            return list(session.exec(statement).all())

    def record_applied(
        self,
        session: Session,
        version: int,
        description: str,
        applied_at: str,
        execution_time_ms: int,
    ) -> SchemaMigration:
        entry = SchemaMigration(
            version=version,
            description=description,
            applied_at=applied_at,
            execution_time_ms=execution_time_ms,
        )
        session.add(entry)
        # Surface a conflicting row inside the migration's transaction
        session.flush()
        return entry

    def record_reverted(self, session: Session, version: int) -> bool:
        entry = session.get(SchemaMigration, version)
        if entry is None:
            logger.warning(f"No history row for migration {version}, nothing to delete")
            return False

        session.delete(entry)
        session.flush()
        return True
