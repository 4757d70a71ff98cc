"""
DDL operations available to migrations.

A DDLBuilder wraps the connection of the transaction a migration runs in,
so everything it executes commits or rolls back together with the
migration's history row.
"""
from typing import Any, Dict, Optional, Sequence, Union

from loguru import logger
from sqlalchemy import Column, MetaData, Table, text
from sqlalchemy.engine import Connection
from sqlalchemy.schema import CreateColumn

# Dialects that accept ALTER TABLE ... RENAME COLUMN ... TO ...
RENAME_COLUMN_DIALECTS = {"postgresql", "sqlite", "mysql", "mariadb", "oracle"}

# Dialects whose DROP INDEX needs the owning table
DROP_INDEX_NEEDS_TABLE = {"mysql", "mariadb", "mssql"}


class DDLBuilder:
    """Schema-altering operations executed on one connection"""

    def __init__(self, connection: Connection):
        self.connection = connection

    @property
    def dialect(self):
        return self.connection.dialect

    @property
    def dialect_name(self) -> str:
        return self.connection.dialect.name

    def _quote(self, identifier: str) -> str:
        return self.dialect.identifier_preparer.quote(identifier)

    def _execute(self, sql: str, params: Optional[Dict[str, Any]] = None):
        logger.debug(f"DDL: {sql}")
        if params:
            return self.connection.execute(text(sql), params)
        return self.connection.execute(text(sql))

    def create_table(self, table, if_not_exists: bool = True):
        """
        Create a table.

        Args:
            table: SQLAlchemy Table, or a SQLModel class declared with table=True
            if_not_exists: skip silently when the table is already there
        """
        sa_table: Table = getattr(table, "__table__", table)
        sa_table.create(self.connection, checkfirst=if_not_exists)
        logger.info(f"  + table {sa_table.name}")

    def drop_table(self, table_name: str, if_exists: bool = True):
        if if_exists:
            self._execute(f"DROP TABLE IF EXISTS {self._quote(table_name)}")
        else:
            self._execute(f"DROP TABLE {self._quote(table_name)}")
        logger.info(f"  - table {table_name}")

    def add_column(self, table_name: str, column: Column):
        # The dialect compiler needs the column bound to a table
        if getattr(column, "table", None) is None:
            Table(table_name, MetaData(), column)

        column_spec = CreateColumn(column).compile(dialect=self.dialect)
        self._execute(f"ALTER TABLE {self._quote(table_name)} ADD COLUMN {column_spec}")
        logger.info(f"  + column {table_name}.{column.name}")

    def drop_column(self, table_name: str, column_name: str):
        self._execute(
            f"ALTER TABLE {self._quote(table_name)} DROP COLUMN {self._quote(column_name)}"
        )
        logger.info(f"  - column {table_name}.{column_name}")

    def rename_column(self, table_name: str, old_name: str, new_name: str):
        if self.dialect_name in RENAME_COLUMN_DIALECTS:
            sql = (
                f"ALTER TABLE {self._quote(table_name)} "
                f"RENAME COLUMN {self._quote(old_name)} TO {self._quote(new_name)}"
            )
        elif self.dialect_name == "mssql":
            sql = f"EXEC sp_rename '{table_name}.{old_name}', '{new_name}', 'COLUMN'"
        else:
            raise NotImplementedError(
                f"Rename column not supported for dialect '{self.dialect_name}'"
            )

        self._execute(sql)
        logger.info(f"  ~ column {table_name}.{old_name} -> {new_name}")

    def create_index(
        self,
        table_name: str,
        columns: Union[str, Sequence[str]],
        index_name: Optional[str] = None,
        unique: bool = False,
    ) -> str:
        """
        Create an index and return its name.

        The default name is idx_<table>_<column>[_<column>...].
        """
        column_names = [columns] if isinstance(columns, str) else list(columns)
        if not column_names:
            raise ValueError("create_index needs at least one column")

        name = index_name or f"idx_{table_name}_{'_'.join(column_names)}"
        unique_clause = "UNIQUE " if unique else ""
        column_list = ", ".join(self._quote(c) for c in column_names)

        self._execute(
            f"CREATE {unique_clause}INDEX {self._quote(name)} "
            f"ON {self._quote(table_name)} ({column_list})"
        )
        logger.info(f"  + index {name} on {table_name}({', '.join(column_names)})")
        return name

    def drop_index(self, index_name: str, table_name: Optional[str] = None):
        if self.dialect_name in DROP_INDEX_NEEDS_TABLE:
            if table_name is None:
                raise ValueError(f"Table name required for {self.dialect_name} DROP INDEX")
            sql = f"DROP INDEX {self._quote(index_name)} ON {self._quote(table_name)}"
        else:
            sql = f"DROP INDEX {self._quote(index_name)}"

        self._execute(sql)
        logger.info(f"  - index {index_name}")

    def execute_sql(self, sql: str, params: Optional[Dict[str, Any]] = None):
        """Execute one raw statement, with optional :name bound parameters"""
        return self._execute(sql, params)

    def execute_sql_batch(self, *statements: str):
        """Execute statements one after another on the same connection"""
        for sql in statements:
            self._execute(sql)

    def modify_table(self, table_name: str) -> "TableModifier":
        return TableModifier(table_name, self)


class TableModifier:
    """
    Groups changes to one table.

        with ddl.modify_table("users") as users:
            users.add_column(varchar("bio", 500))
            users.add_index("email", unique=True)
    """

    def __init__(self, table_name: str, ddl: DDLBuilder):
        self.table_name = table_name
        self.ddl = ddl

    def __enter__(self) -> "TableModifier":
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def add_column(self, column: Column):
        self.ddl.add_column(self.table_name, column)

    def drop_column(self, column_name: str):
        self.ddl.drop_column(self.table_name, column_name)

    def rename_column(self, old_name: str, new_name: str):
        self.ddl.rename_column(self.table_name, old_name, new_name)

    def add_index(
        self,
        columns: Union[str, Sequence[str]],
        index_name: Optional[str] = None,
        unique: bool = False,
    ) -> str:
        return self.ddl.create_index(self.table_name, columns, index_name, unique)

    def drop_index(self, index_name: str):
        self.ddl.drop_index(index_name, self.table_name)
