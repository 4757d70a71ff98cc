"""
Builder for migrations defined by two functions.

    users = MigrationBuilder(1, "Create users table")

    @users.up
    def _(ddl):
        ddl.create_table(table("users", integer("id", primary_key=True)))

    @users.down
    def _(ddl):
        ddl.drop_table("users")

    MIGRATIONS = [users.build()]

or in one call:

    migration(2, "Add bio", up=add_bio, down=drop_bio)
"""
from typing import Callable, Optional

from dbmigrate.database.ddl import DDLBuilder
from dbmigrate.services.migration.errors import ConfigurationError
from dbmigrate.services.migration.record import Migration

DDLBlock = Callable[[DDLBuilder], None]


class FunctionMigration(Migration):
    """Migration whose up/down are plain functions"""

    def __init__(self, version: int, description: str, up: DDLBlock, down: DDLBlock):
        super().__init__(version, description)
        self._up = up
        self._down = down

    def up(self, ddl: DDLBuilder):
        self._up(ddl)

    def down(self, ddl: DDLBuilder):
        self._down(ddl)


class MigrationBuilder:
    def __init__(self, version: int, description: str):
        self.version = version
        self.description = description
        self._up: Optional[DDLBlock] = None
        self._down: Optional[DDLBlock] = None

    def up(self, block: DDLBlock) -> DDLBlock:
        """Set the apply block; usable as a decorator"""
        self._up = block
        return block

    def down(self, block: DDLBlock) -> DDLBlock:
        """Set the revert block; usable as a decorator"""
        self._down = block
        return block

    def build(self) -> Migration:
        if self._up is None:
            raise ConfigurationError("Migration must define an 'up' block")
        if self._down is None:
            raise ConfigurationError("Migration must define a 'down' block")

        return FunctionMigration(self.version, self.description, self._up, self._down)


def migration(
    version: int,
    description: str,
    up: Optional[DDLBlock] = None,
    down: Optional[DDLBlock] = None,
) -> Migration:
    """Build a migration from its up and down functions"""
    builder = MigrationBuilder(version, description)
    if up is not None:
        builder.up(up)
    if down is not None:
        builder.down(down)
    return builder.build()
