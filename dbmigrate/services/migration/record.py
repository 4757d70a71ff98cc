from dbmigrate.database.ddl import DDLBuilder


class Migration:
    """
    One reversible schema change.

    Subclass and override up() and down(), or build one with
    MigrationBuilder / migration(). version and description are read-only;
    nothing touches the database until the manager calls up() or down().
    """

    def __init__(self, version: int, description: str):
        self._version = version
        self._description = description

    @property
    def version(self) -> int:
        return self._version

    @property
    def description(self) -> str:
        return self._description

    def up(self, ddl: DDLBuilder):
        """Apply the change"""
        raise NotImplementedError

    def down(self, ddl: DDLBuilder):
        """Revert the change"""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"Migration(version={self.version}, description='{self.description}')"
