from typing import Optional


class MigrationError(Exception):
    """Base class for everything the migration engine raises"""
    pass


class ConfigurationError(MigrationError):
    """The supplied migration set is invalid (duplicate or unordered versions, missing up/down)"""
    pass


class MigrationFailure(MigrationError):
    """
    A migration's up() or down() raised.

    The failing migration's transaction has already been rolled back when
    this is raised. Migrations completed earlier in the same operation stay
    committed and are counted in `result`.

    Attributes:
        version: version of the migration that failed
        direction: "up" or "down"
        cause: the original exception (also chained as __cause__)
        result: MigrationResult for the work committed before the failure
    """

    def __init__(self, version: int, direction: str, cause: BaseException, result=None):
        self.version = version
        self.direction = direction
        self.cause = cause
        self.result = result
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        action = "Migration" if self.direction == "up" else "Rollback of migration"
        return f"{action} {self.version} failed: {self.cause}"

    @property
    def completed(self) -> Optional[int]:
        """Number of migrations committed before the failure"""
        return self.result.applied if self.result is not None else None
