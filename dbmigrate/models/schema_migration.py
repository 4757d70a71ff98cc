from sqlmodel import BigInteger, Column, Field, SQLModel, String


class SchemaMigration(SQLModel, table=True):
    """Migration history table

    One row per applied migration. The row is inserted in the same
    transaction as the migration's up() and deleted in the same transaction
    as its down(); it is never updated in place.
    """
    __tablename__ = "schema_migrations"

    # Migration version (caller assigned, unique)
    version: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False)
    )

    description: str = Field(sa_column=Column(String(500), nullable=False))

    # Local time, formatted "%Y-%m-%d %H:%M:%S"
    applied_at: str = Field(sa_column=Column(String(50), nullable=False))

    execution_time_ms: int = Field(sa_column=Column(BigInteger, nullable=False))

    def __str__(self) -> str:
        return (
            f"SchemaMigration(version={self.version}, description='{self.description}', "
            f"applied_at='{self.applied_at}', execution_time={self.execution_time_ms}ms)"
        )
