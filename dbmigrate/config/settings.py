from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Connection parts, used when database_dsn is empty
    database_driver: str = "postgresql"
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "dbmigrate"
    database_user: str = "postgres"
    database_password: str = ""

    # Full SQLAlchemy URL (e.g. sqlite:///./app.db), overrides the parts above
    database_dsn: str = ""
    database_echo: bool = False

    # Migration list loaded by the command line runner, "module:attribute"
    migrations_module: str = "migrations:MIGRATIONS"

    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        if self.database_dsn:
            return self.database_dsn
        return f"{self.database_driver}://{self.database_user}:{self.database_password}@{self.database_host}:{self.database_port}/{self.database_name}"

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured database is SQLite"""
        return self.database_url.startswith("sqlite")


settings = Settings()
