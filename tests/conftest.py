import pytest
from sqlalchemy import inspect

from dbmigrate.database.connection import create_db_engine
from dbmigrate.services.migration import MigrationHistoryStore


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'migrations.db'}"


@pytest.fixture
def engine(database_url):
    engine = create_db_engine(database_url)
    yield engine
    engine.dispose()


@pytest.fixture
def history(engine):
    return MigrationHistoryStore(engine)


@pytest.fixture
def schema(engine):
    """Inspect the live schema without caching between calls"""

    class Schema:
        def tables(self):
            return set(inspect(engine).get_table_names())

        def columns(self, table_name):
            return [c["name"] for c in inspect(engine).get_columns(table_name)]

        def indexes(self, table_name):
            return {i["name"] for i in inspect(engine).get_indexes(table_name)}

    return Schema()
