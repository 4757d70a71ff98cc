"""
Tests for MigrationManager
"""
import pytest

from dbmigrate.database.columns import integer, table
from dbmigrate.services.migration import (
    ConfigurationError,
    Migration,
    MigrationFailure,
    MigrationManager,
    MigrationResult,
    migration,
)
from dbmigrate.utils.status_report import format_status
from tests.sample_migrations import MIGRATIONS, add_x, create_t, drop_t, drop_x, explode


def noop(ddl):
    pass


def tracked(version, calls, up=noop, down=noop):
    """Migration that records the order in which its blocks run"""

    def run_up(ddl):
        calls.append(("up", version))
        up(ddl)

    def run_down(ddl):
        calls.append(("down", version))
        down(ddl)

    return migration(version, f"tracked {version}", up=run_up, down=run_down)


def applied_versions(manager):
    return [r.version for r in manager.get_applied_migrations()]


class TestConstruction:
    def test_valid_set(self, engine):
        manager = MigrationManager(engine, MIGRATIONS)
        assert manager.migrations == MIGRATIONS

    def test_empty_set(self, engine):
        manager = MigrationManager(engine, [])
        assert manager.migrate() == MigrationResult(applied=0, failed=0)

    def test_duplicate_versions(self, engine):
        migrations = [migration(1, "a", noop, noop), migration(1, "b", noop, noop)]
        with pytest.raises(ConfigurationError, match=r"Duplicate migration versions found: \[1\]"):
            MigrationManager(engine, migrations)

    def test_descending_order(self, engine):
        migrations = [migration(2, "b", noop, noop), migration(1, "a", noop, noop)]
        with pytest.raises(ConfigurationError, match="ascending version order"):
            MigrationManager(engine, migrations)

    def test_out_of_order_in_the_middle(self, engine):
        migrations = [migration(v, str(v), noop, noop) for v in (1, 5, 3, 7)]
        with pytest.raises(ConfigurationError, match="version 3 follows 5"):
            MigrationManager(engine, migrations)

    def test_subclass_without_down(self, engine):
        class OnlyUp(Migration):
            def up(self, ddl):
                pass

        with pytest.raises(ConfigurationError, match="'down' block"):
            MigrationManager(engine, [OnlyUp(1, "only up")])

    def test_subclass_without_up(self, engine):
        class OnlyDown(Migration):
            def down(self, ddl):
                pass

        with pytest.raises(ConfigurationError, match="'up' block"):
            MigrationManager(engine, [OnlyDown(1, "only down")])

    def test_not_a_migration(self, engine):
        with pytest.raises(ConfigurationError, match="Expected a Migration"):
            MigrationManager(engine, [("1", "tuple")])

    @pytest.mark.parametrize("version", ["1", 1.0, True, 2 ** 63])
    def test_invalid_version(self, engine, version):
        with pytest.raises(ConfigurationError):
            MigrationManager(engine, [migration(version, "bad", noop, noop)])

    def test_construction_does_not_touch_database(self, engine, history):
        MigrationManager(engine, MIGRATIONS)
        assert history.has_table() is False


class TestMigrate:
    def test_applies_all_pending(self, engine, schema):
        manager = MigrationManager(engine, MIGRATIONS)

        result = manager.migrate()

        assert result == MigrationResult(applied=2, failed=0)
        assert result.is_success
        assert manager.status().current_version == 2
        assert applied_versions(manager) == [1, 2]
        assert "x" in schema.columns("t")

    def test_history_rows(self, engine):
        manager = MigrationManager(engine, MIGRATIONS)
        manager.migrate()

        rows = manager.get_applied_migrations()
        assert [r.description for r in rows] == ["Create table t", "Add column t.x"]
        assert all(r.execution_time_ms >= 0 for r in rows)
        assert all(len(r.applied_at) == len("2024-01-01 00:00:00") for r in rows)

    def test_second_run_applies_nothing(self, engine):
        manager = MigrationManager(engine, MIGRATIONS)
        manager.migrate()

        assert manager.migrate() == MigrationResult(applied=0, failed=0)

    def test_new_migration_applied_on_next_run(self, engine, schema):
        MigrationManager(engine, MIGRATIONS[:1]).migrate()
        assert "x" not in schema.columns("t")

        result = MigrationManager(engine, MIGRATIONS).migrate()

        assert result.applied == 1
        assert "x" in schema.columns("t")

    def test_stops_at_first_failure(self, engine):
        calls = []
        migrations = [
            tracked(1, calls),
            tracked(2, calls, up=explode),
            tracked(3, calls),
        ]
        manager = MigrationManager(engine, migrations)

        with pytest.raises(MigrationFailure) as exc_info:
            manager.migrate()

        failure = exc_info.value
        assert failure.version == 2
        assert failure.direction == "up"
        assert isinstance(failure.cause, RuntimeError)
        assert failure.__cause__ is failure.cause
        assert failure.result == MigrationResult(applied=1, failed=0)
        assert failure.completed == 1
        assert "Migration 2 failed: boom" in str(failure)

        assert manager.status().current_version == 1
        assert ("up", 3) not in calls

    def test_failed_migration_leaves_no_trace(self, engine, schema):
        def create_then_fail(ddl):
            ddl.create_table(table("half_done", integer("id", primary_key=True)))
            ddl.add_column("t", integer("y"))
            raise RuntimeError("second statement failed")

        migrations = [
            MIGRATIONS[0],
            migration(2, "Half done", up=create_then_fail, down=noop),
        ]
        manager = MigrationManager(engine, migrations)

        with pytest.raises(MigrationFailure):
            manager.migrate()

        assert applied_versions(manager) == [1]
        assert "half_done" not in schema.tables()
        assert "y" not in schema.columns("t")

    def test_failure_can_be_retried_after_fix(self, engine, schema):
        broken = [MIGRATIONS[0], migration(2, "Add column t.x", up=explode, down=drop_x)]
        with pytest.raises(MigrationFailure):
            MigrationManager(engine, broken).migrate()

        result = MigrationManager(engine, MIGRATIONS).migrate()

        assert result.applied == 1
        assert "x" in schema.columns("t")


class TestRollback:
    def test_rollback_last(self, engine, schema):
        manager = MigrationManager(engine, MIGRATIONS)
        manager.migrate()

        result = manager.rollback(1)

        assert result == MigrationResult(applied=1, failed=0)
        assert "x" not in schema.columns("t")
        assert manager.status().current_version == 1
        assert applied_versions(manager) == [1]

    def test_round_trip_restores_schema(self, engine, schema):
        manager = MigrationManager(engine, MIGRATIONS[:1])
        manager.migrate()
        assert "t" in schema.tables()

        manager.rollback()

        assert "t" not in schema.tables()
        assert manager.get_applied_migrations() == []

    def test_reverts_newest_first(self, engine):
        calls = []
        manager = MigrationManager(engine, [tracked(v, calls) for v in (1, 2, 3)])
        manager.migrate()
        calls.clear()

        result = manager.rollback(2)

        assert result.applied == 2
        assert calls == [("down", 3), ("down", 2)]
        assert applied_versions(manager) == [1]

    def test_more_steps_than_applied(self, engine):
        manager = MigrationManager(engine, MIGRATIONS)
        manager.migrate()

        result = manager.rollback(10)

        assert result.applied == 2
        assert manager.status().current_version == 0

    def test_nothing_to_rollback(self, engine):
        manager = MigrationManager(engine, MIGRATIONS)
        assert manager.rollback() == MigrationResult(applied=0, failed=0)

    def test_zero_steps(self, engine):
        manager = MigrationManager(engine, MIGRATIONS)
        manager.migrate()

        assert manager.rollback(0) == MigrationResult(applied=0, failed=0)
        assert manager.status().current_version == 2

    def test_negative_steps(self, engine):
        with pytest.raises(ValueError):
            MigrationManager(engine, MIGRATIONS).rollback(-1)

    def test_unknown_version_is_counted_and_skipped(self, engine):
        calls = []
        MigrationManager(engine, [tracked(1, calls), tracked(2, calls)]).migrate()
        calls.clear()

        # version 2 no longer shipped with the application
        manager = MigrationManager(engine, [tracked(1, calls)])
        result = manager.rollback(2)

        assert result == MigrationResult(applied=1, failed=1)
        assert not result.is_success
        assert calls == [("down", 1)]
        assert applied_versions(manager) == [2]

    def test_down_failure_stops_rollback(self, engine):
        calls = []
        manager = MigrationManager(
            engine,
            [tracked(1, calls), tracked(2, calls, down=explode), tracked(3, calls)],
        )
        manager.migrate()
        calls.clear()

        with pytest.raises(MigrationFailure) as exc_info:
            manager.rollback(3)

        assert exc_info.value.version == 2
        assert exc_info.value.direction == "down"
        assert exc_info.value.result == MigrationResult(applied=1, failed=0)
        assert "Rollback of migration 2 failed" in str(exc_info.value)
        assert calls == [("down", 3), ("down", 2)]
        assert applied_versions(manager) == [1, 2]


class TestMigrateTo:
    def test_up_to_target(self, engine):
        calls = []
        manager = MigrationManager(engine, [tracked(v, calls) for v in (1, 2, 3)])

        result = manager.migrate_to(2)

        assert result == MigrationResult(applied=2, failed=0)
        assert calls == [("up", 1), ("up", 2)]
        assert manager.status().current_version == 2

    def test_down_to_zero(self, engine, schema):
        calls = []
        migrations = [
            tracked(1, calls, up=create_t, down=drop_t),
            tracked(2, calls, up=add_x, down=drop_x),
        ]
        manager = MigrationManager(engine, migrations)
        manager.migrate()
        calls.clear()

        result = manager.migrate_to(0)

        assert result == MigrationResult(applied=2, failed=0)
        assert calls == [("down", 2), ("down", 1)]
        assert manager.status().current_version == 0
        assert "t" not in schema.tables()

    def test_same_version_is_noop(self, engine):
        manager = MigrationManager(engine, MIGRATIONS)
        manager.migrate()

        assert manager.migrate_to(2) == MigrationResult(applied=0, failed=0)

    @pytest.mark.parametrize("target", [0, 1, 2, 3, 5])
    def test_fixed_point(self, engine, target):
        manager = MigrationManager(engine, [migration(v, str(v), noop, noop) for v in (1, 2, 3)])
        manager.migrate_to(2)

        manager.migrate_to(target)
        versions = applied_versions(manager)

        assert manager.migrate_to(target) == MigrationResult(applied=0, failed=0)
        assert applied_versions(manager) == versions

    def test_applies_late_merged_migrations_below_current(self, engine):
        calls = []
        MigrationManager(engine, [tracked(3, calls)]).migrate()
        calls.clear()

        # 1 and 2 arrive after 3 was already applied
        manager = MigrationManager(engine, [tracked(v, calls) for v in (1, 2, 3)])
        result = manager.migrate_to(2)

        assert result == MigrationResult(applied=3, failed=0)
        assert calls == [("down", 3), ("up", 1), ("up", 2)]
        assert applied_versions(manager) == [1, 2]

        assert manager.migrate_to(2) == MigrationResult(applied=0, failed=0)
        assert applied_versions(manager) == [1, 2]

    def test_same_version_applies_gaps_below(self, engine):
        calls = []
        MigrationManager(engine, [tracked(2, calls)]).migrate()

        manager = MigrationManager(engine, [tracked(1, calls), tracked(2, calls)])

        assert manager.migrate_to(2) == MigrationResult(applied=1, failed=0)
        assert applied_versions(manager) == [1, 2]

    def test_version_zero(self, engine):
        manager = MigrationManager(engine, [migration(v, str(v), noop, noop) for v in (0, 1)])

        assert manager.migrate_to(0) == MigrationResult(applied=1, failed=0)
        assert applied_versions(manager) == [0]

        assert manager.migrate_to(-1) == MigrationResult(applied=1, failed=0)
        assert applied_versions(manager) == []

    def test_failure_after_revert_reports_reverted_work(self, engine):
        calls = []
        MigrationManager(engine, [tracked(3, calls)]).migrate()

        manager = MigrationManager(
            engine, [tracked(1, calls, up=explode), tracked(3, calls)]
        )
        with pytest.raises(MigrationFailure) as exc_info:
            manager.migrate_to(2)

        assert exc_info.value.version == 1
        assert exc_info.value.result == MigrationResult(applied=1, failed=0)
        assert applied_versions(manager) == []

    def test_up_failure(self, engine):
        calls = []
        manager = MigrationManager(engine, [tracked(1, calls), tracked(2, calls, up=explode), tracked(3, calls)])

        with pytest.raises(MigrationFailure) as exc_info:
            manager.migrate_to(3)

        assert exc_info.value.version == 2
        assert manager.status().current_version == 1
        assert ("up", 3) not in calls


class TestStatus:
    def test_status_before_initialization(self, engine, history):
        manager = MigrationManager(engine, MIGRATIONS)

        status = manager.status()

        assert status.current_version == 0
        assert status.applied_migrations == []
        assert status.pending_migrations == MIGRATIONS
        assert status.total_migrations == 2
        assert history.has_table() is False

    def test_status_after_partial_migration(self, engine):
        manager = MigrationManager(engine, MIGRATIONS)
        manager.migrate_to(1)

        status = manager.status()

        assert status.current_version == 1
        assert [r.version for r in status.applied_migrations] == [1]
        assert status.pending_migrations == MIGRATIONS[1:]

    def test_report(self, engine):
        manager = MigrationManager(engine, MIGRATIONS)
        manager.migrate_to(1)

        report = format_status(manager.status())

        assert "Current version: 1" in report
        assert "Applied migrations: 1" in report
        assert "Pending migrations: 1" in report
        assert "✓ 1 - Create table t" in report
        assert "○ 2 - Add column t.x" in report

        manager.print_status()
