"""
Migration status report
"""
from dbmigrate.services.migration.results import MigrationStatus


def format_status(status: MigrationStatus) -> str:
    """
    Render a status snapshot as a plain-text report.

    Args:
        status: result of MigrationManager.status()

    Returns:
        Multi-line report, applied migrations marked ✓ and pending ones ○
    """
    lines = [
        "=== Migration Status ===",
        f"Current version: {status.current_version}",
        f"Applied migrations: {len(status.applied_migrations)}",
        f"Pending migrations: {len(status.pending_migrations)}",
        f"Total migrations: {status.total_migrations}",
    ]

    if status.applied_migrations:
        lines.append("")
        lines.append("--- Applied Migrations ---")
        for record in status.applied_migrations:
            lines.append(
                f"  ✓ {record.version} - {record.description} "
                f"({record.applied_at}, {record.execution_time_ms}ms)"
            )

    if status.pending_migrations:
        lines.append("")
        lines.append("--- Pending Migrations ---")
        for migration in status.pending_migrations:
            lines.append(f"  ○ {migration.version} - {migration.description}")

    lines.append("=" * 24)
    return "\n".join(lines)
