#!/usr/bin/env python
"""
Run database migrations by hand

Usage:
    python run_migration.py                  # apply all pending migrations
    python run_migration.py --check          # only check for pending migrations
    python run_migration.py --status         # show applied / pending migrations
    python run_migration.py --rollback 1     # revert the last migration
    python run_migration.py --to 3           # move to version 3
"""
import sys

from dbmigrate.cli import main


if __name__ == "__main__":
    sys.exit(main())
