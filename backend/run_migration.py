#!/usr/bin/env python3
"""Bring the database schema up to date: ``python run_migration.py [revision]``."""
import os
import sys

from alembic import command
from alembic.config import Config
from alembic.util import CommandError


def main(revision: str = "head") -> int:
    script_dir = os.path.dirname(os.path.abspath(__file__))
    config = Config(os.path.join(script_dir, "alembic.ini"))
    config.set_main_option("script_location", os.path.join(script_dir, "alembic"))

    try:
        command.upgrade(config, revision)
    except CommandError as e:
        print(f"Migration to {revision} failed: {e}")
        return 1
    print(f"Database is at revision {revision}.")
    return 0


if __name__ == "__main__":
    sys.exit(main(*sys.argv[1:2]))
