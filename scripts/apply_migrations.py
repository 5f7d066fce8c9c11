#!/usr/bin/env python
"""Upgrade the messages database: ``python scripts/apply_migrations.py [revision]``."""
import logging
import os
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger("apply_migrations")


def main():
    repo_root = Path(__file__).resolve().parents[1]
    env_path = repo_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    # Host-run migrations may target a different URL than the service
    migrations_url = os.getenv("MIGRATIONS_DATABASE_URL")
    if migrations_url:
        os.environ["DATABASE_URL"] = migrations_url

    revision = sys.argv[1] if len(sys.argv) > 1 else "head"
    cmd = ["alembic", "upgrade", revision]
    logger.info("Upgrading messages schema to %s", revision)
    result = subprocess.run(cmd, cwd=repo_root)
    sys.exit(result.returncode)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
