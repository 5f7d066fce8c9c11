#!/usr/bin/env python
import logging
import os
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger("make_migration")


def main():
    if len(sys.argv) < 2:
        logger.error('Usage: python scripts/make_migration.py "add media index"')
        sys.exit(1)

    repo_root = Path(__file__).resolve().parents[1]
    env_path = repo_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    migrations_url = os.getenv("MIGRATIONS_DATABASE_URL")
    if migrations_url:
        os.environ["DATABASE_URL"] = migrations_url

    # autogenerate diffs media_processor.app.db.models against the live schema
    cmd = ["alembic", "revision", "--autogenerate", "-m", sys.argv[1]]
    logger.info("Generating revision: %s", sys.argv[1])
    result = subprocess.run(cmd, cwd=repo_root)
    sys.exit(result.returncode)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
