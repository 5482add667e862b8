#!/usr/bin/env python3
import argparse
from pathlib import Path

import psycopg2

from libscraper import env
from libscraper.sql_client import build_url
from libscraper.utils import setup_logging

logger = setup_logging("init_db")

DEFAULT_DEFINITION = Path(__file__).resolve().parent.parent / "config" / "database-definition.sql"


def init_database(definition: Path):
    """Drop and recreate the scraper tables from `definition`"""
    env.init_environment()

    url = build_url(
        env.POSTGRES_USER, env.POSTGRES_PASSWORD, env.POSTGRES_HOST, env.POSTGRES_DATABASE
    )
    logger.info("Connecting to %s/%s", env.POSTGRES_HOST, env.POSTGRES_DATABASE)
    connection = psycopg2.connect(url, sslmode=env.sslmode())
    try:
        with connection:
            with connection.cursor() as cursor:
                cursor.execute(definition.read_text())
        logger.info("Applied %s", definition)
    finally:
        connection.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the scraper tables, dropping old ones.")
    parser.add_argument("--definition", type=Path, default=DEFAULT_DEFINITION)
    args = parser.parse_args()
    init_database(args.definition)
