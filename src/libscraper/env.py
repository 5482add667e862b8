"""
Settings read from the process environment or a `.env` file.

`SqlClient` takes its connection settings as arguments; these values are
for the scripts that construct it.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# PostgreSQL connection
POSTGRES_HOST = os.getenv("POSTGRES_HOST")
POSTGRES_DATABASE = os.getenv("POSTGRES_DATABASE")
POSTGRES_USER = os.getenv("POSTGRES_USER")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD")
# any non-empty value connects with sslmode=disable
DISABLE_SSL = os.getenv("DISABLE_SSL")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

REQUIRED_ENV_VARS = ["POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_HOST", "POSTGRES_DATABASE"]


def init_environment():
    """Raise ValueError naming the first missing connection setting"""
    for var in REQUIRED_ENV_VARS:
        if not os.getenv(var):
            raise ValueError(f"{var} not found")


def sslmode():
    return "disable" if DISABLE_SSL else None
