"""
Database Configuration
Builds MySQL connection settings from the environment and the optional
credentials file.
"""
import logging
import os
import re
from typing import Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from config.constants import (
    DEFAULT_DB_NAME, DEFAULT_DB_PORT, DEFAULT_DB_USER, DEFAULT_POOL_SIZE,
    LOGGER_NAME, PASSWD_FILE,
)

logger = logging.getLogger(LOGGER_NAME)

# NAME= prefix of a "NAME=value" credentials line
_ASSIGNMENT = re.compile(r"^[A-Z_][A-Z0-9_]*=")

# Load environment variables
load_dotenv()


def _drop_quotes(line: str) -> str:
    """DB_USER="user" -> user"""
    line = line.strip().replace('"', '')
    return _ASSIGNMENT.sub('', line, count=1).strip()


def read_credentials(path: str = None) -> Optional[Tuple[str, str]]:
    """
    Read database credentials from the credentials file.

    The file holds two lines, user first and password second. Double quotes
    are stripped and a ``NAME=value`` line yields ``value``.

    Returns:
        (user, password), or None when the file does not exist
    """
    path = path or os.getenv("DB_PASSWD_FILE", PASSWD_FILE)
    if not os.path.isfile(path):
        return None

    logger.debug(f"Reading database credentials from {path}")
    with open(path, 'r', encoding='utf-8') as f:
        lines = f.read().splitlines()

    user = _drop_quotes(lines[0]) if len(lines) > 0 else ""
    password = _drop_quotes(lines[1]) if len(lines) > 1 else ""
    return user, password


def build_db_config(env: Mapping[str, str] = None, credentials_file: str = None) -> Dict:
    """
    Build the keyword arguments of a MySQL connection pool.

    Credentials found in the credentials file take precedence over the
    DB_USER / DB_PASSWD environment variables.
    """
    env = os.environ if env is None else env

    config = {
        "host": env.get("DB_HOST", "localhost"),
        "port": int(env.get("DB_PORT", DEFAULT_DB_PORT)),
        "database": env.get("DB_NAME", DEFAULT_DB_NAME),
        "user": env.get("DB_USER", DEFAULT_DB_USER),
        "password": env.get("DB_PASSWD", ""),
        "charset": "utf8mb4",
        "autocommit": True,
        "pool_name": "discovery_pool",
        "pool_size": int(env.get("DB_POOL_SIZE", DEFAULT_POOL_SIZE)),
    }

    credentials = read_credentials(credentials_file or env.get("DB_PASSWD_FILE", PASSWD_FILE))
    if credentials:
        config["user"], config["password"] = credentials

    logger.info(f"Database URL: mysql://{config['user']}@{config['host']}:{config['port']}/{config['database']}")
    return config


def validate_db_config(config: Dict) -> dict:
    """Validate database configuration."""
    issues = []

    if not config.get("host"):
        issues.append("DB_HOST not configured")
    if not config.get("database"):
        issues.append("DB_NAME not configured")
    if not config.get("user"):
        issues.append("DB_USER not configured")
    if config.get("pool_size", 0) < 1:
        issues.append("DB_POOL_SIZE must be at least 1")
    # Password can be empty for a local root account

    return {"valid": len(issues) == 0, "issues": issues}
