"""
Error handling & logging utilities.
Provides the exception taxonomy of the discovery database layer and
centralized error logging.
"""
import hashlib
import logging
import os
import traceback
from datetime import datetime

from config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

# Human-readable messages per error category
ERROR_MESSAGES = {
    "database": "Unable to communicate with the database.",
    "not_found": "The requested asset or configuration was not found.",
    "validation": "The data provided is invalid.",
    "default": "An unexpected error occurred.",
}


class DiscoveryError(Exception):
    """Base class of every error raised by this package."""


class DatabaseError(DiscoveryError):
    """Store communication or statement failure."""


class ConfigurationReadError(DatabaseError):
    """A result row could not be turned into a configuration record."""


class NotFoundError(DiscoveryError):
    pass


class AssetNotFoundError(NotFoundError):
    def __init__(self, asset_name):
        super().__init__(f"element {asset_name} not found")
        self.asset_name = asset_name


class ConfigurationNotFoundError(NotFoundError):
    def __init__(self, message, config_id=None, asset_name=None):
        super().__init__(message)
        self.config_id = config_id
        self.asset_name = asset_name


def setup_logging(log_dir: str = None, debug: bool = None) -> logging.Logger:
    """
    Configure process logging the way the application entry points expect.

    Technical details go to ``<log_dir>/discovery.log``; a console handler is
    added only when debugging is on (``DEBUG=true`` by default).
    """
    log_dir = log_dir or os.getenv("LOG_DIR", "logs")
    if debug is None:
        debug = os.getenv("DEBUG", "false").lower() == "true"
    os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "discovery.log"), encoding='utf-8'),
            logging.StreamHandler() if debug else logging.NullHandler()
        ]
    )
    return logger


def get_error_id() -> str:
    """Generate unique error ID for support reference."""
    timestamp = datetime.now().isoformat()
    return hashlib.md5(timestamp.encode()).hexdigest()[:8].upper()


def log_error(error: Exception, context: str = "") -> str:
    """
    Log technical error details and return an error ID for reference.

    Args:
        error: The exception that occurred
        context: What was being attempted

    Returns:
        Error ID for reference
    """
    error_id = get_error_id()

    logger.error(
        f"ERROR_ID={error_id} | "
        f"CONTEXT={context} | "
        f"TYPE={type(error).__name__} | "
        f"MESSAGE={str(error)} | "
        f"TRACE={traceback.format_exc()}"
    )

    return error_id


def classify_error(error: Exception) -> str:
    """Classify error type to pick a message from ERROR_MESSAGES."""
    if isinstance(error, NotFoundError):
        return "not_found"
    if isinstance(error, DatabaseError):
        return "database"
    if isinstance(error, ValueError):
        return "validation"

    error_str = str(error).lower()
    error_type = type(error).__name__.lower()

    # Driver errors
    if any(x in error_str for x in ['mysql', 'database', 'connection', 'pool', 'cursor', 'query']):
        return "database"
    if any(x in error_type for x in ['operational', 'interface', 'programming', 'integrity']):
        return "database"

    if any(x in error_str for x in ['not found', 'does not exist']):
        return "not_found"

    return "default"


def handle_db_error(error: Exception, operation: str) -> tuple:
    """
    Log a store failure consistently.
    Returns (success: bool, message: str, error_id: str)
    """
    error_id = log_error(error, f"DB:{operation}")
    error_type = classify_error(error)
    message = ERROR_MESSAGES.get(error_type, ERROR_MESSAGES["default"])

    return False, f"{message} (Ref: {error_id})", error_id
