"""Log record data model and the fixed catalogs records are drawn from."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Level(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    DEBUG = "DEBUG"


SERVICES = ("auth", "api", "database", "cache", "payment", "notification")

MESSAGES = (
    "User login successful",
    "Database connection established",
    "API request processed",
    "Cache miss occurred",
    "Payment transaction completed",
    "Invalid authentication token",
    "Connection timeout",
    "Service unavailable",
    "Request rate limit exceeded",
    "Configuration updated",
)

DEFAULT_USER_IDS = tuple(range(1001, 1021))

# Upper bound (exclusive) for user ids when no fixed pool is configured
USER_ID_RANGE = 10000


@dataclass(frozen=True)
class LogRecord:
    timestamp: datetime
    level: Level
    service: str
    request_id: str
    user_id: int
    message: str
