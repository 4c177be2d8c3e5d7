"""Event synthesizer that builds one random log record per call."""

import random
import string
from datetime import datetime, timezone

from loggen.models import (
    DEFAULT_USER_IDS,
    MESSAGES,
    SERVICES,
    USER_ID_RANGE,
    Level,
    LogRecord,
)

REQUEST_ID_ALPHABET = string.digits + string.ascii_lowercase
REQUEST_ID_MIN_LEN = 8
REQUEST_ID_MAX_LEN = 13

# Cumulative upper bounds (exclusive) on a [0, 100) draw, checked in order
_LEVEL_BANDS = (
    (60, Level.INFO),
    (70, Level.WARN),
    (90, Level.ERROR),
)


def get_weighted_level() -> Level:
    """Pick a level: INFO 60%, WARN 10%, ERROR 20%, DEBUG 10%."""
    draw = random.random() * 100
    for upper, level in _LEVEL_BANDS:
        if draw < upper:
            return level
    return Level.DEBUG


def generate_request_id() -> str:
    """Produce a base-36 token of 8 to 13 characters."""
    length = random.randint(REQUEST_ID_MIN_LEN, REQUEST_ID_MAX_LEN)
    return "".join(random.choices(REQUEST_ID_ALPHABET, k=length))


def generate_user_id(user_ids=DEFAULT_USER_IDS) -> int:
    if user_ids:
        return random.choice(user_ids)
    return random.randrange(USER_ID_RANGE)


def _now_millis() -> datetime:
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def generate(user_ids=DEFAULT_USER_IDS) -> LogRecord:
    """Build a fresh record stamped with the current UTC time.

    An empty *user_ids* pool switches user ids to the [0, 10000) range.
    """
    return LogRecord(
        timestamp=_now_millis(),
        level=get_weighted_level(),
        service=random.choice(SERVICES),
        request_id=generate_request_id(),
        user_id=generate_user_id(user_ids),
        message=random.choice(MESSAGES),
    )
