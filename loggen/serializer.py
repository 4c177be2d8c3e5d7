"""Record serializers: flat text and JSON, plus parsers that read them back."""

import json
import re
from datetime import datetime, timezone

from loggen.models import Level, LogRecord

VALID_FORMATS = ("text", "json")

_TEXT_RE = re.compile(
    r"^(?P<timestamp>\S+) "
    r"\[(?P<level>[A-Z]+)\] "
    r"\[(?P<service>[^\]]+)\] "
    r"RequestID: (?P<requestId>[0-9a-z]+) "
    r"UserID: (?P<userId>\d+) - "
    r"(?P<message>.*)$"
)


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    ts = ts.astimezone(timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def record_fields(record: LogRecord) -> dict:
    """Canonical field mapping shared by every representation."""
    return {
        "timestamp": format_timestamp(record.timestamp),
        "level": record.level.value,
        "service": record.service,
        "requestId": record.request_id,
        "userId": record.user_id,
        "message": record.message,
    }


def format_text(fields: dict) -> str:
    return (
        f"{fields['timestamp']} [{fields['level']}] [{fields['service']}] "
        f"RequestID: {fields['requestId']} UserID: {fields['userId']} - "
        f"{fields['message']}\n"
    )


def format_json(fields: dict) -> str:
    return json.dumps(fields) + "\n"


def format_push_line(record: LogRecord) -> str:
    """Flat line for the push sink; carries no timestamp and ignores the configured format."""
    return (
        f"[{record.level.value}] [{record.service}] "
        f"RequestID: {record.request_id} UserID: {record.user_id} - "
        f"{record.message}"
    )


def serialize(record: LogRecord, fmt: str) -> tuple[str, dict]:
    """Render *record* in *fmt* and return ``(rendered_text, fields)``.

    Raises:
        ValueError: If *fmt* is not one of VALID_FORMATS.
    """
    fields = record_fields(record)
    if fmt == "json":
        return format_json(fields), fields
    if fmt == "text":
        return format_text(fields), fields
    raise ValueError(f"Unknown log format: {fmt!r}")


def _record_from_fields(fields: dict) -> LogRecord:
    return LogRecord(
        timestamp=parse_timestamp(fields["timestamp"]),
        level=Level(fields["level"]),
        service=fields["service"],
        request_id=fields["requestId"],
        user_id=int(fields["userId"]),
        message=fields["message"],
    )


def parse_text_line(line: str) -> LogRecord:
    m = _TEXT_RE.match(line.rstrip("\n"))
    if m is None:
        raise ValueError(f"Line does not match text format: {line!r}")
    return _record_from_fields(m.groupdict())


def parse_json_line(line: str) -> LogRecord:
    try:
        return _record_from_fields(json.loads(line))
    except (json.JSONDecodeError, KeyError, TypeError) as exc:
        raise ValueError(f"Line is not a JSON log record: {line!r}") from exc
