"""Push sink: ships single-entry batches to a Loki-style HTTP push API."""

import logging
import time

import httpx

from loggen.models import LogRecord
from loggen.serializer import format_push_line

logger = logging.getLogger(__name__)


class PushError(Exception):
    """Raised when the push endpoint rejects an entry or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None,
                 cause: Exception | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


def merge_labels(static_labels: dict, level: str, service: str) -> dict:
    """Merge static labels with the derived ``level`` and ``service`` labels.

    Static labels go in first; the derived ones overwrite any static label
    with the same key. ``level`` is lower-cased.
    """
    merged = dict(static_labels)
    merged["level"] = level.lower()
    merged["service"] = service
    return merged


def build_payload(labels: dict, line: str, timestamp_ns: int) -> dict:
    """Wrap one line into a push batch with a single stream and a single value."""
    return {
        "streams": [
            {
                "stream": labels,
                "values": [[str(timestamp_ns), line]],
            }
        ]
    }


class PushSink:
    """POSTs each record to ``url`` once, without retries."""

    def __init__(
        self,
        url: str,
        labels: dict | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.labels = dict(labels or {})
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def payload_for(self, record: LogRecord, timestamp_ns: int) -> dict:
        labels = merge_labels(self.labels, record.level.value, record.service)
        return build_payload(labels, format_push_line(record), timestamp_ns)

    async def deliver(self, record: LogRecord, rendered_text: str) -> None:
        """Push *record* stamped with the delivery time.

        *rendered_text* is accepted for symmetry with the file sink; the wire
        line is always the flat push rendering of the record.

        Raises:
            PushError: On a non-2xx response or a transport failure.
        """
        payload = self.payload_for(record, time.time_ns())
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise PushError(f"Push to {self.url} failed: {exc}", cause=exc) from exc

        if not response.is_success:
            raise PushError(
                f"Push to {self.url} returned HTTP {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )
        logger.debug("Pushed entry to %s (HTTP %d)", self.url, response.status_code)

    async def aclose(self) -> None:
        await self._client.aclose()
