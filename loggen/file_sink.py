"""Size-bounded file sink with async I/O and truncation-based rotation."""

import logging

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

# Fraction of lines kept when the file outgrows its bound
KEEP_RATIO = 0.5


class FileSinkError(Exception):
    """Raised when appending to, sizing, or rotating the log file fails."""


def split_lines(data: bytes) -> list[bytes]:
    """Split raw file content on ``\\n`` only, keeping each terminator.

    Bytes are never decoded, so foreign encodings and other Unicode line
    separators pass through untouched. A trailing fragment without a newline
    counts as a line.
    """
    chunks = data.split(b"\n")
    tail = chunks.pop()
    lines = [chunk + b"\n" for chunk in chunks]
    if tail:
        lines.append(tail)
    return lines


class FileSink:
    """Appends rendered entries to a file and halves it once it exceeds ``max_file_size``."""

    def __init__(self, path: str, max_file_size: int) -> None:
        self.path = path
        self.max_file_size = max_file_size

    async def deliver(self, rendered_text: str) -> None:
        """Append one entry, then rotate if the file grew past its bound.

        Raises:
            FileSinkError: On any I/O failure other than the file vanishing
                before the size check.
        """
        try:
            async with aiofiles.open(self.path, mode="a", encoding="utf-8") as f:
                await f.write(rendered_text)
        except OSError as exc:
            raise FileSinkError(f"Error writing log to {self.path}: {exc}") from exc
        await self.check_and_rotate()

    async def file_size(self) -> int:
        """Current size in bytes; a missing file counts as empty."""
        try:
            stat = await aiofiles.os.stat(self.path)
        except FileNotFoundError:
            return 0
        except OSError as exc:
            raise FileSinkError(f"Error checking size of {self.path}: {exc}") from exc
        return stat.st_size

    async def check_and_rotate(self) -> int | None:
        """Rotate when over the limit. Returns lines kept, or None if untouched."""
        if await self.file_size() > self.max_file_size:
            return await self.rotate()
        return None

    async def rotate(self) -> int:
        """Drop the oldest half of the file's lines and return how many were kept."""
        try:
            async with aiofiles.open(self.path, mode="rb") as f:
                data = await f.read()
            lines = split_lines(data)
            keep = int(len(lines) * KEEP_RATIO)
            retained = lines[len(lines) - keep:]
            async with aiofiles.open(self.path, mode="wb") as f:
                await f.write(b"".join(retained))
        except OSError as exc:
            raise FileSinkError(f"Error rotating {self.path}: {exc}") from exc

        logger.info("Log file truncated. Kept %d lines.", keep)
        return keep

    async def aclose(self) -> None:
        """No persistent file handle to close; each write opens the file."""
