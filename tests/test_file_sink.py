"""Tests for the size-bounded file sink."""

import aiofiles.os
import pytest

from loggen.file_sink import FileSink, FileSinkError


def _line(i: int) -> str:
    """A 20-byte line including its newline."""
    return f"line-{i:014d}\n"


def _write_lines(path, count: int) -> None:
    path.write_text("".join(_line(i) for i in range(1, count + 1)))


class TestAppend:
    @pytest.mark.asyncio
    async def test_creates_file(self, tmp_path):
        path = tmp_path / "app.log"
        sink = FileSink(str(path), max_file_size=1024)
        await sink.deliver("hello\n")
        assert path.read_text() == "hello\n"

    @pytest.mark.asyncio
    async def test_appends_in_order(self, tmp_path):
        path = tmp_path / "app.log"
        sink = FileSink(str(path), max_file_size=1024)
        for i in range(3):
            await sink.deliver(_line(i))
        assert path.read_text() == _line(0) + _line(1) + _line(2)

    @pytest.mark.asyncio
    async def test_missing_directory_raises(self, tmp_path):
        sink = FileSink(str(tmp_path / "no" / "such" / "dir" / "app.log"), 1024)
        with pytest.raises(FileSinkError):
            await sink.deliver("hello\n")

    @pytest.mark.asyncio
    async def test_missing_file_has_zero_size(self, tmp_path):
        sink = FileSink(str(tmp_path / "absent.log"), 1024)
        assert await sink.file_size() == 0
        assert await sink.check_and_rotate() is None


class TestRotation:
    def test_line_helper_is_twenty_bytes(self):
        assert len(_line(1).encode()) == 20

    @pytest.mark.asyncio
    async def test_no_rotation_at_exact_limit(self, tmp_path):
        path = tmp_path / "app.log"
        sink = FileSink(str(path), max_file_size=100)
        for i in range(1, 6):
            await sink.deliver(_line(i))
        assert len(path.read_text().splitlines()) == 5

    @pytest.mark.asyncio
    async def test_append_over_limit_halves_lines(self, tmp_path):
        path = tmp_path / "app.log"
        _write_lines(path, 9)
        sink = FileSink(str(path), max_file_size=100)

        await sink.deliver(_line(10))

        assert path.read_text() == "".join(_line(i) for i in range(6, 11))

    @pytest.mark.asyncio
    async def test_rotate_keeps_most_recent_half(self, tmp_path):
        path = tmp_path / "app.log"
        _write_lines(path, 10)
        sink = FileSink(str(path), max_file_size=100)

        kept = await sink.rotate()

        assert kept == 5
        assert path.read_text().splitlines() == [
            _line(i).rstrip("\n") for i in range(6, 11)
        ]

    @pytest.mark.asyncio
    async def test_odd_line_count_rounds_down(self, tmp_path):
        path = tmp_path / "app.log"
        _write_lines(path, 7)
        sink = FileSink(str(path), max_file_size=100)

        assert await sink.rotate() == 3
        content = path.read_text()
        assert content == _line(5) + _line(6) + _line(7)

    @pytest.mark.asyncio
    async def test_single_oversized_line_is_dropped(self, tmp_path):
        path = tmp_path / "app.log"
        sink = FileSink(str(path), max_file_size=10)
        await sink.deliver("x" * 50 + "\n")
        assert path.read_text() == ""

    @pytest.mark.asyncio
    async def test_no_partial_lines_after_rotation(self, tmp_path):
        path = tmp_path / "app.log"
        sink = FileSink(str(path), max_file_size=200)
        for i in range(100):
            await sink.deliver(_line(i))
            content = path.read_text()
            assert content == "" or content.endswith("\n")
            assert all(len(l) == 19 for l in content.splitlines())
        assert path.stat().st_size <= 200 + 20

    @pytest.mark.asyncio
    async def test_rotation_logs_kept_lines(self, tmp_path, caplog):
        path = tmp_path / "app.log"
        _write_lines(path, 4)
        sink = FileSink(str(path), max_file_size=10)
        with caplog.at_level("INFO", logger="loggen.file_sink"):
            await sink.check_and_rotate()
        assert "Kept 2 lines" in caplog.text


class TestRawBytes:
    @pytest.mark.asyncio
    async def test_rotation_preserves_non_utf8_bytes(self, tmp_path):
        path = tmp_path / "app.log"
        path.write_bytes(b"\xff\xfe legacy bytes\n" * 20)
        sink = FileSink(str(path), max_file_size=100)

        await sink.deliver("fresh entry\n")

        data = path.read_bytes()
        assert data.endswith(b"fresh entry\n")
        assert data.count(b"\n") == 10
        assert data.startswith(b"\xff\xfe legacy bytes\n")

    @pytest.mark.asyncio
    async def test_only_newline_delimits_lines(self, tmp_path):
        path = tmp_path / "app.log"
        lines = [
            "form\x0cfeed\n",
            "vertical\x0btab\n",
            "line\u2028separator\n",
            "next\x85line\n",
        ]
        path.write_text("".join(lines), encoding="utf-8")
        sink = FileSink(str(path), max_file_size=10)

        assert await sink.rotate() == 2
        assert path.read_text(encoding="utf-8") == lines[2] + lines[3]

    @pytest.mark.asyncio
    async def test_unterminated_tail_counts_as_line(self, tmp_path):
        path = tmp_path / "app.log"
        path.write_bytes(b"a\nb\nc\nd")
        sink = FileSink(str(path), max_file_size=1)

        assert await sink.rotate() == 2
        assert path.read_bytes() == b"c\nd"


class TestIOFailures:
    @pytest.mark.asyncio
    async def test_stat_failure_raises(self, tmp_path, monkeypatch):
        async def denied(path, *args, **kwargs):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr(aiofiles.os, "stat", denied)
        sink = FileSink(str(tmp_path / "app.log"), max_file_size=100)

        with pytest.raises(FileSinkError, match="size"):
            await sink.file_size()
        with pytest.raises(FileSinkError):
            await sink.deliver("hello\n")
        # The append itself happened before the size check failed
        assert (tmp_path / "app.log").read_text() == "hello\n"

    @pytest.mark.asyncio
    async def test_rotate_on_directory_raises(self, tmp_path):
        target = tmp_path / "logdir"
        target.mkdir()
        sink = FileSink(str(target), max_file_size=100)
        with pytest.raises(FileSinkError, match="rotating"):
            await sink.rotate()

    @pytest.mark.asyncio
    async def test_rotate_on_vanished_file_raises(self, tmp_path):
        sink = FileSink(str(tmp_path / "gone.log"), max_file_size=100)
        with pytest.raises(FileSinkError):
            await sink.rotate()

    @pytest.mark.asyncio
    async def test_append_to_directory_raises(self, tmp_path):
        sink = FileSink(str(tmp_path), max_file_size=100)
        with pytest.raises(FileSinkError, match="writing"):
            await sink.deliver("hello\n")
