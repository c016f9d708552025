"""LineFramer unit tests.

Test coverage:
- Lines split across reads
- CRLF terminators and blank lines
- Final unterminated fragment
- Lines larger than the StreamReader limit
- Multibyte characters split across reads
- Cancelling a pending read
"""

from __future__ import annotations

import asyncio

import pytest

from cursor_cli_sdk.runtime.line_framer import LineFramer


def make_stream(*chunks: bytes, eof: bool = True) -> asyncio.StreamReader:
    stream = asyncio.StreamReader()
    for chunk in chunks:
        stream.feed_data(chunk)
    if eof:
        stream.feed_eof()
    return stream


async def collect(framer: LineFramer) -> list[str]:
    return [line async for line in framer]


class TestFraming:
    """Test line splitting."""

    @pytest.mark.asyncio
    async def test_simple_lines(self):
        framer = LineFramer(make_stream(b"one\ntwo\n"))
        assert await collect(framer) == ["one", "two"]
        assert framer.at_eof

    @pytest.mark.asyncio
    async def test_line_split_across_reads(self):
        """Partial reads are joined into one line."""
        framer = LineFramer(make_stream(b'{"type": "sys', b'tem"}\n{"a"', b": 1}\n"), chunk_size=4)
        assert await collect(framer) == ['{"type": "system"}', '{"a": 1}']

    @pytest.mark.asyncio
    async def test_crlf_terminators(self):
        framer = LineFramer(make_stream(b"one\r\ntwo\r", b"\nthree\n"))
        assert await collect(framer) == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_blank_lines_passed_through(self):
        """Blank lines are kept; filtering is the caller's job."""
        framer = LineFramer(make_stream(b"a\n\n\nb\n"))
        assert await collect(framer) == ["a", "", "", "b"]

    @pytest.mark.asyncio
    async def test_final_fragment_without_newline(self):
        framer = LineFramer(make_stream(b"first\nlast"))
        assert await collect(framer) == ["first", "last"]

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        framer = LineFramer(make_stream())
        assert await framer.next_line() is None
        assert await framer.next_line() is None

    @pytest.mark.asyncio
    async def test_line_larger_than_reader_limit(self):
        """No per-line limit (StreamReader.readline would fail here)."""
        payload = "x" * (512 * 1024)
        stream = asyncio.StreamReader(limit=1024)
        stream.feed_data(payload.encode() + b"\nafter\n")
        stream.feed_eof()
        framer = LineFramer(stream)
        assert await collect(framer) == [payload, "after"]


class TestDecoding:
    """Test text decoding."""

    @pytest.mark.asyncio
    async def test_multibyte_split_across_reads(self):
        data = "héllo 世界\n".encode()
        # Split inside the 3-byte encoding of the first CJK character
        cut = data.index("世".encode()) + 1
        framer = LineFramer(make_stream(data[:cut], data[cut:]), chunk_size=cut)
        assert await collect(framer) == ["héllo 世界"]

    @pytest.mark.asyncio
    async def test_invalid_bytes_replaced(self):
        framer = LineFramer(make_stream(b"bad \xff byte\n"))
        assert await collect(framer) == ["bad � byte"]


class TestCancellation:
    """Test cancel safety."""

    @pytest.mark.asyncio
    async def test_cancelled_read_keeps_buffered_data(self):
        """A cancelled next_line() does not drop the partial line."""
        stream = make_stream(b"par", eof=False)
        framer = LineFramer(stream)

        task = asyncio.create_task(framer.next_line())
        await asyncio.sleep(0.05)
        assert not task.done()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        stream.feed_data(b"tial\n")
        stream.feed_eof()
        assert await collect(framer) == ["partial"]
