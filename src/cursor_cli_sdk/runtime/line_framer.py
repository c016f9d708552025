"""Newline-delimited framing over an asyncio byte stream.

cursor-cli-sdk runtime module v0.1.0

asyncio.StreamReader.readline() fails with LimitOverrunError once a line
exceeds the reader limit (64 KiB by default). Agents can emit much larger
single-line JSON objects (base64 images, long tool output), so this framer
reads fixed-size chunks and keeps its own buffer instead.

Key design points:
- No per-line size limit
- Incremental UTF-8 decoding: a multibyte character split across two
  reads is decoded once both halves have arrived
- "\\r\\n" is treated as a single terminator
- Blank lines are passed through; filtering is the caller's job
- A final fragment without a trailing newline is emitted at EOF
- next_line() is cancel-safe: buffered data is only consumed once a
  complete line is returned
"""

from __future__ import annotations

import asyncio
import codecs
from collections import deque
from collections.abc import AsyncIterator

__all__ = [
    "LineFramer",
    "DEFAULT_CHUNK_SIZE",
]

DEFAULT_CHUNK_SIZE = 64 * 1024


class LineFramer:
    """Turn a byte stream into a lazy sequence of text lines.

    Example:
        framer = LineFramer(process.stdout)
        async for line in framer:
            handle(line)
    """

    def __init__(
        self,
        stream: asyncio.StreamReader,
        *,
        encoding: str = "utf-8",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._stream = stream
        self._chunk_size = chunk_size
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._parts: list[str] = []
        self._ready: deque[str] = deque()
        self._eof = False

    @property
    def at_eof(self) -> bool:
        """True once the stream is exhausted and every line was returned."""
        return self._eof and not self._ready

    async def next_line(self) -> str | None:
        """Return the next line without its terminator, or None at EOF."""
        while not self._ready:
            if self._eof:
                return None
            chunk = await self._stream.read(self._chunk_size)
            if chunk:
                self._feed(self._decoder.decode(chunk))
            else:
                self._eof = True
                self._feed(self._decoder.decode(b"", final=True))
                if self._parts:
                    self._ready.append(_strip_cr("".join(self._parts)))
                    self._parts = []
        return self._ready.popleft()

    def _feed(self, text: str) -> None:
        pieces = text.split("\n")
        if len(pieces) == 1:
            if text:
                self._parts.append(text)
            return
        self._parts.append(pieces[0])
        self._ready.append(_strip_cr("".join(self._parts)))
        self._ready.extend(_strip_cr(piece) for piece in pieces[1:-1])
        self._parts = [pieces[-1]] if pieces[-1] else []

    def __aiter__(self) -> AsyncIterator[str]:
        return self

    async def __anext__(self) -> str:
        line = await self.next_line()
        if line is None:
            raise StopAsyncIteration
        return line


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line
