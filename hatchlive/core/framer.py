"""LineFramer: split a chunked text/byte stream into newline-delimited lines."""

from __future__ import annotations

import codecs
from collections.abc import Iterator


class LineFramer:
    """Turn arbitrary chunks into complete lines, holding back partial ones.

    ``feed()`` accepts the chunk immediately and returns a lazy iterator
    over the lines that are now complete. Lines are removed from the
    internal buffer only as the iterator advances, so an iterator that is
    abandoned half-way loses nothing: the remaining lines come out of the
    next ``feed()`` (or ``flush()``).

    Byte chunks go through an incremental UTF-8 decoder, so a multi-byte
    character split across two chunks is reassembled rather than replaced.

    One framer belongs to one stream session. A new session gets a new
    framer (or a ``reset()`` one) so that a fragment left over from a
    dropped connection is never glued onto the next session's first line.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._pos = 0  # start of the first line not yet returned

    @property
    def pending(self) -> str:
        """Text received but not yet returned as a complete line."""
        return self._buffer[self._pos:]

    def feed(self, chunk: str | bytes) -> Iterator[str]:
        """Add *chunk* and return an iterator over newly completed lines."""
        if isinstance(chunk, (bytes, bytearray)):
            text = self._decoder.decode(bytes(chunk))
        else:
            text = chunk
        if text:
            self._buffer = self._buffer[self._pos:] + text
            self._pos = 0
        return self._drain()

    def _drain(self) -> Iterator[str]:
        while True:
            idx = self._buffer.find("\n", self._pos)
            if idx < 0:
                self._compact()
                return
            line = self._buffer[self._pos:idx]
            self._pos = idx + 1
            if line.endswith("\r"):
                line = line[:-1]
            yield line

    def _compact(self) -> None:
        if self._pos:
            self._buffer = self._buffer[self._pos:]
            self._pos = 0

    def flush(self) -> list[str]:
        """End of stream: return every remaining line, including a final
        unterminated fragment, and leave the framer empty."""
        tail = self._decoder.decode(b"", final=True)
        if tail:
            self._buffer += tail
        lines = list(self._drain())
        if self._buffer:
            fragment = self._buffer
            self._buffer = ""
            self._pos = 0
            lines.append(fragment.rstrip("\r"))
        return lines

    def reset(self) -> None:
        """Drop any held fragment and decoder state."""
        self._buffer = ""
        self._pos = 0
        self._decoder = codecs.getincrementaldecoder(self._encoding)(errors="replace")
