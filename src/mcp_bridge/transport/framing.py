"""Newline framing for the tool-server byte stream."""

import logging

logger = logging.getLogger(__name__)

LINE_DELIMITER = b"\n"


def _decode(raw: bytes) -> str | None:
    """Decode one line as strict UTF-8; undecodable lines are logged and dropped."""
    try:
        return raw.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        logger.error(f"Framing error: line is not valid UTF-8: {e} (line: {raw[:200]!r})")
        return None


class LineBuffer:
    """Reassemble arbitrarily chunked bytes into complete lines.

    Bytes are buffered until a newline arrives; only then is the line decoded
    as UTF-8. This keeps multi-byte characters intact when a chunk boundary
    falls inside them. Blank lines are dropped.

    Example:
        >>> buf = LineBuffer()
        >>> buf.feed(b'{"id": 1, "res')
        []
        >>> buf.feed(b'ult": 2}\\n')
        ['{"id": 1, "result": 2}']
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> list[str]:
        """Add a chunk and return every line it completed, in order."""
        self._buffer.extend(chunk)
        lines: list[str] = []

        while True:
            index = self._buffer.find(LINE_DELIMITER)
            if index < 0:
                break
            raw = bytes(self._buffer[:index])
            del self._buffer[: index + 1]

            line = _decode(raw)
            if line:
                lines.append(line)

        return lines

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet terminated by a newline."""
        return len(self._buffer)

    def flush(self) -> str | None:
        """Return and clear an unterminated trailing line, if any."""
        if not self._buffer:
            return None
        line = _decode(bytes(self._buffer))
        self._buffer.clear()
        if line:
            logger.debug(f"Flushed unterminated line ({len(line)} chars)")
        return line or None
