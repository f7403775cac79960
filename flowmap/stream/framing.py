"""Incremental record framing for chunked JSON event streams.

Events arrive as arbitrary byte chunks (typically SSE ``data:`` lines) and
a record may be split anywhere, including inside a string or a multi-byte
character. The framer tracks brace/bracket nesting and string state across
chunks and only decodes once a value closes at depth zero.
"""
import codecs
import json
from typing import Any, Union

import structlog

logger = structlog.get_logger()

OPENERS = "{["
CLOSERS = "}]"


class RecordFramer:
    """Splits a chunked character stream into decoded JSON records.

    Text outside a JSON value (SSE field names, blank lines) is ignored.
    A value that fails to decode is dropped and framing resumes with the
    next value; the stream itself never fails because of it.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer: list[str] = []
        self._depth = 0
        self._in_string = False
        self._escaped = False
        self.dropped = 0

    @property
    def pending(self) -> bool:
        """Whether a partial record is buffered."""
        return bool(self._buffer)

    def feed(self, chunk: Union[bytes, str]) -> list[Any]:
        """Consume a chunk and return every record it completes."""
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        records = []

        for char in text:
            if not self._buffer:
                if char in OPENERS:
                    self._buffer.append(char)
                    self._depth = 1
                continue

            self._buffer.append(char)

            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif char == "\\":
                    self._escaped = True
                elif char == '"':
                    self._in_string = False
                continue

            if char == '"':
                self._in_string = True
            elif char in OPENERS:
                self._depth += 1
            elif char in CLOSERS:
                self._depth -= 1
                if self._depth == 0:
                    record = self._flush()
                    if record is not None:
                        records.append(record)

        return records

    def close(self) -> list[Any]:
        """Finish the stream; an unterminated record is discarded."""
        records = self.feed(self._decoder.decode(b"", final=True))
        if self._buffer:
            logger.warning("stream_record_truncated", length=len(self._buffer))
            self.dropped += 1
            self._reset()
        return records

    def _flush(self) -> Any:
        raw = "".join(self._buffer)
        self._reset()
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            self.dropped += 1
            logger.warning("stream_record_undecodable", error=str(e), raw=raw[:200])
            return None

    def _reset(self) -> None:
        self._buffer = []
        self._depth = 0
        self._in_string = False
        self._escaped = False
