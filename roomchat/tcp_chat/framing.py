"""
Shared framing helpers for newline-delimited JSON messages.
Format: one UTF-8 JSON object per line, terminated by b"\\n". No length prefix.
"""
import json
import logging
from typing import List, Optional

from roomchat.config import MAX_LINE_BYTES

logger = logging.getLogger(__name__)


def encode_msg(obj: dict) -> bytes:
    return (json.dumps(obj, separators=(",", ":")) + "\n").encode("utf-8")


class LineBuffer:
    """
    Reassembles lines from arbitrary network reads.

    One read may carry zero, one or many complete lines, and a line may be
    split across reads. feed() returns the complete lines found so far
    (without the trailing newline) and keeps the remainder for later.

    A line longer than max_line_bytes is dropped; in its place feed()
    returns a single None so the caller can report it in order.
    """

    def __init__(self, max_line_bytes: int = MAX_LINE_BYTES):
        self.max_line_bytes = max_line_bytes
        self._buf = bytearray()
        self._discarding = False

    def feed(self, data: bytes) -> List[Optional[bytes]]:
        self._buf.extend(data)
        lines: List[Optional[bytes]] = []

        while True:
            idx = self._buf.find(b"\n")
            if idx < 0:
                break
            line = bytes(self._buf[:idx])
            del self._buf[: idx + 1]
            if self._discarding:
                # tail of an oversized line, already reported
                self._discarding = False
                continue
            if len(line) > self.max_line_bytes:
                lines.append(None)
                continue
            lines.append(line)

        if len(self._buf) > self.max_line_bytes:
            logger.warning("Dropping oversized frame (%d bytes buffered)", len(self._buf))
            self._buf.clear()
            if not self._discarding:
                self._discarding = True
                lines.append(None)

        return lines

    @property
    def pending(self) -> int:
        """Bytes of an incomplete line currently buffered."""
        return len(self._buf)
