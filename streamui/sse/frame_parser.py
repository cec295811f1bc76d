"""
Minimal SSE (Server-Sent Events) frame parser.

- tolerates CRLF vs LF
- tolerates frames split across chunks
- supports multi-line ``data:`` frames

Only ``data:`` fields are surfaced; ``event:``, ``id:``, ``retry:`` and
comments are ignored.
"""

import json
import logging
from typing import Any, Callable, List, Sequence

logger = logging.getLogger("streamui")

DATA_FIELD = "data:"


class SseFrameParser:
    """
    Resumable frame parser. ``on_frame`` receives the data values of each
    complete frame, in order, once per frame.
    """

    def __init__(self, on_frame: Callable[[List[str]], None]):
        self.on_frame = on_frame
        self._line_buffer = ""
        self._data_lines: List[str] = []

    def push(self, chunk: str) -> None:
        """Feed a decoded text chunk."""
        self._line_buffer += chunk
        while True:
            nl = self._line_buffer.find("\n")
            if nl == -1:
                return
            line = self._line_buffer[:nl]
            self._line_buffer = self._line_buffer[nl + 1 :]
            self._handle_line(line.removesuffix("\r"))

    def flush(self) -> None:
        """Deliver any buffered frame, treating end-of-stream as a terminator."""
        if self._line_buffer:
            line, self._line_buffer = self._line_buffer, ""
            self._handle_line(line.removesuffix("\r"))
        self._handle_line("")

    def _handle_line(self, line: str) -> None:
        if line == "":
            self._dispatch()
            return
        if not line.startswith(DATA_FIELD):
            return
        value = line[len(DATA_FIELD) :]
        if value.startswith(" "):
            value = value[1:]
        self._data_lines.append(value)

    def _dispatch(self) -> None:
        if not self._data_lines:
            return
        lines, self._data_lines = self._data_lines, []
        self.on_frame(lines)


def parse_data_lines_json(lines: Sequence[str]) -> List[Any]:
    """
    Decode a frame's data lines as JSON.

    Tries the lines joined with "\\n", then joined with no separator (a
    value split across ``data:`` lines), then each line on its own. Lines
    that still fail to parse are dropped.
    """
    if not lines:
        return []
    for separator in ("\n", ""):
        try:
            return [json.loads(separator.join(lines))]
        except json.JSONDecodeError:
            continue

    values = []
    for line in lines:
        try:
            values.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug(f"[FrameParser] Dropping undecodable data line: {line!r}")
    return values
