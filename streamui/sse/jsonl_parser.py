"""
JSONL (newline-delimited JSON) streaming parser for patch operations.

``push`` buffers partial lines and returns the ops parsed from any lines it
completed; ``flush`` parses whatever remains. Blank lines, markdown fences
and records that fail to parse are skipped so the stream keeps moving.
"""

import logging
from typing import List

from streamui.tree.rfc6902 import PatchOp, parse_patch_line

logger = logging.getLogger("streamui")

FENCE_MARKER = "```"


def _is_skippable(line: str) -> bool:
    trimmed = line.strip()
    return trimmed == "" or trimmed.startswith(FENCE_MARKER)


class JsonlParser:
    def __init__(self):
        self._buffer = ""
        self.dropped = 0

    def push(self, chunk: str) -> List[PatchOp]:
        self._buffer += chunk
        if "\n" not in self._buffer:
            return []

        *lines, self._buffer = self._buffer.split("\n")
        ops = []
        for line in lines:
            op = self._parse(line)
            if op is not None:
                ops.append(op)
        return ops

    def flush(self) -> List[PatchOp]:
        line, self._buffer = self._buffer, ""
        op = self._parse(line)
        return [op] if op is not None else []

    def _parse(self, line: str):
        if _is_skippable(line):
            return None
        op = parse_patch_line(line)
        if op is None:
            self.dropped += 1
            logger.debug(f"[JsonlParser] Skipping invalid record: {line[:120]!r}")
        return op
