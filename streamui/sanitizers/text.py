"""
Text sanitizer for generated UI copy.

Models like to prefix headings and labels with emoji icons
(e.g. "⚡ Performance"). Leading emoji tokens are stripped so the copy renders
cleanly without an icon component.
"""

import re
from typing import Any

from streamui.tree.rfc6902 import PatchOp

_PICTOGRAPHIC = (
    "["
    "\u00a9\u00ae\u203c\u2049\u2122\u2139\u2194-\u2199\u21a9\u21aa"
    "\u231a\u231b\u2328\u23cf\u23e9-\u23f3\u23f8-\u23fa\u24c2\u25aa\u25ab"
    "\u25b6\u25c0\u25fb-\u25fe\u2600-\u27bf\u2934\u2935\u2b05-\u2b07"
    "\u2b1b\u2b1c\u2b50\u2b55\u3030\u303d\u3297\u3299"
    "\U0001f000-\U0001faff"
    "]"
)
_EMOJI = _PICTOGRAPHIC + "[\ufe0e\ufe0f]?[\U0001f3fb-\U0001f3ff]?"

# One or more leading emoji clusters (ZWJ sequences included), each followed
# by whitespace.
LEADING_EMOJI_TOKENS = re.compile(
    r"^\s*(?:" + _EMOJI + "(?:\u200d" + _EMOJI + r")*\s+)+"
)


def strip_leading_emoji_tokens(text: str) -> str:
    return LEADING_EMOJI_TOKENS.sub("", text, count=1)


def sanitize_unknown_text(value: Any) -> Any:
    """
    Recursively strip leading emoji tokens from every string leaf.
    Returns the original object when nothing changes.
    """
    if isinstance(value, str):
        cleaned = strip_leading_emoji_tokens(value)
        return value if cleaned == value else cleaned

    if isinstance(value, list):
        out = None
        for i, item in enumerate(value):
            cleaned = sanitize_unknown_text(item)
            if out is None and cleaned is not item:
                out = list(value)
            if out is not None:
                out[i] = cleaned
        return value if out is None else out

    if isinstance(value, dict):
        out = None
        for key, item in value.items():
            cleaned = sanitize_unknown_text(item)
            if out is None and cleaned is not item:
                out = dict(value)
            if out is not None:
                out[key] = cleaned
        return value if out is None else out

    return value


def sanitize_patch(patch: PatchOp) -> PatchOp:
    """Strip leading emoji tokens anywhere inside a patch value."""
    if patch.op == "remove":
        return patch
    cleaned = sanitize_unknown_text(patch.value)
    return patch if cleaned is patch.value else patch.with_value(cleaned)
