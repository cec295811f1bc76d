"""
Extract a whole UITree from model output that emits one JSON document.

The text may be wrapped in a markdown fence or surrounded by prose.
"""

import json
import re
from typing import Optional

from streamui.tree.models import UITree, coerce_tree

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)(?:```|$)", re.DOTALL)
_decoder = json.JSONDecoder()


def extract_ui_tree(text: str) -> Optional[UITree]:
    """Return the first tree-shaped JSON object in ``text``, or None."""
    if not text:
        return None

    fenced = _FENCE_RE.search(text)
    candidate = fenced.group(1) if fenced else text

    start = candidate.find("{")
    if start == -1:
        return None
    try:
        value, _ = _decoder.raw_decode(candidate, start)
    except json.JSONDecodeError:
        return None
    return coerce_tree(value)
