"""
RFC 6902 patch operations applied to a UITree.

Subset: only add/replace/remove. No move/copy/test.

JSON Pointer paths (RFC 6901) are restricted to two namespaces:
    /root                    -> tree.root
    /elements/<key>          -> tree.elements[key]
    /elements/<key>/a/b      -> a nested field inside one element
    /elements/<key>/children/- -> append to the children array

Every ``apply_patch`` call returns a new UITree and never mutates its input.
Rejected paths (unknown namespace, prototype identifiers) are no-ops.
"""

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictStr,
    ValidationError,
    model_validator,
)

from streamui.tree.models import UITree, coerce_tree

logger = logging.getLogger("streamui")

PatchOpName = Literal["add", "replace", "remove"]

# Segments that must never be used as keys; checked once per parsed path.
BLOCKED_SEGMENTS = frozenset({"__proto__", "constructor", "prototype"})
ALLOWED_NAMESPACES = frozenset({"root", "elements"})
APPEND_SEGMENT = "-"


class PatchOp(BaseModel):
    """
    One wire record. ``add`` and ``replace`` require an explicit ``value``
    key (``null`` counts as present); ``remove`` never carries one.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    op: PatchOpName
    path: StrictStr
    value: Any = None

    @model_validator(mode="after")
    def _check_value(self) -> "PatchOp":
        if self.op in ("add", "replace") and "value" not in self.model_fields_set:
            raise ValueError(f"'{self.op}' requires a value")
        return self

    @classmethod
    def add(cls, path: str, value: Any) -> "PatchOp":
        return cls(op="add", path=path, value=value)

    @classmethod
    def replace(cls, path: str, value: Any) -> "PatchOp":
        return cls(op="replace", path=path, value=value)

    @classmethod
    def remove(cls, path: str) -> "PatchOp":
        return cls(op="remove", path=path)

    @property
    def has_value(self) -> bool:
        return self.op != "remove" and "value" in self.model_fields_set

    def with_value(self, value: Any) -> "PatchOp":
        return PatchOp(op=self.op, path=self.path, value=value)

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"op": self.op, "path": self.path}
        if self.op != "remove":
            wire["value"] = self.value
        return wire

    def to_line(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False)


def escape_pointer_segment(segment: str) -> str:
    """RFC 6901 escaping for one path segment."""
    return segment.replace("~", "~0").replace("/", "~1")


def parse_patch_line(line: str) -> Optional[PatchOp]:
    """
    Parse one JSONL line into a PatchOp.
    Returns None for invalid JSON, non-object records or missing fields.
    """
    trimmed = line.strip()
    if not trimmed:
        return None
    try:
        op = PatchOp.model_validate_json(trimmed)
    except ValidationError:
        return None
    if op.op == "remove" and "value" in op.model_fields_set:
        return PatchOp.remove(op.path)
    return op


# --- path parsing -----------------------------------------------------------


@dataclass(frozen=True)
class ParsedPointer:
    segments: Tuple[str, ...] = ()
    rejected: bool = False
    reason: Optional[str] = None

    @property
    def is_document(self) -> bool:
        return not self.rejected and not self.segments


def parse_pointer(path: str) -> ParsedPointer:
    """
    Split a JSON Pointer into unescaped segments and vet it.

    "" and "/" address the whole document. The first segment must be one of
    the allowed namespaces and no segment may be a blocked identifier.
    """
    if path in ("", "/"):
        return ParsedPointer()
    raw = path[1:] if path.startswith("/") else path
    # RFC 6901: ~1 -> /, then ~0 -> ~
    segments = tuple(s.replace("~1", "/").replace("~0", "~") for s in raw.split("/"))

    blocked = BLOCKED_SEGMENTS.intersection(segments)
    if blocked:
        return ParsedPointer(segments, True, f"blocked-segment:{sorted(blocked)[0]}")
    if segments[0] not in ALLOWED_NAMESPACES:
        return ParsedPointer(segments, True, f"unknown-namespace:{segments[0]}")
    return ParsedPointer(segments)


# --- apply ------------------------------------------------------------------


def apply_patch(tree: UITree, patch: PatchOp) -> UITree:
    """
    Apply a single patch operation to a UITree.
    Returns a new tree; unaffected elements keep their identity.
    """
    pointer = parse_pointer(patch.path)
    if pointer.rejected:
        logger.debug(f"[Rfc6902] Ignoring {patch.op} {patch.path!r}: {pointer.reason}")
        return _copy(tree)

    segments = list(pointer.segments)
    if patch.op == "add":
        return _apply_add(tree, segments, patch.value)
    if patch.op == "replace":
        return _apply_replace(tree, segments, patch.value)
    return _apply_remove(tree, segments)


def apply_patches(tree: UITree, patches) -> UITree:
    for patch in patches:
        tree = apply_patch(tree, patch)
    return tree


def _copy(tree: UITree) -> UITree:
    return replace(tree)


def _apply_add(tree: UITree, segments: List[str], value: Any) -> UITree:
    if not segments:
        return _copy(tree)
    first, rest = segments[0], segments[1:]
    if first == "root":
        return _set_root(tree, rest, value)
    return _write_elements(tree, rest, value, _set_nested)


def _apply_replace(tree: UITree, segments: List[str], value: Any) -> UITree:
    if not segments:
        replacement = coerce_tree(value)
        if replacement is None:
            logger.debug("[Rfc6902] Ignoring document replace with non-tree value")
            return _copy(tree)
        return replacement
    first, rest = segments[0], segments[1:]
    if first == "root":
        return _set_root(tree, rest, value)
    return _write_elements(tree, rest, value, _replace_nested)


def _set_root(tree: UITree, rest: List[str], value: Any) -> UITree:
    if rest or not isinstance(value, str):
        return _copy(tree)
    return replace(tree, root=value)


def _write_elements(tree: UITree, segments: List[str], value: Any, writer) -> UITree:
    if not segments:
        if not isinstance(value, dict):
            return _copy(tree)
        return replace(tree, elements=dict(value))

    key, rest = segments[0], segments[1:]
    if not rest:
        if not isinstance(value, dict):
            return _copy(tree)
        return replace(tree, elements={**tree.elements, key: value})

    existing = tree.elements.get(key)
    if not isinstance(existing, dict):
        return _copy(tree)
    updated = writer(existing, rest, value)
    if updated is existing:
        return _copy(tree)
    return replace(tree, elements={**tree.elements, key: updated})


def _set_nested(obj: Dict[str, Any], segments: List[str], value: Any) -> Dict[str, Any]:
    """Immutably set a value at a nested path, honoring the /- append suffix."""
    head, tail = segments[0], segments[1:]

    if not tail:
        if head == APPEND_SEGMENT:
            return obj
        return {**obj, head: value}

    if tail == [APPEND_SEGMENT]:
        current = obj.get(head)
        items = current if isinstance(current, list) else []
        return {**obj, head: [*items, value]}

    current = obj.get(head)
    if not isinstance(current, dict):
        return obj
    updated = _set_nested(current, tail, value)
    if updated is current:
        return obj
    return {**obj, head: updated}


def _replace_nested(
    obj: Dict[str, Any], segments: List[str], value: Any
) -> Dict[str, Any]:
    head, tail = segments[0], segments[1:]
    if not tail:
        return {**obj, head: value}
    current = obj.get(head)
    if not isinstance(current, dict):
        return obj
    updated = _replace_nested(current, tail, value)
    if updated is current:
        return obj
    return {**obj, head: updated}


def _apply_remove(tree: UITree, segments: List[str]) -> UITree:
    if not segments:
        return UITree()
    first, rest = segments[0], segments[1:]
    if first == "root":
        if rest:
            return _copy(tree)
        return replace(tree, root="")

    if not rest:
        return replace(tree, elements={})
    key, nested = rest[0], rest[1:]
    if key not in tree.elements:
        return _copy(tree)
    if not nested:
        elements = {k: v for k, v in tree.elements.items() if k != key}
        return replace(tree, elements=elements)

    existing = tree.elements[key]
    if not isinstance(existing, dict):
        return _copy(tree)
    updated = _remove_nested(existing, nested)
    if updated is existing:
        return _copy(tree)
    return replace(tree, elements={**tree.elements, key: updated})


def _remove_nested(obj: Dict[str, Any], segments: List[str]) -> Dict[str, Any]:
    head, tail = segments[0], segments[1:]
    if not tail:
        if head not in obj:
            return obj
        return {k: v for k, v in obj.items() if k != head}
    current = obj.get(head)
    if not isinstance(current, dict):
        return obj
    updated = _remove_nested(current, tail)
    if updated is current:
        return obj
    return {**obj, head: updated}
