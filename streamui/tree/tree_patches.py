"""
Named, transactional tree patches.

An alternative to the raw RFC 6902 surface for callers that need explicit
invariants and all-or-nothing batches. ``apply_tree_patch`` raises a
``TreePatchError`` subclass when an operation is inconsistent with the current
tree; the input tree is never mutated so a failed batch leaves the caller's
reference untouched.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Mapping, Set, Tuple, Union

from streamui.tree.models import (
    Element,
    UITree,
    element_children,
    element_parent_key,
)
from streamui.tree.rfc6902 import BLOCKED_SEGMENTS

logger = logging.getLogger("streamui")

DataModel = Dict[str, Any]


class TreePatchError(ValueError):
    """An operation that violates a structural invariant of the tree."""


class RootElementError(TreePatchError):
    pass


class MissingElementError(TreePatchError):
    pass


class ParentConflictError(TreePatchError):
    pass


# --- patch types ------------------------------------------------------------


@dataclass(frozen=True)
class UpsertElements:
    elements: Mapping[str, Element]


@dataclass(frozen=True)
class DeleteElements:
    keys: Tuple[str, ...]


@dataclass(frozen=True)
class AppendChildren:
    parent_key: str
    child_keys: Tuple[str, ...]


@dataclass(frozen=True)
class RemoveChildren:
    parent_key: str
    child_keys: Tuple[str, ...]


@dataclass(frozen=True)
class SetRoot:
    root: str


@dataclass(frozen=True)
class SetData:
    path: str
    value: Any


@dataclass(frozen=True)
class ReplaceData:
    data: DataModel


@dataclass(frozen=True)
class ReplaceTree:
    tree: UITree


@dataclass(frozen=True)
class Batch:
    patches: Tuple["UITreePatch", ...] = field(default_factory=tuple)


UITreePatch = Union[
    UpsertElements,
    DeleteElements,
    AppendChildren,
    RemoveChildren,
    SetRoot,
    SetData,
    ReplaceData,
    ReplaceTree,
    Batch,
]


# --- tree application -------------------------------------------------------


def apply_tree_patch(prev: UITree, patch: UITreePatch) -> UITree:
    """
    Apply one patch to a UITree, returning a new tree.

    Unchanged elements keep their identity and a patch that changes nothing
    returns ``prev`` itself. Data patches pass through.

    Raises:
        TreePatchError: on invariant violations (delete root, unknown parent,
            conflicting parent, set root to an unknown key).
    """
    if isinstance(patch, UpsertElements):
        return _upsert_elements(prev, patch.elements)
    if isinstance(patch, DeleteElements):
        return _delete_elements(prev, patch.keys)
    if isinstance(patch, AppendChildren):
        return _append_children(prev, patch.parent_key, patch.child_keys)
    if isinstance(patch, RemoveChildren):
        return _remove_children(prev, patch.parent_key, patch.child_keys)
    if isinstance(patch, SetRoot):
        return _set_root(prev, patch.root)
    if isinstance(patch, ReplaceTree):
        return patch.tree
    if isinstance(patch, Batch):
        return _apply_batch(prev, patch.patches)
    return prev


def _upsert_elements(prev: UITree, incoming: Mapping[str, Element]) -> UITree:
    if not incoming:
        return prev
    if all(prev.elements.get(key) is element for key, element in incoming.items()):
        return prev
    return replace(prev, elements={**prev.elements, **incoming})


def _delete_elements(prev: UITree, keys: Iterable[str]) -> UITree:
    keys = list(keys)
    if not keys:
        return prev
    for key in keys:
        if key == prev.root:
            raise RootElementError(f'Cannot delete root element "{key}"')

    to_delete: Set[str] = set()
    pending = list(keys)
    while pending:
        key = pending.pop()
        if key in to_delete:
            continue
        to_delete.add(key)
        pending.extend(element_children(prev.elements.get(key)))

    if not any(key in prev.elements for key in to_delete):
        return prev

    elements: Dict[str, Element] = {}
    for key, element in prev.elements.items():
        if key in to_delete:
            continue
        children = element_children(element)
        if any(child in to_delete for child in children):
            elements[key] = {
                **element,
                "children": [c for c in children if c not in to_delete],
            }
        else:
            elements[key] = element
    return replace(prev, elements=elements)


def _append_children(prev: UITree, parent_key: str, child_keys: Iterable[str]) -> UITree:
    child_keys = list(child_keys)
    if not child_keys:
        return prev

    parent = prev.get(parent_key)
    if parent is None:
        raise MissingElementError(f'Parent element "{parent_key}" not found')

    for child_key in child_keys:
        child = prev.get(child_key)
        if child is None:
            raise MissingElementError(f'Element "{child_key}" not found')
        owner = element_parent_key(child)
        if owner is not None and owner != parent_key:
            raise ParentConflictError(
                f'Element "{child_key}" already has parent "{owner}"'
            )

    # Re-appending under the same parent keeps duplicates.
    elements = {
        **prev.elements,
        parent_key: {
            **parent,
            "children": [*element_children(parent), *child_keys],
        },
    }
    for child_key in child_keys:
        child = elements[child_key]
        if element_parent_key(child) != parent_key:
            elements[child_key] = {**child, "parentKey": parent_key}
    return replace(prev, elements=elements)


def _remove_children(prev: UITree, parent_key: str, child_keys: Iterable[str]) -> UITree:
    to_remove = set(child_keys)
    if not to_remove:
        return prev

    parent = prev.get(parent_key)
    if parent is None:
        raise MissingElementError(f'Parent element "{parent_key}" not found')

    existing = element_children(parent)
    remaining = [c for c in existing if c not in to_remove]
    if len(remaining) == len(existing):
        return prev

    # Removed children stay in the map as orphans.
    return replace(
        prev,
        elements={**prev.elements, parent_key: {**parent, "children": remaining}},
    )


def _set_root(prev: UITree, root: str) -> UITree:
    if root == prev.root:
        return prev
    # Forward references are allowed while the tree is still empty.
    if prev.elements and root not in prev.elements:
        raise RootElementError(f'Cannot set root to nonexistent element "{root}"')
    return replace(prev, root=root)


def _apply_batch(prev: UITree, patches: Tuple[UITreePatch, ...]) -> UITree:
    if not patches:
        return prev
    current = prev
    for index, sub in enumerate(patches):
        try:
            current = apply_tree_patch(current, sub)
        except TreePatchError as e:
            logger.warning(
                f"[TreePatch] Batch aborted at patch {index} "
                f"({type(sub).__name__}): {e}"
            )
            raise
    return current


# --- data application -------------------------------------------------------


def apply_data_patch(prev: DataModel, patch: UITreePatch) -> DataModel:
    """Apply one patch to a data model. Tree patches pass through."""
    if isinstance(patch, SetData):
        return _set_data_at_path(prev, patch.path, patch.value)
    if isinstance(patch, ReplaceData):
        return patch.data
    if isinstance(patch, Batch):
        current = prev
        for sub in patch.patches:
            current = apply_data_patch(current, sub)
        return current
    return prev


def _set_data_at_path(prev: DataModel, path: str, value: Any) -> DataModel:
    raw = path[1:] if path.startswith("/") else path
    if raw == "":
        if isinstance(value, dict):
            return value
        return prev

    segments = raw.split("/")
    if BLOCKED_SEGMENTS.intersection(segments):
        logger.debug(f"[TreePatch] Ignoring setData on blocked path {path!r}")
        return prev

    result = dict(prev)
    current = result
    for segment in segments[:-1]:
        nested = current.get(segment)
        current[segment] = dict(nested) if isinstance(nested, dict) else {}
        current = current[segment]
    current[segments[-1]] = value
    return result
