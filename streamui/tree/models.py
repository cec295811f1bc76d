"""
Tree value types.

A ``UITree`` is an immutable value: ``root`` names the top element and
``elements`` maps element keys to plain JSON objects. Elements are kept as
dicts so that JSON Pointer paths can reach any nested field; the accessors
below decode a single field at the point of use and fall back to a safe
default when the untrusted payload holds the wrong type.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from jsonschema import Draft202012Validator

JsonValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]
Element = Dict[str, Any]


@dataclass(frozen=True)
class UITree:
    """
    Attributes:
        root: Key of the root element, "" while nothing is renderable yet.
        elements: Element key -> element object. Treat as read-only; every
            patch produces a new mapping and shares untouched element dicts.
    """

    root: str = ""
    elements: Mapping[str, Element] = field(default_factory=dict)

    @property
    def is_renderable(self) -> bool:
        return bool(self.root) and bool(self.elements)

    def get(self, key: str) -> Optional[Element]:
        element = self.elements.get(key)
        return element if isinstance(element, dict) else None

    def to_dict(self) -> Dict[str, Any]:
        return {"root": self.root, "elements": dict(self.elements)}


EMPTY_TREE = UITree(root="", elements=MappingProxyType({}))


# --- element field accessors ------------------------------------------------


def element_type(element: Optional[Element]) -> Optional[str]:
    if not isinstance(element, dict):
        return None
    value = element.get("type")
    return value if isinstance(value, str) else None


def element_props(element: Optional[Element]) -> Dict[str, Any]:
    if not isinstance(element, dict):
        return {}
    props = element.get("props")
    return props if isinstance(props, dict) else {}


def element_children(element: Optional[Element]) -> List[str]:
    if not isinstance(element, dict):
        return []
    children = element.get("children")
    if not isinstance(children, list):
        return []
    return [c for c in children if isinstance(c, str)]


def element_parent_key(element: Optional[Element]) -> Optional[str]:
    if not isinstance(element, dict):
        return None
    parent = element.get("parentKey")
    return parent if isinstance(parent, str) else None


def element_action_name(element: Optional[Element]) -> Optional[str]:
    if not isinstance(element, dict):
        return None
    action = element.get("action")
    if not isinstance(action, dict):
        return None
    name = action.get("name")
    return name if isinstance(name, str) else None


# --- shape validation -------------------------------------------------------

UI_TREE_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["root", "elements"],
    "properties": {
        "root": {"type": "string"},
        "elements": {
            "type": "object",
            "additionalProperties": {"type": "object"},
        },
    },
}

_tree_validator = Draft202012Validator(UI_TREE_SCHEMA)


def is_ui_tree_shape(value: Any) -> bool:
    return _tree_validator.is_valid(value)


def coerce_tree(value: Any) -> Optional[UITree]:
    """Build a UITree from a tree-shaped mapping, or None if it is not one."""
    if isinstance(value, UITree):
        return value
    if not is_ui_tree_shape(value):
        return None
    return UITree(root=value["root"], elements=dict(value["elements"]))
