"""
Action handler registry: maps action names to handler functions.

Each handler receives an ActionEvent and the current UITree and returns an
ActionResult describing the effect, or None when it cannot process the
event (e.g. a missing target element). Custom handlers override built-ins
with the same name.

Built-ins:
    increment / decrement  counter manipulation via a replace patch
    submit_form            serialize form values into a message
    navigate               open a URL (external side effect)
"""

import json
import logging
import re
from typing import Any, Callable, Dict, Mapping, Optional, Set

from streamui.actions.models import (
    ActionEvent,
    ExternalResult,
    MessageResult,
    NoneResult,
    PatchResult,
    coerce_action_result,
)
from streamui.tree.models import (
    UITree,
    element_action_name,
    element_children,
    element_parent_key,
    element_props,
    element_type,
)
from streamui.tree.rfc6902 import PatchOp, escape_pointer_segment
from streamui.vars import COUNTER_DISPLAY_KEY, SUBMIT_FORM_FIELD_TYPES

logger = logging.getLogger("streamui")

ActionHandler = Callable[[ActionEvent, UITree], Optional[Any]]
ActionHandlerMap = Mapping[str, ActionHandler]

SUBMIT_FORM_ACTION = "submit_form"
# Scoping keys consumed by submit_form, never forwarded as params.
FORM_KEY_PARAM = "formKey"
FIELD_KEYS_PARAM = "fieldKeys"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# --- counter ----------------------------------------------------------------


def _counter_target(event: ActionEvent) -> str:
    target = (event.params or {}).get("target")
    return target if isinstance(target, str) and target else COUNTER_DISPLAY_KEY


def _read_counter_value(tree: UITree, key: str) -> Optional[int]:
    """
    Current integer shown by the display element, 0 for non-numeric text.
    None when the element does not exist.
    """
    element = tree.get(key)
    if element is None:
        return None
    children = element_props(element).get("children")
    if isinstance(children, bool):
        text = "0"
    elif isinstance(children, (str, int, float)):
        text = str(children)
    else:
        text = "0"
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _counter_patch(key: str, value: int) -> PatchResult:
    path = f"/elements/{escape_pointer_segment(key)}/props/children"
    return PatchResult(patches=[PatchOp.replace(path, str(value))])


def handle_increment(event: ActionEvent, tree: UITree):
    key = _counter_target(event)
    current = _read_counter_value(tree, key)
    if current is None:
        return None
    return _counter_patch(key, current + 1)


def handle_decrement(event: ActionEvent, tree: UITree):
    key = _counter_target(event)
    current = _read_counter_value(tree, key)
    if current is None:
        return None
    return _counter_patch(key, current - 1)


# --- submit_form ------------------------------------------------------------


def _count_submit_actions(tree: UITree) -> int:
    return sum(
        1
        for element in tree.elements.values()
        if element_action_name(element) == SUBMIT_FORM_ACTION
    )


def _descendants(tree: UITree, root_key: str) -> Set[str]:
    """Keys below ``root_key``, via children links or parentKey chains."""
    found: Set[str] = set()
    pending = list(element_children(tree.get(root_key)))
    while pending:
        key = pending.pop()
        if key in found or key == root_key:
            continue
        found.add(key)
        pending.extend(element_children(tree.get(key)))

    for key, element in tree.elements.items():
        if key in found:
            continue
        seen = {key}
        parent = element_parent_key(element)
        while parent is not None and parent not in seen:
            if parent == root_key:
                found.add(key)
                break
            seen.add(parent)
            parent = element_parent_key(tree.get(parent))
    return found


def _is_field(tree: UITree, key: str) -> bool:
    return element_type(tree.get(key)) in SUBMIT_FORM_FIELD_TYPES


def handle_submit_form(event: ActionEvent, tree: UITree):
    """
    Merge static params with runtime-captured field values into a message.

    Runtime values come from ``context["runtimeValues"]`` and are kept only
    for field-like elements present in the tree, optionally scoped by
    ``params.formKey`` (descendants of that element) or ``params.fieldKeys``
    (exact keys). With several submit_form actions in the tree and no scope
    the handler refuses to guess and returns a NoneResult.
    """
    params: Dict[str, Any] = dict(event.params or {})
    form_key = params.pop(FORM_KEY_PARAM, None)
    field_keys = params.pop(FIELD_KEYS_PARAM, None)
    if not (isinstance(form_key, str) and form_key):
        form_key = None
    if isinstance(field_keys, list):
        field_keys = {k for k in field_keys if isinstance(k, str)}
    else:
        field_keys = None

    if form_key is None and field_keys is None and _count_submit_actions(tree) > 1:
        logger.warning(
            f"[ActionRegistry] submit_form from '{event.source_key}' is ambiguous: "
            f"multiple submit_form actions and no formKey/fieldKeys; ignoring"
        )
        return NoneResult()

    context = event.context or {}
    runtime_values = context.get("runtimeValues")
    if not isinstance(runtime_values, dict):
        runtime_values = {}

    if not params and not runtime_values:
        return NoneResult()

    allowed = _descendants(tree, form_key) if form_key is not None else field_keys
    fields = {
        key: value
        for key, value in runtime_values.items()
        if value is not None
        and _is_field(tree, key)
        and (allowed is None or key in allowed)
    }

    payload = {
        "actionName": event.action_name,
        "sourceKey": event.source_key,
        "params": params,
        "fields": fields,
    }
    content = json.dumps(
        payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )
    return MessageResult(content=content, payload=payload)


# --- navigate ---------------------------------------------------------------


def handle_navigate(event: ActionEvent, tree: UITree):
    params = event.params or {}
    url = params.get("url")
    if not isinstance(url, str) or not url:
        return None
    target = params.get("target")
    return ExternalResult(url=url, target=target if isinstance(target, str) else None)


# --- registry ---------------------------------------------------------------

BUILTIN_HANDLERS: Mapping[str, ActionHandler] = {
    "increment": handle_increment,
    "decrement": handle_decrement,
    SUBMIT_FORM_ACTION: handle_submit_form,
    "navigate": handle_navigate,
}


def create_handler_map(custom: Optional[ActionHandlerMap] = None) -> ActionHandlerMap:
    """Built-in handlers merged with ``custom``; custom wins on name clashes."""
    if custom is None:
        return BUILTIN_HANDLERS
    return {**BUILTIN_HANDLERS, **custom}


def dispatch_action(handlers: ActionHandlerMap, event: ActionEvent, tree: UITree):
    """
    Run the handler registered for ``event.action_name``.

    Returns the handler's ActionResult, or None when no handler is registered
    or the handler declined the event.
    """
    handler = handlers.get(event.action_name)
    if handler is None:
        return None
    result = handler(event, tree)
    if result is None:
        return None
    return coerce_action_result(result)
