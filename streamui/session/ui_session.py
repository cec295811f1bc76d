"""
UISession: per-surface state holder tying the streaming pipeline together.

One session owns the current UITree, its data model, the runtime value store
and the action bus for a single rendered surface. Hosts that render several
surfaces create one session each instead of keying global maps by id.

    session = UISession()
    session.subscribe_tree(render)

    reader = session.create_stream_reader()
    async with client.stream("POST", url, json=body) as response:
        await reader.consume_response(response, on_ops=session.apply_patches)

    session.handle_action(event, callbacks)
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from jsonschema import validate

from streamui.actions.action_bus import ActionBus
from streamui.actions.models import ActionEvent
from streamui.actions.registry import (
    SUBMIT_FORM_ACTION,
    ActionHandlerMap,
    create_handler_map,
    dispatch_action,
)
from streamui.actions.result_processor import (
    ActionResultCallbacks,
    process_action_result,
)
from streamui.sanitizers.text import sanitize_patch
from streamui.session.runtime_value_store import RuntimeValueStore
from streamui.sse.jsonl_parser import JsonlParser
from streamui.sse.stream_reader import PatchStreamReader
from streamui.tree.models import UI_TREE_SCHEMA, UITree
from streamui.tree.rfc6902 import PatchOp, apply_patch
from streamui.tree.tree_patches import (
    DataModel,
    UITreePatch,
    apply_data_patch,
    apply_tree_patch,
)
from streamui.utils.exception_logging import log_exception_with_details
from streamui.vars import STRIP_LEADING_EMOJI

logger = logging.getLogger("streamui")

TreeSubscriber = Callable[[UITree], Any]
ValuesSubscriber = Callable[[Dict[str, Any]], Any]


class UISession:
    def __init__(
        self,
        custom_handlers: Optional[ActionHandlerMap] = None,
        sanitize_text: bool = STRIP_LEADING_EMOJI,
    ):
        self.tree = UITree()
        self.data: DataModel = {}
        self.values = RuntimeValueStore()
        self.actions = ActionBus()
        self.custom_handlers = custom_handlers
        self.sanitize_text = sanitize_text
        self._tree_subscribers: List[TreeSubscriber] = []

    # --- tree state ---------------------------------------------------------

    def apply_patch(self, op: PatchOp) -> UITree:
        self._set_tree(apply_patch(self.tree, self._prepare(op)))
        return self.tree

    def apply_patches(self, ops: Iterable[PatchOp]) -> UITree:
        """Apply ops in order with a single subscriber notification."""
        ops = list(ops)
        if not ops:
            return self.tree
        tree = self.tree
        for op in ops:
            tree = apply_patch(tree, self._prepare(op))
        self._set_tree(tree)
        return self.tree

    def apply_tree_patch(self, patch: UITreePatch) -> UITree:
        """
        Apply a transactional patch to both the tree and the data model.
        Raises TreePatchError on an invariant violation; session state is
        only updated once both halves succeed.
        """
        tree = apply_tree_patch(self.tree, patch)
        data = apply_data_patch(self.data, patch)
        self.data = data
        self._set_tree(tree)
        return self.tree

    def replace_tree(self, tree: Any) -> UITree:
        """
        Replace the whole tree. Plain mappings are checked against the UITree
        JSON schema and raise jsonschema.ValidationError when malformed.
        """
        if not isinstance(tree, UITree):
            validate(instance=tree, schema=UI_TREE_SCHEMA)
            tree = UITree(root=tree["root"], elements=dict(tree["elements"]))
        self._set_tree(tree)
        return self.tree

    def reset(self) -> None:
        """Empty tree, data and runtime values. Subscribers stay registered."""
        self.data = {}
        self.values.clear()
        self._set_tree(UITree())

    def subscribe_tree(self, callback: TreeSubscriber) -> Callable[[], None]:
        self._tree_subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._tree_subscribers:
                self._tree_subscribers.remove(callback)

        return unsubscribe

    def subscribe_runtime_values(
        self, callback: ValuesSubscriber
    ) -> Callable[[], None]:
        """Call ``callback`` with the current values now and on every change."""

        def notify() -> None:
            callback(self.values.snapshot_all())

        notify()
        return self.values.subscribe(notify)

    # --- streaming ----------------------------------------------------------

    def create_parser(self) -> JsonlParser:
        return JsonlParser()

    def create_stream_reader(self, enable_tracing: bool = True) -> PatchStreamReader:
        return PatchStreamReader(enable_tracing=enable_tracing)

    # --- actions ------------------------------------------------------------

    def dispatch_action(
        self,
        event: ActionEvent,
        custom_handlers: Optional[ActionHandlerMap] = None,
    ):
        """
        Publish ``event`` on the action bus, then run its handler against the
        current tree. submit_form events without captured values get the
        session's touched-only runtime values attached.
        """
        event = self._with_runtime_values(event)
        self.actions.dispatch(event)

        handlers = create_handler_map(
            custom_handlers if custom_handlers is not None else self.custom_handlers
        )
        if event.action_name not in handlers:
            logger.debug(f"[UISession] No handler for action '{event.action_name}'")
            return None
        return dispatch_action(handlers, event, self.tree)

    def process_action_result(self, result: Any, callbacks: ActionResultCallbacks) -> None:
        process_action_result(result, callbacks)

    def handle_action(
        self,
        event: ActionEvent,
        callbacks: Optional[ActionResultCallbacks] = None,
        custom_handlers: Optional[ActionHandlerMap] = None,
    ):
        """
        Dispatch and process in one step. Patch results are applied to this
        session unless ``callbacks`` supplies its own ``apply_patches``;
        message results are dropped when no callbacks are given.
        """
        result = self.dispatch_action(event, custom_handlers)
        if result is None:
            return None
        if callbacks is None:
            callbacks = ActionResultCallbacks(apply_patches=self.apply_patches)
        elif callbacks.apply_patches is None:
            callbacks = replace(callbacks, apply_patches=self.apply_patches)
        self.process_action_result(result, callbacks)
        return result

    # --- internals ----------------------------------------------------------

    def _prepare(self, op: PatchOp) -> PatchOp:
        return sanitize_patch(op) if self.sanitize_text else op

    def _with_runtime_values(self, event: ActionEvent) -> ActionEvent:
        if event.action_name != SUBMIT_FORM_ACTION:
            return event
        context: Mapping[str, Any] = event.context or {}
        if "runtimeValues" in context:
            return event
        return event.with_context({**context, "runtimeValues": self.values.snapshot_touched()})

    def _set_tree(self, tree: UITree) -> None:
        self.tree = tree
        for callback in list(self._tree_subscribers):
            try:
                callback(tree)
            except Exception as e:
                log_exception_with_details(logger, "[UISession] Tree subscriber failed", e)

