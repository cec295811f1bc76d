from streamui.actions.action_bus import ActionBus
from streamui.actions.action_handler import create_action_handler, create_click_handler
from streamui.actions.models import (
    ActionDecl,
    ActionEvent,
    ActionResult,
    ExternalResult,
    MessageResult,
    NoneResult,
    PatchResult,
)
from streamui.actions.registry import (
    BUILTIN_HANDLERS,
    create_handler_map,
    dispatch_action,
)
from streamui.actions.result_processor import (
    ActionResultCallbacks,
    process_action_result,
)

__all__ = [
    "ActionBus",
    "create_action_handler",
    "create_click_handler",
    "ActionDecl",
    "ActionEvent",
    "ActionResult",
    "ExternalResult",
    "MessageResult",
    "NoneResult",
    "PatchResult",
    "BUILTIN_HANDLERS",
    "create_handler_map",
    "dispatch_action",
    "ActionResultCallbacks",
    "process_action_result",
]
