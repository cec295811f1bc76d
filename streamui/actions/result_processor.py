"""
ActionResult processor: maps registry results to host side effects.

    patch    -> apply_patches(result.patches)
    message  -> send_message(result.content)
    external -> open_external(url, target or "_blank"), only if the URL policy allows it
    none     -> nothing
"""

import logging
import webbrowser
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from streamui.actions.models import (
    ExternalResult,
    MessageResult,
    PatchResult,
    coerce_action_result,
)
from streamui.sanitizers.url_policy import sanitize_url
from streamui.tree.rfc6902 import PatchOp
from streamui.vars import DEFAULT_EXTERNAL_TARGET

logger = logging.getLogger("streamui")


def default_open_external(url: str, target: str) -> None:
    """Open in the same window for ``_self``, otherwise in a new tab."""
    webbrowser.open(url, new=0 if target == "_self" else 2)


@dataclass
class ActionResultCallbacks:
    apply_patches: Optional[Callable[[List[PatchOp]], Any]] = None
    send_message: Optional[Callable[[str], Any]] = None
    open_external: Optional[Callable[[str, str], Any]] = None


def process_action_result(result: Any, callbacks: ActionResultCallbacks) -> None:
    result = coerce_action_result(result)

    if isinstance(result, PatchResult):
        if callbacks.apply_patches is None:
            logger.debug("[ActionResult] No apply_patches callback; dropping patch result")
            return
        callbacks.apply_patches(result.patches)
    elif isinstance(result, MessageResult):
        if callbacks.send_message is None:
            logger.debug("[ActionResult] No send_message callback; dropping message")
            return
        callbacks.send_message(result.content)
    elif isinstance(result, ExternalResult):
        decision = sanitize_url(result.url)
        if not decision.ok:
            logger.warning(
                f"[ActionResult] Blocked external URL ({decision.reason}): {result.url}"
            )
            return
        opener = callbacks.open_external or default_open_external
        opener(decision.url, result.target or DEFAULT_EXTERNAL_TARGET)
