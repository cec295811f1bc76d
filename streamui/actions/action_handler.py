"""
Factories that bind an element's ``action`` declaration to a dispatch
callback.

Flow:
    element["action"] -> create_action_handler(action, source_key, dispatch)
        -> widget calls handler(context) -> dispatch(ActionEvent)
"""

from typing import Any, Callable, Dict, Optional, Union

from streamui.actions.models import ActionDecl, ActionEvent

ActionDispatch = Callable[[ActionEvent], Any]


def _decl(action: Union[ActionDecl, Dict[str, Any]]) -> ActionDecl:
    if isinstance(action, ActionDecl):
        return action
    return ActionDecl.model_validate(action)


def create_action_handler(
    action: Union[ActionDecl, Dict[str, Any]],
    source_key: str,
    dispatch: ActionDispatch,
) -> Callable[..., None]:
    """
    Return ``handler(context=None)`` that builds a well-formed ActionEvent
    for ``source_key`` and passes it to ``dispatch`` on every call.
    """
    decl = _decl(action)

    def handler(context: Optional[Dict[str, Any]] = None) -> None:
        dispatch(
            ActionEvent(
                action_name=decl.name,
                source_key=source_key,
                params=decl.params,
                context=context,
            )
        )

    return handler


def create_click_handler(
    action: Union[ActionDecl, Dict[str, Any]],
    source_key: str,
    dispatch: ActionDispatch,
    existing_on_click: Any = None,
) -> Callable[..., None]:
    """
    Click variant for widgets without an action callback. Accepts any
    arguments, runs ``existing_on_click`` first when it is callable, then
    dispatches the event without context.
    """
    decl = _decl(action)

    def on_click(*args, **kwargs) -> None:
        if callable(existing_on_click):
            existing_on_click(*args, **kwargs)
        dispatch(
            ActionEvent(action_name=decl.name, source_key=source_key, params=decl.params)
        )

    return on_click
