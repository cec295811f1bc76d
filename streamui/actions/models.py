"""
Action events and results.

An ``ActionEvent`` is produced by the rendering layer when a user interacts
with an element that declares an ``action``. Handlers answer with one of the
``ActionResult`` variants, discriminated on ``type``.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from streamui.tree.rfc6902 import PatchOp


class ActionDecl(BaseModel):
    """The ``action`` field of an element."""

    model_config = ConfigDict(frozen=True)

    name: str
    params: Optional[Dict[str, Any]] = None


class ActionEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action_name: str = Field(alias="actionName")
    source_key: str = Field(alias="sourceKey")
    params: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire shape, omitting absent params/context."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def with_context(self, context: Dict[str, Any]) -> "ActionEvent":
        return self.model_copy(update={"context": context})


class PatchResult(BaseModel):
    type: Literal["patch"] = "patch"
    patches: List[PatchOp]


class MessageResult(BaseModel):
    type: Literal["message"] = "message"
    content: str
    payload: Optional[Dict[str, Any]] = None


class ExternalResult(BaseModel):
    type: Literal["external"] = "external"
    url: str
    target: Optional[str] = None


class NoneResult(BaseModel):
    type: Literal["none"] = "none"


ActionResult = Annotated[
    Union[PatchResult, MessageResult, ExternalResult, NoneResult],
    Field(discriminator="type"),
]

ACTION_RESULT_ADAPTER = TypeAdapter(ActionResult)


def coerce_action_result(value: Any):
    """Validate a handler's return value (model or plain dict) into a result."""
    if isinstance(value, (PatchResult, MessageResult, ExternalResult, NoneResult)):
        return value
    return ACTION_RESULT_ADAPTER.validate_python(value)
