"""Generative UI capabilities manifest.

Describes what a client of the streaming endpoint can rely on: the wire
format, the action event it emits, built-in actions, submit_form defaults,
URL policy and supported patch operations.

Endpoints
---------
GET  /.well-known/generative-ui.json
"""

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from streamui.actions.registry import (
    BUILTIN_HANDLERS,
    FIELD_KEYS_PARAM,
    FORM_KEY_PARAM,
)
from streamui.vars import (
    ACTION_EVENT_NAME,
    ALLOWED_URL_SCHEMES,
    MANIFEST_VERSION,
    STREAM_ENDPOINT,
    SUBMIT_FORM_FIELD_TYPES,
)

logger = logging.getLogger("streamui")

router = APIRouter()


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class StreamingInfo(_CamelModel):
    endpoint: str
    format: Literal["sse"] = "sse"
    wire_format: Literal["jsonl"] = Field("jsonl", alias="wireFormat")
    patch_format: Literal["rfc6902"] = Field("rfc6902", alias="patchFormat")


class ActionsInfo(_CamelModel):
    emitted_event: str = Field(alias="emittedEvent")
    builtins: List[str]


class SubmitFormDefaults(_CamelModel):
    include: Literal["touched-only"] = "touched-only"
    field_types: List[str] = Field(alias="fieldTypes")


class SubmitFormScoping(_CamelModel):
    by_form_key: str = Field(alias="byFormKey")
    by_field_keys: str = Field(alias="byFieldKeys")


class SubmitFormGuardrails(_CamelModel):
    ambiguous_multiple_submit: Literal["none"] = Field(
        "none", alias="ambiguousMultipleSubmit"
    )


class SubmitFormInfo(_CamelModel):
    defaults: SubmitFormDefaults
    scoping: SubmitFormScoping
    guardrails: SubmitFormGuardrails = SubmitFormGuardrails()


class UrlPolicyInfo(_CamelModel):
    allowed: List[str]
    blocked: List[str]
    notes: str


class PatchInfo(_CamelModel):
    standard: Literal["rfc6902"] = "rfc6902"
    ops: List[Literal["add", "replace", "remove"]] = ["add", "replace", "remove"]
    append_with_dash: str = Field(alias="appendWithDash")


class Capabilities(_CamelModel):
    actions: ActionsInfo
    submit_form: SubmitFormInfo = Field(alias="submitForm")
    url_policy: UrlPolicyInfo = Field(alias="urlPolicy")
    patch: PatchInfo


class GenerativeUIManifest(_CamelModel):
    version: str
    streaming: StreamingInfo
    capabilities: Capabilities

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def build_generative_ui_manifest(
    endpoint: Optional[str] = None, version: Optional[str] = None
) -> GenerativeUIManifest:
    """Build the manifest from the current configuration. Deterministic."""
    return GenerativeUIManifest(
        version=version or MANIFEST_VERSION,
        streaming=StreamingInfo(endpoint=endpoint or STREAM_ENDPOINT),
        capabilities=Capabilities(
            actions=ActionsInfo(
                emitted_event=ACTION_EVENT_NAME,
                builtins=list(BUILTIN_HANDLERS),
            ),
            submit_form=SubmitFormInfo(
                defaults=SubmitFormDefaults(field_types=list(SUBMIT_FORM_FIELD_TYPES)),
                scoping=SubmitFormScoping(
                    by_form_key=(
                        f"If params.{FORM_KEY_PARAM} is set, include only descendant "
                        "element keys under that subtree."
                    ),
                    by_field_keys=(
                        f"If params.{FIELD_KEYS_PARAM} is set, include only those element keys."
                    ),
                ),
            ),
            url_policy=UrlPolicyInfo(
                allowed=[*ALLOWED_URL_SCHEMES, "relative"],
                blocked=["javascript", "data", "file", "protocol-relative"],
                notes=(
                    "navigate actions are sanitized; blocked URLs do not trigger "
                    "navigation and are logged."
                ),
            ),
            patch=PatchInfo(
                append_with_dash=(
                    "Using '/-' at the end of a path appends to an array "
                    "(e.g. /elements/{key}/children/-)."
                ),
            ),
        ),
    )


@router.get("/.well-known/generative-ui.json")
async def get_generative_ui_manifest():
    """Return the capabilities manifest for streaming UI clients."""
    manifest = build_generative_ui_manifest()
    logger.debug(f"[Manifest] Serving generative UI manifest v{manifest.version}")
    return JSONResponse(
        content=manifest.to_json_dict(),
        headers={"Cache-Control": "public, max-age=3600"},
    )
