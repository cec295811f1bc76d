"""
SSE envelopes relayed by a generating server.

Wire format (one frame per event):

    data: {"type": "text", "delta": "..."}     streamed text chunk
    data: {"type": "done"}                     stream complete
    data: {"type": "error", "message": "..."}  stream failure

Token payloads from OpenAI-compatible providers
(``{"choices": [{"delta": {"content": "..."}}]}``) and the legacy
``{"response": "..."}`` shape are also recognized by ``extract_text_token``.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncGenerator, Optional

from fastapi.responses import StreamingResponse

from streamui.utils.exception_logging import log_exception_with_details

logger = logging.getLogger("streamui")


class StreamEventType(str, Enum):
    TEXT = "text"
    DONE = "done"
    ERROR = "error"


@dataclass
class StreamEnvelope:
    type: StreamEventType
    delta: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        event = {"type": self.type.value}
        if self.delta is not None:
            event["delta"] = self.delta
        if self.message is not None:
            event["message"] = self.message
        return event

    def to_sse_string(self) -> str:
        """Convert the event to SSE wire format."""
        return f"data: {json.dumps(self.to_dict(), ensure_ascii=False)}\n\n"

    @classmethod
    def text_event(cls, delta: str) -> "StreamEnvelope":
        return cls(type=StreamEventType.TEXT, delta=delta)

    @classmethod
    def done_event(cls) -> "StreamEnvelope":
        return cls(type=StreamEventType.DONE)

    @classmethod
    def error_event(cls, message: str) -> "StreamEnvelope":
        return cls(type=StreamEventType.ERROR, message=message)

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["StreamEnvelope"]:
        """Decode a frame payload, or None if it is not an envelope."""
        if not isinstance(payload, dict):
            return None
        kind = payload.get("type")
        if kind == StreamEventType.TEXT.value and isinstance(payload.get("delta"), str):
            return cls.text_event(payload["delta"])
        if kind == StreamEventType.DONE.value:
            return cls.done_event()
        if kind == StreamEventType.ERROR.value:
            message = payload.get("message")
            return cls.error_event(message if isinstance(message, str) else "unknown error")
        return None


def _token(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return None


def extract_text_token(payload: Any) -> Optional[str]:
    """Pull a text token out of a provider-specific streaming payload."""
    if not isinstance(payload, dict):
        return None

    if "response" in payload:
        token = _token(payload["response"])
        if token is not None:
            return token

    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    if "text" in choice:
        token = _token(choice["text"])
        if token is not None:
            return token
    delta = choice.get("delta")
    if isinstance(delta, dict):
        for field in ("content", "text"):
            token = _token(delta.get(field))
            if token is not None:
                return token
    return None


async def relay_text_stream(
    deltas: AsyncGenerator[str, None],
) -> AsyncGenerator[str, None]:
    """
    Wrap a stream of generated text into envelope frames, ending with a
    ``done`` frame or an ``error`` frame if the source raises.
    """
    try:
        async for delta in deltas:
            if delta:
                yield StreamEnvelope.text_event(delta).to_sse_string()
    except Exception as e:
        log_exception_with_details(logger, "[StreamRelay] Source stream failed", e)
        yield StreamEnvelope.error_event(str(e)).to_sse_string()
        return
    yield StreamEnvelope.done_event().to_sse_string()


def create_patch_stream_response(
    deltas: AsyncGenerator[str, None],
) -> StreamingResponse:
    """
    Relay generated JSONL text to a browser or PatchStreamReader as envelope
    frames. Frames carry non-ASCII text unescaped, so the charset is explicit;
    proxies must neither buffer nor re-encode the stream.
    """
    return StreamingResponse(
        relay_text_stream(deltas),
        media_type="text/event-stream; charset=utf-8",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "X-Accel-Buffering": "no",
        },
    )
