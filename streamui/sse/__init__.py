from streamui.sse.envelope import (
    StreamEnvelope,
    StreamEventType,
    create_patch_stream_response,
    relay_text_stream,
)
from streamui.sse.frame_parser import SseFrameParser, parse_data_lines_json
from streamui.sse.jsonl_parser import JsonlParser
from streamui.sse.routes import create_stream_router
from streamui.sse.stream_reader import PatchStreamReader

__all__ = [
    "StreamEnvelope",
    "StreamEventType",
    "create_patch_stream_response",
    "relay_text_stream",
    "SseFrameParser",
    "parse_data_lines_json",
    "JsonlParser",
    "create_stream_router",
    "PatchStreamReader",
]
