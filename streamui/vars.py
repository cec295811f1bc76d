import os

COUNTER_DISPLAY_KEY = os.getenv("STREAMUI_COUNTER_DISPLAY_KEY", "count-display")
# Element types whose runtime values are collected by submit_form
SUBMIT_FORM_FIELD_TYPES = [
    t.strip()
    for t in os.getenv(
        "STREAMUI_SUBMIT_FORM_FIELD_TYPES",
        "Input,Textarea,InputArea,Select,Checkbox,Switch,Radio",
    ).split(",")
    if t.strip()
]

ALLOWED_URL_SCHEMES = [
    s.strip().lower()
    for s in os.getenv("STREAMUI_ALLOWED_URL_SCHEMES", "http,https").split(",")
    if s.strip()
]
DEFAULT_EXTERNAL_TARGET = os.getenv("STREAMUI_DEFAULT_EXTERNAL_TARGET", "_blank")

ACTION_EVENT_NAME = os.getenv("STREAMUI_ACTION_EVENT_NAME", "kumo-action")
STRIP_LEADING_EMOJI = (
    os.getenv("STREAMUI_STRIP_LEADING_EMOJI", "true").lower() == "true"
)

SSE_DONE_MARKER = os.getenv("STREAMUI_SSE_DONE_MARKER", "[DONE]")
STREAM_ENDPOINT = os.getenv("STREAMUI_STREAM_ENDPOINT", "/api/chat")
MANIFEST_VERSION = os.getenv("STREAMUI_MANIFEST_VERSION", "1.0.0")
