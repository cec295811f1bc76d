"""
Streaming endpoint that relays a model's JSONL patch output as SSE.

The host supplies the generator; this module only owns the wire format:

    async def generate(body: dict):
        async for token in llm.stream(body["messages"]):
            yield token

    app.include_router(create_stream_router(generate))

Example with curl:
    curl -N -H "Content-Type: application/json" \\
         -d '{"messages": [{"role": "user", "content": "a counter"}]}' \\
         "http://localhost:8000/api/chat"
"""

import logging
from typing import Any, AsyncIterator, Callable, Dict, Optional

from fastapi import APIRouter, HTTPException, Request

from streamui.sse.envelope import create_patch_stream_response
from streamui.vars import STREAM_ENDPOINT

logger = logging.getLogger("streamui")

TextGenerator = Callable[[Dict[str, Any]], AsyncIterator[str]]


def create_stream_router(
    generate: TextGenerator, path: Optional[str] = None
) -> APIRouter:
    """
    Build a router serving ``POST path`` (default ``STREAMUI_STREAM_ENDPOINT``).
    The JSON request body is handed to ``generate``; its text deltas are
    streamed back as ``text``/``done``/``error`` envelope frames.
    """
    router = APIRouter()

    @router.post(path or STREAM_ENDPOINT)
    async def stream_patches(request: Request):
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Request body must be JSON")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Request body must be a JSON object")

        logger.info(f"[StreamRoute] Relaying generated patches for {request.url.path}")
        return create_patch_stream_response(generate(body))

    return router
