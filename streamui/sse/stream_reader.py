"""
PatchStreamReader: turns a raw SSE byte/text stream into patch operations.

Pipeline: bytes -> incremental UTF-8 decode -> SseFrameParser -> envelope
decoding -> JsonlParser -> PatchOp.

Usage:
    reader = PatchStreamReader()

    # push-style, from any transport callback
    ops = reader.feed(chunk)
    ...
    ops = reader.close()

    # pull-style over an async iterator of chunks
    count = await reader.consume(source, on_ops=session.apply_patches)

    # directly from an httpx streaming response
    async with client.stream("POST", url, json=body) as response:
        await reader.consume_response(response, on_ops=session.apply_patches)
"""

import codecs
import logging
from typing import Any, AsyncIterator, Callable, List, Optional, Union

import httpx
from opentelemetry import trace

from streamui.sse.envelope import StreamEnvelope, StreamEventType, extract_text_token
from streamui.sse.frame_parser import SseFrameParser, parse_data_lines_json
from streamui.sse.jsonl_parser import JsonlParser
from streamui.tree.rfc6902 import PatchOp
from streamui.vars import SSE_DONE_MARKER

# NOTE: spans are started manually because an async-generator body may be
# resumed in a different context than the one that created it.

logger = logging.getLogger("streamui")
tracer = trace.get_tracer(__name__)

OpsCallback = Callable[[List[PatchOp]], Any]


class PatchStreamReader:
    def __init__(self, enable_tracing: bool = True):
        self.enable_tracing = enable_tracing
        self.records = JsonlParser()
        self.frames = SseFrameParser(self._on_frame)
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending: List[PatchOp] = []
        self.done = False
        self.error: Optional[str] = None
        self.frame_count = 0
        self.op_count = 0

    # --- push interface -----------------------------------------------------

    def feed(self, chunk: Union[str, bytes, bytearray]) -> List[PatchOp]:
        """Feed one transport chunk; returns the ops it completed."""
        if self.done:
            return []
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        if chunk:
            self.frames.push(chunk)
        return self._drain()

    def close(self) -> List[PatchOp]:
        """
        Flush both parsers. Call after the transport ends or is aborted so
        buffered content is parsed instead of lost.
        """
        if not self.done:
            tail = self._decoder.decode(b"", final=True)
            if tail:
                self.frames.push(tail)
            self.frames.flush()
            self._finish()
        return self._drain()

    # --- async interface ----------------------------------------------------

    async def iter_ops(self, source: AsyncIterator[Any]) -> AsyncIterator[PatchOp]:
        """
        Yield ops as chunks arrive. On normal completion the parsers are
        flushed; if the consumer stops early, ``close()`` returns whatever
        was still buffered.
        """
        span = tracer.start_span("stream_reader.iter_ops") if self.enable_tracing else None
        chunk_count = 0
        try:
            async for chunk in source:
                chunk_count += 1
                for op in self.feed(chunk):
                    yield op
                if self.done:
                    break
            for op in self.close():
                yield op
        except GeneratorExit:
            if span is not None:
                span.set_attribute("stream_reader.early_exit", True)
            raise
        finally:
            if span is not None:
                self._record(span, chunk_count)
                span.end()

    async def consume(
        self, source: AsyncIterator[Any], on_ops: OpsCallback
    ) -> int:
        """
        Drive ``source`` to completion, calling ``on_ops`` with each non-empty
        batch. The parsers are flushed even when the task is cancelled.
        Returns the number of ops delivered.
        """
        span = tracer.start_span("stream_reader.consume") if self.enable_tracing else None
        chunk_count = 0
        try:
            async for chunk in source:
                chunk_count += 1
                ops = self.feed(chunk)
                if ops:
                    on_ops(ops)
                if self.done:
                    break
        except BaseException:
            if span is not None:
                span.set_attribute("stream_reader.early_exit", True)
            raise
        finally:
            ops = self.close()
            if ops:
                on_ops(ops)
            if span is not None:
                self._record(span, chunk_count)
                span.end()
        return self.op_count

    async def consume_response(
        self, response: httpx.Response, on_ops: OpsCallback
    ) -> int:
        response.raise_for_status()
        return await self.consume(response.aiter_text(), on_ops)

    # --- internals ----------------------------------------------------------

    def _drain(self) -> List[PatchOp]:
        ops, self._pending = self._pending, []
        self.op_count += len(ops)
        return ops

    def _finish(self) -> None:
        self._pending.extend(self.records.flush())
        self.done = True

    def _record(self, span, chunk_count: int) -> None:
        span.set_attribute("stream_reader.chunks", chunk_count)
        span.set_attribute("stream_reader.frames", self.frame_count)
        span.set_attribute("stream_reader.ops", self.op_count)
        span.set_attribute("stream_reader.dropped_records", self.records.dropped)
        if self.error:
            span.set_attribute("stream_reader.error", self.error)

    def _on_frame(self, lines: List[str]) -> None:
        if self.done:
            return
        self.frame_count += 1
        raw = "\n".join(lines)
        if raw.strip() == SSE_DONE_MARKER:
            self._finish()
            return

        values = parse_data_lines_json(lines)
        payload = values[0] if len(values) == 1 else None

        envelope = StreamEnvelope.from_payload(payload)
        if envelope is not None:
            if envelope.type == StreamEventType.TEXT:
                self._pending.extend(self.records.push(envelope.delta))
            elif envelope.type == StreamEventType.ERROR:
                self.error = envelope.message
                logger.warning(f"[StreamReader] Stream reported error: {envelope.message}")
                self._finish()
            else:
                self._finish()
            return

        token = extract_text_token(payload)
        if token is not None:
            self._pending.extend(self.records.push(token))
            return

        # Anything else is treated as complete JSONL record text.
        self._pending.extend(self.records.push(raw + "\n"))
