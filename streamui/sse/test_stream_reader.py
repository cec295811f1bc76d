import asyncio
import json
import logging

import httpx
import pytest

from streamui.sse.envelope import StreamEnvelope
from streamui.sse.stream_reader import PatchStreamReader
from streamui.tree.rfc6902 import PatchOp

OPS = [
    PatchOp.add("/root", "card"),
    PatchOp.add("/elements/card", {"key": "card", "type": "Surface", "props": {"title": "Café ☕"}}),
    PatchOp.replace("/elements/card/props/title", "Menü"),
]
JSONL = "".join(op.to_line() + "\n" for op in OPS)


def envelope_stream(text: str, size: int) -> str:
    frames = [
        StreamEnvelope.text_event(text[i : i + size]).to_sse_string()
        for i in range(0, len(text), size)
    ]
    frames.append(StreamEnvelope.done_event().to_sse_string())
    return "".join(frames)


async def chunks(data, size):
    for i in range(0, len(data), size):
        yield data[i : i + size]


class TestFeed:
    @pytest.mark.parametrize("delta_size,chunk_size", [(1, 1), (5, 3), (10, 7), (64, 50)])
    def test_envelope_stream_any_split(self, delta_size, chunk_size):
        wire = envelope_stream(JSONL, delta_size)
        reader = PatchStreamReader(enable_tracing=False)
        ops = []
        for i in range(0, len(wire), chunk_size):
            ops.extend(reader.feed(wire[i : i + chunk_size]))
        ops.extend(reader.close())
        assert ops == OPS
        assert reader.done

    def test_bytes_split_inside_multibyte_character(self):
        wire = envelope_stream(JSONL, 8).encode("utf-8")
        reader = PatchStreamReader(enable_tracing=False)
        ops = []
        for i in range(len(wire)):
            ops.extend(reader.feed(wire[i : i + 1]))
        ops.extend(reader.close())
        assert ops == OPS

    def test_raw_jsonl_frames(self):
        wire = "".join(f"data: {op.to_line()}\n\n" for op in OPS)
        reader = PatchStreamReader(enable_tracing=False)
        assert reader.feed(wire) == OPS

    def test_openai_style_tokens(self):
        wire = "".join(
            "data: " + json.dumps({"choices": [{"delta": {"content": JSONL[i : i + 9]}}]}) + "\n\n"
            for i in range(0, len(JSONL), 9)
        )
        reader = PatchStreamReader(enable_tracing=False)
        assert reader.feed(wire + "data: [DONE]\n\n") == OPS

    def test_done_marker_stops_reading(self):
        reader = PatchStreamReader(enable_tracing=False)
        ops = reader.feed(f"data: {OPS[0].to_line()}\n\ndata: [DONE]\n\n")
        assert ops == [OPS[0]]
        assert reader.done
        assert reader.feed(f"data: {OPS[1].to_line()}\n\n") == []

    def test_done_flushes_unterminated_record(self):
        reader = PatchStreamReader(enable_tracing=False)
        wire = (
            StreamEnvelope.text_event(OPS[0].to_line()).to_sse_string()
            + StreamEnvelope.done_event().to_sse_string()
        )
        assert reader.feed(wire) == [OPS[0]]

    def test_error_envelope_is_logged_and_ends_stream(self, caplog):
        reader = PatchStreamReader(enable_tracing=False)
        with caplog.at_level(logging.WARNING, logger="streamui"):
            reader.feed(StreamEnvelope.error_event("rate limited").to_sse_string())
        assert reader.done
        assert reader.error == "rate limited"
        assert "rate limited" in caplog.text

    def test_close_without_terminator(self):
        reader = PatchStreamReader(enable_tracing=False)
        assert reader.feed(StreamEnvelope.text_event(OPS[0].to_line()).to_sse_string()) == []
        assert reader.close() == [OPS[0]]
        assert reader.close() == []


@pytest.mark.asyncio
class TestAsync:
    async def test_consume_delivers_batches(self):
        wire = envelope_stream(JSONL, 7)
        batches = []
        reader = PatchStreamReader()
        count = await reader.consume(chunks(wire, 11), batches.append)
        assert [op for batch in batches for op in batch] == OPS
        assert all(batches)
        assert count == len(OPS)

    async def test_consume_flushes_on_cancel(self):
        started = asyncio.Event()

        async def source():
            yield StreamEnvelope.text_event(OPS[0].to_line()).to_sse_string()
            started.set()
            await asyncio.sleep(10)
            yield "never"

        received = []
        reader = PatchStreamReader()
        task = asyncio.create_task(reader.consume(source(), received.extend))
        await started.wait()
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert received == [OPS[0]]

    async def test_iter_ops(self):
        reader = PatchStreamReader()
        ops = [op async for op in reader.iter_ops(chunks(envelope_stream(JSONL, 4), 13))]
        assert ops == OPS

    async def test_consume_response(self):
        wire = envelope_stream(JSONL, 16).encode("utf-8")

        def handler(request):
            return httpx.Response(
                200,
                content=wire,
                headers={"content-type": "text/event-stream; charset=utf-8"},
            )

        transport = httpx.MockTransport(handler)
        received = []
        async with httpx.AsyncClient(transport=transport) as client:
            async with client.stream("POST", "http://test/api/chat") as response:
                await PatchStreamReader().consume_response(response, received.extend)
        assert received == OPS

    async def test_consume_response_raises_on_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        async with httpx.AsyncClient(transport=transport) as client:
            async with client.stream("POST", "http://test/api/chat") as response:
                with pytest.raises(httpx.HTTPStatusError):
                    await PatchStreamReader().consume_response(response, print)
