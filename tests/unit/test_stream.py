"""Unit tests for SSE frame decoding."""

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_check as check

from cortex_chat.api.errors import StreamRequestError
from cortex_chat.api.stream import FrameDecoder, decode_events, open_event_stream, parse_frame
from cortex_chat.models.schemas import ContentEvent


async def blocks_of(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


async def collect(chunks: list[bytes], carry_partial_frames: bool = True) -> list[str]:
    return [
        event.text
        async for event in decode_events(blocks_of(*chunks), carry_partial_frames)
    ]


class TrackingStream(httpx.AsyncByteStream):
    """Response body that records how often it was closed."""

    def __init__(self, chunks: list[bytes]) -> None:
        self.chunks = chunks
        self.close_count = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            yield chunk

    async def aclose(self) -> None:
        self.close_count += 1


def client_for(status: int, stream: TrackingStream) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, stream=stream)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")


class TestParseFrame:
    """Tests for single frame recognition."""

    @pytest.mark.parametrize(
        "frame, expected",
        [
            ("data: hello", "hello"),
            ("data:   padded text  ", "padded text"),
            ("data: [DONE]", None),
            ("data: ", None),
            ("data:    ", None),
            ("event: ping", None),
            ("hello", None),
            ("data:no-space", None),
            ("", None),
        ],
    )
    def test_frame_recognition(self, frame: str, expected: str | None) -> None:
        """Only non-empty, non-sentinel ``data: `` frames produce events."""
        event = parse_frame(frame)

        if expected is None:
            assert event is None
        else:
            assert event == ContentEvent(text=expected)


class TestFrameDecoder:
    """Tests for incremental decoding across reads."""

    def test_multiple_frames_in_one_read(self) -> None:
        """Every complete frame in a read yields its own event."""
        decoder = FrameDecoder()

        events = decoder.feed(b"data: one\n\ndata: two\n\n: comment\n\ndata: [DONE]\n\n")

        assert [e.text for e in events] == ["one", "two"]

    def test_split_multibyte_character_is_reassembled(self) -> None:
        """UTF-8 sequences split across reads decode correctly."""
        decoder = FrameDecoder()
        encoded = "data: café\n\n".encode()
        split_at = encoded.index("é".encode()) + 1

        first = decoder.feed(encoded[:split_at])
        second = decoder.feed(encoded[split_at:])

        check.equal(first, [])
        check.equal([e.text for e in second], ["café"])

    def test_carry_mode_flushes_unterminated_final_frame(self) -> None:
        """A last frame cut off by connection close is still delivered."""
        decoder = FrameDecoder(carry_partial_frames=True)

        check.equal(decoder.feed(b"data: tail"), [])
        check.equal([e.text for e in decoder.finish()], ["tail"])

    def test_compat_mode_drops_unterminated_tail(self) -> None:
        """Without carrying, text after the last delimiter is discarded."""
        decoder = FrameDecoder(carry_partial_frames=False)

        check.equal([e.text for e in decoder.feed(b"data: a\n\ndata: b")], ["a"])
        check.equal(decoder.finish(), [])


class TestDelimiterSplitAcrossReads:
    """The ``data: Hel`` / ``lo\\n\\ndata: [DONE]\\n\\n`` scenario in both modes."""

    CHUNKS = [b"data: Hel", b"lo\n\ndata: [DONE]\n\n"]

    async def test_carry_mode_yields_single_joined_event(self) -> None:
        """Frames straddling two reads are reassembled."""
        assert await collect(self.CHUNKS, carry_partial_frames=True) == ["Hello"]

    async def test_compat_mode_yields_nothing(self) -> None:
        """Per-read splitting loses the straddling frame entirely."""
        assert await collect(self.CHUNKS, carry_partial_frames=False) == []


class TestDecodeEvents:
    """Tests for the lazy async event sequence."""

    async def test_frames_without_prefix_are_ignored(self) -> None:
        """Unrecognised frames produce no events and never raise."""
        texts = await collect([b"id: 1\n\n", b"garbage\n\n", b"data: kept\n\n"])

        assert texts == ["kept"]

    async def test_done_sentinel_yields_nothing(self) -> None:
        """The sentinel frame is consumed silently."""
        texts = await collect([b"data: a\n\n", b"data: [DONE]\n\n"])

        assert texts == ["a"]

    async def test_empty_stream(self) -> None:
        """A body with no bytes ends without events."""
        assert await collect([]) == []


class TestOpenEventStream:
    """Tests for request setup and resource release."""

    async def test_yields_events_and_closes_response(self) -> None:
        """A full iteration yields every fragment and closes the body once."""
        stream = TrackingStream([b"data: Hello\n\n", b"data: world\n\n", b"data: [DONE]\n\n"])

        async with client_for(200, stream) as client:
            async with open_event_stream(client, "/chat/stream_chat", {"user_prompt": "hi"}) as events:
                texts = [event.text async for event in events]

        check.equal(texts, ["Hello", "world"])
        check.equal(stream.close_count, 1)

    async def test_early_abandonment_still_closes_once(self) -> None:
        """Breaking out after the first event releases the response exactly once."""
        stream = TrackingStream([b"data: first\n\n", b"data: second\n\n"])

        async with client_for(200, stream) as client:
            async with open_event_stream(client, "/chat/stream_chat", {}) as events:
                async for event in events:
                    first = event.text
                    break

        check.equal(first, "first")
        check.equal(stream.close_count, 1)

    async def test_error_inside_consumer_closes_response(self) -> None:
        """An exception raised by the consumer still releases the response."""
        stream = TrackingStream([b"data: first\n\n"])

        async with client_for(200, stream) as client:
            with pytest.raises(RuntimeError):
                async with open_event_stream(client, "/chat/stream_chat", {}) as events:
                    async for _ in events:
                        raise RuntimeError("consumer failed")

        assert stream.close_count == 1

    async def test_non_success_status_fails_before_yielding(self) -> None:
        """HTTP 500 raises StreamRequestError on entry; no frame is read."""
        stream = TrackingStream([b'{"detail": "boom"}'])
        entered = False

        async with client_for(500, stream) as client:
            with pytest.raises(StreamRequestError) as exc_info:
                async with open_event_stream(client, "/chat/stream_chat", {}):
                    entered = True

        check.is_false(entered)
        check.equal(exc_info.value.status_code, 500)
        check.equal(stream.close_count, 1)
