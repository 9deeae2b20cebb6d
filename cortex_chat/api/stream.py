"""SSE frame decoding for the streaming chat endpoint.

The backend emits one ``data: <text>\\n\\n`` frame per completion fragment
and ends with ``data: [DONE]\\n\\n`` or by closing the connection.

Frames split across two network reads are reassembled when
``carry_partial_frames`` is enabled (the default). With it disabled every
read is split on its own and any un-terminated tail is dropped, which
matches older clients that decoded each read independently.
"""

import codecs
import logging
from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from cortex_chat.api.errors import StreamRequestError
from cortex_chat.models.schemas import ContentEvent

logger = logging.getLogger(__name__)

FRAME_DELIMITER = "\n\n"
DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def parse_frame(frame: str) -> ContentEvent | None:
    """Turn one delimited frame into an event, or None if it carries nothing."""
    if not frame.startswith(DATA_PREFIX):
        return None
    text = frame[len(DATA_PREFIX):].strip()
    if not text or text == DONE_SENTINEL:
        return None
    return ContentEvent(text=text)


class FrameDecoder:
    """Incremental decoder from raw byte blocks to content events.

    Feed it each block read from the response body, then call
    ``finish`` once the body is exhausted.
    """

    def __init__(self, carry_partial_frames: bool = True) -> None:
        self.carry_partial_frames = carry_partial_frames
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, block: bytes) -> list[ContentEvent]:
        """Decode one block and return the events completed by it."""
        text = self._decoder.decode(block)
        if self.carry_partial_frames:
            text = self._pending + text

        *frames, tail = text.split(FRAME_DELIMITER)
        if self.carry_partial_frames:
            self._pending = tail
        elif tail:
            logger.debug(f"Dropping un-terminated frame fragment: {tail!r}")

        return [event for event in map(parse_frame, frames) if event is not None]

    def finish(self) -> list[ContentEvent]:
        """Flush whatever is left once the connection has closed."""
        remainder = self._decoder.decode(b"", final=True)
        if not self.carry_partial_frames:
            return []
        remainder = self._pending + remainder
        self._pending = ""
        event = parse_frame(remainder)
        return [event] if event is not None else []


async def decode_events(
    blocks: AsyncIterable[bytes],
    carry_partial_frames: bool = True,
) -> AsyncGenerator[ContentEvent, None]:
    """Lazily decode an async stream of byte blocks into content events.

    Args:
        blocks: Raw response body blocks, in arrival order.
        carry_partial_frames: Reassemble frames that straddle two reads.

    Yields:
        One ContentEvent per non-empty, non-sentinel ``data:`` frame.
    """
    decoder = FrameDecoder(carry_partial_frames)
    async for block in blocks:
        for event in decoder.feed(block):
            yield event
    for event in decoder.finish():
        yield event


@asynccontextmanager
async def open_event_stream(
    client: httpx.AsyncClient,
    path: str,
    payload: dict[str, Any],
    *,
    carry_partial_frames: bool = True,
    timeout: float | None = None,
) -> AsyncIterator[AsyncIterator[ContentEvent]]:
    """Open a streaming completion request and expose its events.

    The response is closed when the ``async with`` block exits, whether
    iteration finished, raised, or was abandoned early.

    Args:
        client: HTTP client configured with the backend base URL.
        path: Endpoint path of the streaming completion.
        payload: JSON request body.
        carry_partial_frames: Reassemble frames that straddle two reads.
        timeout: Optional timeout override for this request.

    Yields:
        Async iterator of ContentEvent for the response body.

    Raises:
        StreamRequestError: If the backend answers with a non-2xx status.
    """
    request_kwargs: dict[str, Any] = {
        "json": payload,
        "headers": {"Accept": "text/event-stream"},
    }
    if timeout is not None:
        request_kwargs["timeout"] = timeout

    async with client.stream("POST", path, **request_kwargs) as response:
        if not response.is_success:
            body = await response.aread()
            detail = body.decode("utf-8", errors="replace").strip()
            logger.warning(f"Stream request to {path} rejected: HTTP {response.status_code}")
            raise StreamRequestError(response.status_code, detail[:200])

        events = decode_events(response.aiter_bytes(), carry_partial_frames)
        try:
            yield events
        finally:
            await events.aclose()
