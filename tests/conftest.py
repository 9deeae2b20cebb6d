"""Pytest fixtures and shared test configuration.

Provides an in-memory chat backend speaking the real wire contract and
clients wired to it through httpx's ASGI transport.

Fixtures:
    - backend: FakeBackend with scriptable failures and stream bodies
    - http_client: HTTPX client routed to the fake backend
    - sleeps: Delays requested by the retry policy (no real waiting)
    - config: ClientConfig pointing at the fake backend
    - api_client: ChatApiClient using the fixtures above
    - session_store: SessionStore backed by a temporary JSON file
    - engine: SessionEngine over api_client and session_store
"""

import itertools
from collections import Counter
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI, Request, UploadFile
from fastapi.responses import JSONResponse, Response, StreamingResponse
from httpx import ASGITransport, AsyncClient

from cortex_chat.api.client import ChatApiClient
from cortex_chat.config import ClientConfig
from cortex_chat.session.engine import SessionEngine
from cortex_chat.storage import JsonFileStore, SessionStore

BASE_URL = "http://test"


def sse_frames(*fragments: str, done: bool = True) -> list[bytes]:
    """Encode fragments as one SSE frame per body chunk."""
    frames = [f"data: {fragment}\n\n".encode() for fragment in fragments]
    if done:
        frames.append(b"data: [DONE]\n\n")
    return frames


class FakeBackend:
    """In-memory chat backend.

    Attributes:
        sessions: Session records keyed by id, in creation order.
        calls: Number of requests received per path.
        id_key: Key used for session ids in responses (``id`` or ``session_id``).
        stream_chunks: Body chunks returned by the streaming endpoint.
        stream_status: Status code of the streaming endpoint.
        direct_reply: Result returned by the direct chat endpoint.
        prompts: Payloads received by the chat endpoints.
    """

    def __init__(self) -> None:
        self.sessions: dict[str, dict[str, Any]] = {}
        self.calls: Counter[str] = Counter()
        self.id_key = "id"
        self.new_session_data: dict[str, Any] | None = None
        self.stream_chunks: list[bytes] = sse_frames("Hello", "world")
        self.stream_status = 200
        self.direct_reply = "Direct answer"
        self.prompts: list[dict[str, Any]] = []
        self._failures: dict[str, list[int]] = {}
        self._logical_errors: dict[str, dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self.app = self._build_app()

    def add_session(
        self,
        session_id: str,
        title: str | None = None,
        messages: list[dict[str, str]] | None = None,
    ) -> None:
        self.sessions[session_id] = {
            "id": session_id,
            "title": title,
            "messages": list(messages or []),
        }

    def fail(self, path: str, times: int, status: int = 503) -> None:
        """Answer the next ``times`` requests to path with an HTTP error."""
        self._failures.setdefault(path, []).extend([status] * times)

    def logical_error(self, path: str, message: str, code: int = 500) -> None:
        """Answer requests to path with 200 and an ``error`` object."""
        self._logical_errors[path] = {"message": message, "code": code}

    def _intercept(self, path: str) -> JSONResponse | None:
        self.calls[path] += 1
        pending = self._failures.get(path)
        if pending:
            status = pending.pop(0)
            return JSONResponse({"detail": "unavailable"}, status_code=status)
        if path in self._logical_errors:
            return JSONResponse({"error": self._logical_errors[path]})
        return None

    def _session_view(self, record: dict[str, Any]) -> dict[str, Any]:
        view = {self.id_key: record["id"]}
        if record["title"] is not None:
            view["title"] = record["title"]
        return view

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.post("/chat/new_session")
        async def new_session() -> JSONResponse:
            if (failure := backend._intercept("/chat/new_session")) is not None:
                return failure
            if backend.new_session_data is not None:
                return JSONResponse({"data": backend.new_session_data})
            session_id = f"s{next(backend._ids)}"
            backend.add_session(session_id)
            return JSONResponse({"data": backend._session_view(backend.sessions[session_id])})

        @app.post("/chat/list_session")
        async def list_session() -> JSONResponse:
            if (failure := backend._intercept("/chat/list_session")) is not None:
                return failure
            return JSONResponse(
                {"data": [backend._session_view(r) for r in backend.sessions.values()]}
            )

        @app.post("/chat/get_session_detail")
        async def get_session_detail(request: Request) -> JSONResponse:
            if (failure := backend._intercept("/chat/get_session_detail")) is not None:
                return failure
            body = await request.json()
            record = backend.sessions.get(body.get("session_id"))
            if record is None:
                return JSONResponse({"error": {"message": "Session not found", "code": 404}})
            return JSONResponse({"data": {"messages": record["messages"]}})

        @app.post("/chat/del_session")
        async def del_session(request: Request) -> JSONResponse:
            if (failure := backend._intercept("/chat/del_session")) is not None:
                return failure
            body = await request.json()
            backend.sessions.pop(body.get("session_id"), None)
            return JSONResponse({"data": True})

        @app.post("/chat/direct_chat")
        async def direct_chat(request: Request) -> JSONResponse:
            if (failure := backend._intercept("/chat/direct_chat")) is not None:
                return failure
            backend.prompts.append(await request.json())
            return JSONResponse({"data": {"result": backend.direct_reply}})

        @app.post("/chat/stream_chat")
        async def stream_chat(request: Request) -> Response:
            backend.calls["/chat/stream_chat"] += 1
            backend.prompts.append(await request.json())
            if backend.stream_status != 200:
                return JSONResponse({"detail": "stream failed"}, status_code=backend.stream_status)

            async def body() -> AsyncGenerator[bytes, None]:
                for chunk in backend.stream_chunks:
                    yield chunk

            return StreamingResponse(body(), media_type="text/event-stream")

        @app.post("/chat/upload_document")
        async def upload_document(file: UploadFile) -> JSONResponse:
            if (failure := backend._intercept("/chat/upload_document")) is not None:
                return failure
            content = await file.read()
            return JSONResponse(
                {
                    "data": {
                        "filename": file.filename,
                        "document_id": f"doc-{len(content)}",
                        "chunks_count": 3,
                        "saved_chunks": 3,
                    }
                }
            )

        return app


@pytest.fixture
def backend() -> FakeBackend:
    """Return a fresh in-memory backend."""
    return FakeBackend()


@pytest.fixture
async def http_client(backend: FakeBackend) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client routed to the fake backend.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=backend.app)
    async with AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client


@pytest.fixture
def sleeps() -> list[float]:
    """Collect the delays the retry policy asked for."""
    return []


@pytest.fixture
def config(tmp_path: Path) -> ClientConfig:
    """Return a client config pointing at the fake backend."""
    return ClientConfig(
        base_url=BASE_URL,
        max_attempts=3,
        retry_base_delay=1.0,
        carry_partial_frames=True,
        use_stream=True,
        storage_path=tmp_path / "storage.json",
    )


@pytest.fixture
def api_client(
    config: ClientConfig, http_client: AsyncClient, sleeps: list[float]
) -> ChatApiClient:
    """Return a ChatApiClient whose retries record delays instead of sleeping."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return ChatApiClient(config, http_client=http_client, sleep=fake_sleep)


@pytest.fixture
def session_store(config: ClientConfig) -> SessionStore:
    """Return a SessionStore backed by a temporary file."""
    return SessionStore(JsonFileStore(config.storage_path))


@pytest.fixture
def engine(api_client: ChatApiClient, session_store: SessionStore) -> SessionEngine:
    """Return a SessionEngine wired to the fake backend."""
    return SessionEngine(api_client, session_store)
