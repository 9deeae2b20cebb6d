"""Async HTTP client for the chat backend.

Wraps every non-streaming endpoint in the retry policy and unwraps the
``{data: ..., error: ...}`` response envelope. The envelope is inspected
after the retried transport call, so a logical failure reported by the
backend surfaces immediately instead of being retried.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from pathlib import PurePath
from typing import Any

import httpx
from pydantic import ValidationError

from cortex_chat.api.errors import ChatApiError, InvalidRequestError
from cortex_chat.api.retry import with_retry
from cortex_chat.api.stream import open_event_stream
from cortex_chat.config import ClientConfig, get_client_config
from cortex_chat.models.schemas import ContentEvent, Message, Session, UploadResult

logger = logging.getLogger(__name__)

NEW_SESSION_PATH = "/chat/new_session"
LIST_SESSION_PATH = "/chat/list_session"
SESSION_DETAIL_PATH = "/chat/get_session_detail"
DELETE_SESSION_PATH = "/chat/del_session"
DIRECT_CHAT_PATH = "/chat/direct_chat"
STREAM_CHAT_PATH = "/chat/stream_chat"
UPLOAD_DOCUMENT_PATH = "/chat/upload_document"

UNKNOWN_ERROR = "Unknown backend error"

# 10MB limit enforced before uploading
MAX_UPLOAD_SIZE = 10 * 1024 * 1024
ALLOWED_UPLOAD_TYPES: dict[str, str] = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def unwrap_envelope(body: Any) -> Any:
    """Return the ``data`` member of a backend response body.

    Args:
        body: Decoded JSON body.

    Returns:
        The payload under ``data`` (None when absent).

    Raises:
        ChatApiError: If the body is not an object or carries an ``error``.
    """
    if not isinstance(body, dict):
        raise ChatApiError(f"Unexpected response body: {type(body).__name__}")

    error = body.get("error")
    if error is not None:
        if isinstance(error, dict):
            raise ChatApiError(
                str(error.get("message") or error.get("detail") or UNKNOWN_ERROR),
                error.get("code"),
            )
        raise ChatApiError(str(error) or UNKNOWN_ERROR)

    return body.get("data")


def _require_session_id(session_id: str | None) -> str:
    if not session_id or not str(session_id).strip():
        raise InvalidRequestError("session_id is required")
    return str(session_id)


def _validate_upload(filename: str, content: bytes) -> str:
    """Validate a document before upload.

    Args:
        filename: Original file name.
        content: Raw file bytes.

    Returns:
        MIME type to send with the file.

    Raises:
        InvalidRequestError: If name, type or size are not acceptable.
    """
    if not filename:
        raise InvalidRequestError("Filename is required")

    extension = PurePath(filename).suffix.lower()
    if extension not in ALLOWED_UPLOAD_TYPES:
        allowed = ", ".join(ALLOWED_UPLOAD_TYPES)
        raise InvalidRequestError(f"Unsupported file type. Supported types: {allowed}")

    if not content:
        raise InvalidRequestError("Empty file provided")

    if len(content) > MAX_UPLOAD_SIZE:
        size_mb = len(content) / (1024 * 1024)
        raise InvalidRequestError(f"File size ({size_mb:.1f}MB) exceeds maximum allowed (10MB)")

    return ALLOWED_UPLOAD_TYPES[extension]


class ChatApiClient:
    """Client for the chat backend endpoints.

    Owns an ``httpx.AsyncClient`` unless one is injected, in which case
    the caller stays responsible for closing it.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            config: Optional client configuration.
                    Loads from environment if not provided.
            http_client: Pre-built HTTP client (tests use an ASGI transport).
            sleep: Coroutine used to wait between retry attempts.
        """
        self._config = config or get_client_config()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.request_timeout,
        )
        self._sleep = sleep

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _post(
        self,
        path: str,
        payload: dict[str, Any] | None = None,
        *,
        files: dict[str, tuple[str, bytes, str]] | None = None,
    ) -> Any:
        """POST to the backend with retry and return the unwrapped payload."""

        async def attempt() -> Any:
            response = await self._http.post(path, json=payload, files=files)
            response.raise_for_status()
            return response.json()

        body = await with_retry(
            attempt,
            self._config.max_attempts,
            base_delay=self._config.retry_base_delay,
            sleep=self._sleep,
        )
        return unwrap_envelope(body)

    async def new_session(self) -> dict[str, Any]:
        """Create a session and return the backend's session info."""
        data = await self._post(NEW_SESSION_PATH)
        return data if isinstance(data, dict) else {}

    async def list_sessions(self) -> list[Session]:
        """List known sessions in backend order."""
        data = await self._post(LIST_SESSION_PATH)
        return [Session.model_validate(item) for item in data or []]

    async def get_session_detail(self, session_id: str) -> list[Message]:
        """Fetch the message history of a session.

        Entries that do not parse as a user or assistant message are
        skipped so one foreign record cannot hide the rest of the history.

        Raises:
            InvalidRequestError: If session_id is empty.
        """
        session_id = _require_session_id(session_id)
        data = await self._post(SESSION_DETAIL_PATH, {"session_id": session_id})
        messages: list[Message] = []
        for item in (data or {}).get("messages") or []:
            try:
                messages.append(Message.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable message in session {session_id}: {e}")
        return messages

    async def delete_session(self, session_id: str) -> None:
        """Delete a session on the backend.

        Raises:
            InvalidRequestError: If session_id is empty.
        """
        session_id = _require_session_id(session_id)
        await self._post(DELETE_SESSION_PATH, {"session_id": session_id})

    async def direct_chat(self, prompt: str, session_id: str | None) -> str:
        """Request a complete (non-streamed) answer.

        Args:
            prompt: The user's message.
            session_id: Session to attach the exchange to, if any.

        Returns:
            The assistant's reply text.

        Raises:
            InvalidRequestError: If the prompt is blank.
            ChatApiError: If the backend reports an error or no result.
        """
        if not prompt or not prompt.strip():
            raise InvalidRequestError("Prompt must not be empty")

        data = await self._post(
            DIRECT_CHAT_PATH, {"user_prompt": prompt, "session_id": session_id}
        )
        result = (data or {}).get("result")
        if result is None:
            raise ChatApiError("Response did not contain a result")
        return str(result)

    def stream_chat(
        self, prompt: str, session_id: str | None
    ) -> AbstractAsyncContextManager[AsyncIterator[ContentEvent]]:
        """Open a streamed completion.

        Not retried. Use as ``async with client.stream_chat(...) as events``
        and iterate ``events`` for ContentEvent items.

        Raises:
            InvalidRequestError: If the prompt is blank.
            StreamRequestError: On entering, if the backend rejects the request.
        """
        if not prompt or not prompt.strip():
            raise InvalidRequestError("Prompt must not be empty")

        return open_event_stream(
            self._http,
            STREAM_CHAT_PATH,
            {"user_prompt": prompt, "session_id": session_id},
            carry_partial_frames=self._config.carry_partial_frames,
            timeout=self._config.stream_timeout,
        )

    async def upload_document(self, filename: str, content: bytes) -> UploadResult:
        """Upload a document for ingestion.

        Args:
            filename: Original file name (.txt, .md or .docx).
            content: File bytes.

        Returns:
            UploadResult describing the ingested document.

        Raises:
            InvalidRequestError: If the file fails local validation.
        """
        mime_type = _validate_upload(filename, content)
        data = await self._post(
            UPLOAD_DOCUMENT_PATH, files={"file": (filename, content, mime_type)}
        )
        logger.info(f"Uploaded document {filename} ({len(content)} bytes)")
        return UploadResult.model_validate({"filename": filename, **(data or {})})

