"""Session state engine.

Owns the list of known sessions, the active session id and the message
log of the active session. All mutation goes through the engine's
operations; the UI reads ``snapshot()`` and subscribes for change
notifications.

Operations never raise for backend failures. A failure is written to the
``error`` slot and, where the operation has one, reflected in its return
value.

Each switch of the active session installs a fresh message list. A send
keeps a reference to the list it started on and only writes to it while
that list is still the active one, so a reply to session A never lands in
the log of session B.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from cortex_chat.api.client import ChatApiClient
from cortex_chat.models.schemas import (
    EngineSnapshot,
    Message,
    MessageRole,
    Session,
    UploadResult,
)
from cortex_chat.storage import SessionStore

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Sorry, something went wrong. Please try again."

MessagePatch = Callable[[Message], Message] | Mapping[str, Any]
Listener = Callable[[EngineSnapshot], None]


@dataclass
class EngineState:
    """Mutable state owned by a SessionEngine.

    Attributes:
        sessions: Cached session list in backend order.
        current_session_id: Active session, None when no session is selected.
        messages: Message log of the active session only.
        loading: True while a session switch or a send is in progress.
        error: Last human-readable failure, None when cleared.
    """

    sessions: list[Session] = field(default_factory=list)
    current_session_id: str | None = None
    messages: list[Message] = field(default_factory=list)
    loading: bool = False
    error: str | None = None


def _extract_session_id(info: Mapping[str, Any]) -> str | None:
    session_id = info.get("id") or info.get("session_id")
    return str(session_id) if session_id else None


class SessionEngine:
    """Client-side authority over sessions and the active message log."""

    def __init__(
        self,
        client: ChatApiClient,
        store: SessionStore,
        *,
        use_stream: bool | None = None,
    ) -> None:
        """Initialize the engine and restore the persisted session id.

        Args:
            client: Backend client used for every network operation.
            store: Durable storage for the active session id.
            use_stream: Default send mode; falls back to the client config.
        """
        self._client = client
        self._store = store
        self.use_stream = client.config.use_stream if use_stream is None else use_stream
        self._state = EngineState(current_session_id=store.get_current_session())
        self.failure_message = FAILURE_MESSAGE
        self._listeners: list[Listener] = []
        self._sending = False

    # Read path

    def snapshot(self) -> EngineSnapshot:
        """Return an immutable copy of the current state."""
        return EngineSnapshot(
            sessions=tuple(self._state.sessions),
            current_session_id=self._state.current_session_id,
            messages=tuple(self._state.messages),
            loading=self._state.loading,
            error=self._state.error,
        )

    @property
    def sessions(self) -> tuple[Session, ...]:
        return tuple(self._state.sessions)

    @property
    def current_session_id(self) -> str | None:
        return self._state.current_session_id

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._state.messages)

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> str | None:
        return self._state.error

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback invoked with a snapshot after every change.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Engine listener failed")

    def _record_error(self, message: str, cause: object) -> None:
        logger.error(f"{message}: {cause}")
        self._state.error = f"{message}: {cause}"
        self._notify()

    def _switch_to(self, session_id: str | None, messages: list[Message]) -> None:
        """Make session_id active with a fresh message log and persist it."""
        self._state.current_session_id = session_id
        self._state.messages = list(messages)
        if session_id is None:
            self._store.remove_current_session()
        else:
            self._store.set_current_session(session_id)
        self._notify()

    # Session operations

    async def start(self) -> None:
        """Load the session list and the history of a restored session."""
        await self.load_sessions()

        session_id = self._state.current_session_id
        if not session_id or self._state.messages:
            return

        logger.info(f"Restoring session {session_id}")
        try:
            messages = await self._client.get_session_detail(session_id)
        except Exception as e:
            self._record_error("Failed to load session detail", e)
            return

        # Only fill the log if nothing replaced or wrote to it meanwhile.
        if self._state.current_session_id == session_id and not self._state.messages:
            self._state.messages = list(messages)
            self._notify()

    async def load_sessions(self) -> list[Session]:
        """Refresh the cached session list.

        Returns:
            The loaded sessions, or an empty list on failure (the cache is
            left untouched in that case).
        """
        try:
            sessions = await self._client.list_sessions()
        except Exception as e:
            self._record_error("Failed to load sessions", e)
            return []

        logger.debug(f"Loaded {len(sessions)} sessions")
        self._state.sessions = list(sessions)
        self._state.error = None
        self._notify()
        return sessions

    async def select_session(self, session_id: str) -> None:
        """Switch to a session and load its history.

        The switch happens even when the history cannot be loaded; the log
        is then empty and the error slot describes the failure.
        """
        if session_id == self._state.current_session_id:
            return

        self._state.loading = True
        self._state.error = None
        self._notify()

        messages: list[Message] = []
        try:
            messages = await self._client.get_session_detail(session_id)
        except Exception as e:
            logger.error(f"Failed to load session detail for {session_id}: {e}")
            self._state.error = f"Failed to load session detail: {e}"
        finally:
            # A send still in flight keeps the engine busy.
            self._state.loading = self._sending

        self._switch_to(session_id, messages)

    async def create_new_session(self) -> str | None:
        """Create a backend session and make it active.

        Returns:
            The new session id, or None if creation failed.
        """
        self._state.error = None
        try:
            info = await self._client.new_session()
        except Exception as e:
            self._record_error("Failed to create session", e)
            return None

        session_id = _extract_session_id(info)
        if session_id is None:
            self._record_error("Failed to create session", "no session id in response")
            return None

        logger.info(f"Created session {session_id}")
        self._switch_to(session_id, [])
        await self.load_sessions()
        return session_id

    async def remove_session(self, session_id: str) -> bool:
        """Delete a backend session, leaving it if it was active.

        Returns:
            True if the backend accepted the deletion.
        """
        self._state.error = None
        try:
            await self._client.delete_session(session_id)
        except Exception as e:
            self._record_error("Failed to delete session", e)
            return False

        logger.info(f"Deleted session {session_id}")
        if session_id == self._state.current_session_id:
            self._switch_to(None, [])
        await self.load_sessions()
        return True

    # Message log

    def add_message(self, message: Message) -> None:
        """Append a message to the active log."""
        self._state.messages.append(message)
        self._notify()

    def update_last_message(self, patch: MessagePatch) -> None:
        """Replace the last message with a patched copy.

        Args:
            patch: Either a function from the old message to the new one,
                or a mapping of fields to overwrite.
        """
        if not self._state.messages:
            return

        last = self._state.messages[-1]
        if callable(patch):
            updated = patch(last)
        else:
            updated = Message.model_validate({**last.model_dump(), **patch})
        self._state.messages[-1] = updated
        self._notify()

    def clear_error(self) -> None:
        """Dismiss the current error."""
        self._state.error = None
        self._notify()

    # Chat

    async def send_message(self, text: str, stream: bool | None = None) -> bool:
        """Send a prompt and record the assistant's reply.

        Streaming mode appends an empty assistant placeholder and grows it
        fragment by fragment. Direct mode appends the complete reply. On
        failure an empty placeholder is dropped and ``failure_message`` is
        appended instead.

        Args:
            text: The user's prompt.
            stream: Override the engine's default send mode.

        Returns:
            True if a reply was received, False if the send was refused
            (blank text or another send in flight) or failed.
        """
        if not text or not text.strip() or self._sending or self._state.loading:
            return False

        use_stream = self.use_stream if stream is None else stream
        session_id = self._state.current_session_id
        log = self._state.messages

        self._sending = True
        self._state.loading = True
        self.add_message(Message(role=MessageRole.USER, content=text))

        placeholder = False
        try:
            if use_stream:
                self.add_message(Message(role=MessageRole.ASSISTANT, content=""))
                placeholder = True
                await self._receive_stream(text, session_id, log)
            else:
                reply = await self._client.direct_chat(text, session_id)
                if self._state.messages is log:
                    self.add_message(Message(role=MessageRole.ASSISTANT, content=reply))
            return True
        except Exception as e:
            logger.error(f"Failed to get a reply: {e}")
            if self._state.messages is log:
                last = log[-1] if log else None
                if placeholder and last and last.role == MessageRole.ASSISTANT and not last.content:
                    log.pop()
                log.append(Message(role=MessageRole.ASSISTANT, content=self.failure_message))
            return False
        finally:
            self._sending = False
            self._state.loading = False
            self._notify()

    async def _receive_stream(
        self, text: str, session_id: str | None, log: list[Message]
    ) -> None:
        """Apply streamed fragments to the placeholder, in arrival order."""
        async with self._client.stream_chat(text, session_id) as events:
            async for event in events:
                if self._state.messages is not log:
                    # Session switched away; keep draining so the backend can finish.
                    logger.debug("Discarding stream fragment for inactive session")
                    continue

                def extend(message: Message) -> Message:
                    return message.model_copy(update={"content": message.content + event.text})

                self.update_last_message(extend)

    # Documents

    async def upload_document(self, filename: str, content: bytes) -> UploadResult | None:
        """Upload a document for the backend knowledge base.

        Returns:
            The upload summary, or None if validation or the upload failed.
        """
        self._state.error = None
        try:
            result = await self._client.upload_document(filename, content)
        except Exception as e:
            self._record_error("Failed to upload document", e)
            return None
        self._notify()
        return result
