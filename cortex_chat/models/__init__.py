"""Pydantic models shared by the client, the session engine and the UI.

Models:
    - Message: Individual message in a conversation
    - Session: Backend session as listed by the client
    - ContentEvent: Text fragment decoded from a completion stream
    - UploadResult: Summary returned after a document upload
    - EngineSnapshot: Immutable view of the session engine state
"""

from cortex_chat.models.schemas import (
    ContentEvent,
    EngineSnapshot,
    Message,
    MessageRole,
    Session,
    UploadResult,
)

__all__ = [
    "ContentEvent",
    "EngineSnapshot",
    "Message",
    "MessageRole",
    "Session",
    "UploadResult",
]
