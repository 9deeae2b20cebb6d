from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Speaker of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single chat message in the conversation.

    Messages are frozen; streaming replaces the last message with an
    updated copy instead of editing it in place.

    Attributes:
        role: Who wrote the message.
        content: The message text.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    role: MessageRole
    content: str = ""


class Session(BaseModel):
    """A server-tracked conversation as seen by the client.

    The backend names the identifier either ``id`` or ``session_id``;
    both are accepted.

    Attributes:
        id: Opaque session identifier.
        title: Optional display title.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    id: str = Field(validation_alias=AliasChoices("id", "session_id"))
    title: str | None = None


class ContentEvent(BaseModel):
    """One incremental text fragment decoded from the completion stream."""

    model_config = ConfigDict(frozen=True)

    text: str


class UploadResult(BaseModel):
    """Backend summary of an ingested document.

    Attributes:
        filename: Name of the uploaded file.
        document_id: Identifier assigned by the backend.
        chunks_count: Number of chunks the document was split into.
        saved_chunks: Number of chunks stored.
    """

    model_config = ConfigDict(extra="ignore")

    filename: str
    document_id: str | None = None
    chunks_count: int = Field(default=0, ge=0)
    saved_chunks: int = Field(default=0, ge=0)


class EngineSnapshot(BaseModel):
    """Read-only view of the session engine state for rendering."""

    model_config = ConfigDict(frozen=True)

    sessions: tuple[Session, ...] = ()
    current_session_id: str | None = None
    messages: tuple[Message, ...] = ()
    loading: bool = False
    error: str | None = None
