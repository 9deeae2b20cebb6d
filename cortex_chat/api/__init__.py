"""Backend access layer for the chat client.

HTTP calls, SSE stream decoding and retry handling.

Modules:
    - client: ChatApiClient for every backend endpoint
    - stream: Frame decoder for the streaming completion endpoint
    - retry: Bounded retry with linear backoff
    - errors: Client-side error types
"""

from cortex_chat.api.client import ChatApiClient
from cortex_chat.api.errors import (
    ChatApiError,
    ChatClientError,
    InvalidRequestError,
    StreamRequestError,
)
from cortex_chat.api.retry import with_retry

__all__ = [
    "ChatApiClient",
    "ChatApiError",
    "ChatClientError",
    "InvalidRequestError",
    "StreamRequestError",
    "with_retry",
]
