"""Error taxonomy for backend calls.

Transport failures are raised by httpx itself (``httpx.TransportError``,
``httpx.HTTPStatusError``) and are the ones the retry policy absorbs.
The classes here cover the failures the client detects on its own.
"""


class ChatClientError(Exception):
    """Base class for errors raised by the chat client."""

    pass


class ChatApiError(ChatClientError):
    """Raised when a response body carries an ``error`` object.

    Attributes:
        message: Human-readable message reported by the backend.
        code: Backend error code, if any.
    """

    def __init__(self, message: str, code: str | int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"{self.message} (code {self.code})"


class InvalidRequestError(ChatClientError):
    """Raised before any network attempt when a request is unusable."""

    pass


class StreamRequestError(ChatClientError):
    """Raised when the streaming request is rejected with a non-2xx status.

    Attributes:
        status_code: HTTP status of the rejected response.
    """

    def __init__(self, status_code: int, detail: str = "") -> None:
        message = f"Stream request failed with HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
