"""Client configuration with environment variable loading.

Pydantic-based configuration for the Cortex chat client.
Every field can be overridden through a CORTEX_* environment variable
or a local .env file.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


class ClientConfig(BaseModel):
    """Configuration for the chat backend client and session engine.

    Attributes:
        base_url: Backend API root; endpoint paths are appended to it.
        request_timeout: Timeout in seconds for non-streaming calls.
        stream_timeout: Timeout in seconds for the streaming request.
        max_attempts: Attempts per retried call (first try included).
        retry_base_delay: Linear backoff step in seconds.
        carry_partial_frames: Reassemble stream frames split across reads.
        use_stream: Send prompts through the streaming endpoint by default.
        storage_path: JSON file backing local durable state.
    """

    base_url: str = Field(
        default_factory=lambda: os.getenv("CORTEX_API_BASE_URL", "http://localhost:8000/api"),
        description="Backend API base URL",
    )
    request_timeout: float = Field(
        default_factory=lambda: float(os.getenv("CORTEX_REQUEST_TIMEOUT", "30")),
        gt=0.0,
        description="Timeout for regular requests in seconds",
    )
    stream_timeout: float = Field(
        default_factory=lambda: float(os.getenv("CORTEX_STREAM_TIMEOUT", "120")),
        gt=0.0,
        description="Timeout for streaming requests in seconds",
    )
    max_attempts: int = Field(
        default_factory=lambda: int(os.getenv("CORTEX_MAX_ATTEMPTS", "3")),
        ge=1,
        le=10,
        description="Maximum attempts for retried backend calls",
    )
    retry_base_delay: float = Field(
        default_factory=lambda: float(os.getenv("CORTEX_RETRY_BASE_DELAY", "1.0")),
        ge=0.0,
        description="Base delay of the linear retry backoff in seconds",
    )
    carry_partial_frames: bool = Field(
        default_factory=lambda: _env_flag("CORTEX_CARRY_PARTIAL_FRAMES", True),
        description="Buffer un-terminated stream frames across reads",
    )
    use_stream: bool = Field(
        default_factory=lambda: _env_flag("CORTEX_USE_STREAM", True),
        description="Use the streaming chat endpoint by default",
    )
    storage_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("CORTEX_STORAGE_PATH", str(Path.home() / ".cortex_chat" / "storage.json"))
        ),
        description="Path of the local key/value storage file",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate that a base URL is provided and drop trailing slashes."""
        if not v or not v.strip():
            raise ValueError(
                "Backend URL required. Set CORTEX_API_BASE_URL in .env"
            )
        return v.strip().rstrip("/")


def get_client_config() -> ClientConfig:
    """Create client configuration from environment.

    Returns:
        Configured ClientConfig instance.

    Raises:
        ValueError: If a configured value is out of range.
    """
    return ClientConfig()
