"""Cortex Chat - async client for a streaming chat backend.

Combines httpx for HTTP and SSE streaming, Pydantic for data validation,
and NiceGUI for the chat interface.

Components:
    - api: Backend calls, stream decoding and retry policy
    - session: Session and message state engine
    - models: Message, session and snapshot schemas
    - storage: Local persistence of the active session and preferences
    - ui: Web interface for chat interactions
"""

__version__ = "0.1.0"
