"""Session state management for the chat client.

Keeps the authoritative in-memory view of sessions and messages that the
UI renders from.
"""

from cortex_chat.session.engine import FAILURE_MESSAGE, EngineState, SessionEngine

__all__ = ["FAILURE_MESSAGE", "EngineState", "SessionEngine"]
