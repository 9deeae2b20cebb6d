"""NiceGUI interface - thin visualization layer for chat interactions.

Responsibilities:
    - Chat message display with streaming support
    - Session list with create, select and delete
    - Document upload
    - Dark/light theme toggle

Contains no chat logic. Every action is delegated to the session engine.
"""
