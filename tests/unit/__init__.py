"""Unit tests for individual components in isolation.

Coverage:
    - models/: Pydantic validation of backend payloads
    - api/: Frame decoding, stream lifetime and retry policy
    - session/: Message log operations and stream ordering
    - storage and config

Uses scripted clients and httpx.MockTransport instead of a backend.
"""
