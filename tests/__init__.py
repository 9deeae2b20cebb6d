"""Test package for Cortex Chat.

Structure:
    - unit/: Decoder, retry, storage, config and engine logic in isolation
    - integration/: Client and engine against an in-memory backend

Integration tests run the real httpx client over ASGITransport, so frames
and envelopes travel the same code path as in production.
Leverages pytest with pytest-check for soft assertions.
"""
