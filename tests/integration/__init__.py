"""Integration tests for components working together.

Coverage:
    - Session endpoints and envelope handling with real HTTP requests
    - Streaming and direct sends through the session engine
    - Document upload validation and multipart requests

The backend is a FastAPI app held in memory; no network is required.
"""
