"""Main application entry point.

Runs the NiceGUI chat interface against the backend configured through
CORTEX_* environment variables. Environment variables are loaded from .env.
"""

import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Application entry point.

    Builds the backend client and session engine, registers the chat page
    and starts the NiceGUI server. The session list is loaded on startup.
    """
    from nicegui import app, ui

    from cortex_chat.api.client import ChatApiClient
    from cortex_chat.config import get_client_config
    from cortex_chat.session.engine import SessionEngine
    from cortex_chat.storage import JsonFileStore, PreferenceStore, SessionStore
    from cortex_chat.ui.chat_page import register_chat_page

    config = get_client_config()
    store = JsonFileStore(config.storage_path)
    client = ChatApiClient(config)
    engine = SessionEngine(client, SessionStore(store))

    register_chat_page(engine, PreferenceStore(store))
    app.on_startup(engine.start)
    app.on_shutdown(client.aclose)

    logger.info(f"Starting Cortex Chat against {config.base_url}")

    ui.run(
        title="Cortex Chat",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8080")),
        reload=False,
    )


if __name__ == "__main__":
    main()
