"""NiceGUI chat interface driven by the session engine.

The page never touches engine state directly: it issues engine operations
from event handlers and re-renders from snapshots pushed to its listener.
"""

import logging

from nicegui import events, ui

from cortex_chat.models.schemas import EngineSnapshot, Message, MessageRole
from cortex_chat.session.engine import SessionEngine
from cortex_chat.storage import PreferenceStore
from cortex_chat.ui.i18n import LANGUAGE_NAMES, SUGGESTION_KEYS, resolve_language, translate

logger = logging.getLogger(__name__)

CUSTOM_CSS = """
<style>
    body { background: #f5f5f5; }

    .message-user {
        background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
        color: white;
        border-radius: 18px 18px 4px 18px;
    }

    .message-assistant {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }

    .body--dark .message-assistant { background: #374151; color: #f9fafb; }

    .session-item { border-radius: 8px; cursor: pointer; }
    .session-item.active { background: rgba(102, 126, 234, 0.15); }
</style>
"""


def register_chat_page(engine: SessionEngine, preferences: PreferenceStore) -> None:
    """Register the chat page at ``/`` for the given engine."""

    @ui.page("/")
    def chat_page() -> None:
        ui.add_head_html(CUSTOM_CSS)
        dark = ui.dark_mode(preferences.get_theme() == "dark")
        language = resolve_language(preferences.get_language())
        engine.failure_message = translate(language, "error_occurred")

        def t(key: str, **params: object) -> str:
            return translate(language, key, **params)

        input_field: ui.textarea

        def theme_label() -> str:
            return t("light_mode") if dark.value else t("dark_mode")

        def toggle_theme() -> None:
            dark.value = not dark.value
            preferences.set_theme("dark" if dark.value else "light")
            theme_btn.set_text(theme_label())
            theme_btn.props(f"icon={'light_mode' if dark.value else 'dark_mode'}")

        def change_language(e: events.ValueChangeEventArguments) -> None:
            if e.value == language:
                return
            preferences.set_language(e.value)
            ui.navigate.reload()

        async def send_message() -> None:
            text = input_field.value or ""
            if not text.strip():
                return
            if engine.loading:
                # Keep the prompt so it can be sent once the reply finishes.
                ui.notify(t("busy"), type="warning")
                return
            input_field.value = ""
            await engine.send_message(text)

        async def new_chat() -> None:
            await engine.create_new_session()

        async def delete_session(session_id: str) -> None:
            if await engine.remove_session(session_id):
                ui.notify(t("session_deleted"))

        async def handle_upload(e: events.UploadEventArguments) -> None:
            content = await e.file.read()
            result = await engine.upload_document(e.file.name, content)
            if result is not None:
                ui.notify(
                    t(
                        "uploaded",
                        filename=result.filename,
                        saved=result.saved_chunks,
                        total=result.chunks_count,
                    ),
                    type="positive",
                )

        def render_message(msg: Message) -> None:
            is_user = msg.role == MessageRole.USER
            align = "justify-end" if is_user else "justify-start"
            bubble = "message-user" if is_user else "message-assistant"
            with ui.row().classes(f"w-full {align}"):
                with ui.element("div").classes(f"px-4 py-3 max-w-[70%] {bubble}"):
                    if is_user:
                        ui.label(msg.content).classes("text-sm whitespace-pre-wrap")
                    elif msg.content:
                        ui.markdown(msg.content).classes("text-sm")
                    else:
                        ui.spinner("dots")

        @ui.refreshable
        def session_list(snapshot: EngineSnapshot) -> None:
            for index, session in enumerate(snapshot.sessions):
                active = "active" if session.id == snapshot.current_session_id else ""
                with ui.row().classes(f"w-full items-center session-item px-2 py-1 {active}"):
                    ui.icon("chat_bubble_outline")
                    ui.label(session.title or t("chat_title", index=index + 1)).classes("flex-grow").on(
                        "click", lambda _, sid=session.id: engine.select_session(sid)
                    )
                    ui.button(
                        icon="delete",
                        on_click=lambda _, sid=session.id: delete_session(sid),
                    ).props("flat round dense size=sm")

        @ui.refreshable
        def message_list(snapshot: EngineSnapshot) -> None:
            if snapshot.error:
                with ui.row().classes("w-full items-center bg-red-100 text-red-800 rounded px-3 py-2"):
                    ui.label(snapshot.error).classes("flex-grow text-sm")
                    ui.button(icon="close", on_click=engine.clear_error).props("flat round dense")

            if not snapshot.messages:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.icon("forum").classes("text-5xl text-gray-300")
                    ui.label(t("hello_cortex")).classes("text-lg text-gray-500")
                    ui.label(t("how_can_help")).classes("text-sm text-gray-400")
                    with ui.row().classes("gap-2"):
                        for suggestion in (t(key) for key in SUGGESTION_KEYS):
                            ui.button(
                                suggestion,
                                on_click=lambda _, s=suggestion: input_field.set_value(s),
                            ).props("outline rounded no-caps")
                return

            for msg in snapshot.messages:
                render_message(msg)

        def on_change(snapshot: EngineSnapshot) -> None:
            session_list.refresh(snapshot)
            message_list.refresh(snapshot)
            send_btn.set_enabled(not snapshot.loading)

        # === UI Layout ===
        with ui.left_drawer(value=True).classes("bg-white p-3"):
            ui.button(t("new_chat"), icon="add", on_click=new_chat).classes("w-full")
            ui.label(t("history")).classes("text-xs text-gray-500 mt-4")
            with ui.column().classes("w-full gap-1"):
                session_list(engine.snapshot())
            ui.separator()
            ui.switch(t("stream_response"), value=engine.use_stream).bind_value(engine, "use_stream")
            theme_btn = ui.button(
                theme_label(),
                icon="light_mode" if dark.value else "dark_mode",
                on_click=toggle_theme,
            ).props("flat")
            ui.select(
                LANGUAGE_NAMES,
                value=language,
                label=t("language"),
                on_change=change_language,
            ).classes("w-full")
            ui.upload(label=t("upload_document"), on_upload=handle_upload, auto_upload=True).props(
                "accept=.txt,.md,.docx"
            ).classes("w-full")

        with ui.column().classes("w-full max-w-3xl mx-auto h-screen"):
            with ui.scroll_area().classes("flex-grow w-full"):
                with ui.column().classes("w-full gap-4 p-4"):
                    message_list(engine.snapshot())

            with ui.row().classes("w-full p-4 gap-3 items-end border-t"):
                input_field = (
                    ui.textarea(placeholder=t("input_placeholder"))
                    .props("autogrow outlined dense rows=1")
                    .classes("flex-grow")
                    .on("keydown.enter.prevent", send_message)
                )
                send_btn = ui.button(icon="send", on_click=send_message).props("round unelevated")

        unsubscribe = engine.subscribe(on_change)
        ui.context.client.on_disconnect(unsubscribe)
