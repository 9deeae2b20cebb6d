"""UI strings for the supported interface languages.

Lookup falls back to the key itself for unknown ids and to the default
language for unknown language codes, so a missing translation never
breaks rendering.
"""

from cortex_chat.session.engine import FAILURE_MESSAGE
from cortex_chat.storage import DEFAULT_LANGUAGE

LANGUAGE_NAMES = {"zh": "中文", "en": "English"}

TRANSLATIONS: dict[str, dict[str, str]] = {
    "zh": {
        "new_chat": "新建对话",
        "history": "历史对话",
        "upload_document": "上传文档",
        "input_placeholder": "输入消息，按 Enter 发送...",
        "light_mode": "浅色模式",
        "dark_mode": "深色模式",
        "stream_response": "流式响应",
        "language": "语言",
        "chat_title": "对话 {index}",
        "hello_cortex": "你好，我是 Cortex AI",
        "how_can_help": "有什么我可以帮助你的吗？",
        "error_occurred": "抱歉，发生了错误，请重试。",
        "busy": "请等待当前回复完成",
        "session_deleted": "会话已删除",
        "uploaded": "已上传 {filename}：保存 {saved}/{total} 个分块",
        "explain_quantum": "解释量子计算",
        "write_poem": "写一首诗",
        "help_code": "帮我写代码",
        "translate_doc": "翻译文档",
    },
    "en": {
        "new_chat": "New Chat",
        "history": "Chat History",
        "upload_document": "Upload Document",
        "input_placeholder": "Type a message, press Enter to send...",
        "light_mode": "Light Mode",
        "dark_mode": "Dark Mode",
        "stream_response": "Stream Response",
        "language": "Language",
        "chat_title": "Chat {index}",
        "hello_cortex": "Hello, I am Cortex AI",
        "how_can_help": "How can I help you today?",
        "error_occurred": FAILURE_MESSAGE,
        "busy": "Please wait for the current reply to finish",
        "session_deleted": "Session deleted",
        "uploaded": "Uploaded {filename}: {saved}/{total} chunks saved",
        "explain_quantum": "Explain quantum computing",
        "write_poem": "Write a poem",
        "help_code": "Help me write code",
        "translate_doc": "Translate document",
    },
}

SUGGESTION_KEYS = ["explain_quantum", "write_poem", "help_code", "translate_doc"]


def resolve_language(language: str | None) -> str:
    """Return language if it is supported, otherwise the default language."""
    return language if language in TRANSLATIONS else DEFAULT_LANGUAGE


def translate(language: str | None, key: str, **params: object) -> str:
    """Look up a UI string.

    Args:
        language: Language code; unsupported codes use the default language.
        key: Message id.
        **params: Values substituted into ``{name}`` placeholders.

    Returns:
        The translated string, or the key itself when no translation exists.
    """
    text = TRANSLATIONS[resolve_language(language)].get(key, key)
    return text.format(**params) if params else text
