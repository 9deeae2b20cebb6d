"""Local durable key/value storage backed by a JSON file.

Holds the few scalars the client keeps between runs: the current session
id and UI preferences. Storage failures never interrupt the caller; they
are logged and reported through the return value.
"""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CURRENT_SESSION_KEY = "currentSession"
THEME_KEY = "theme"
DEFAULT_THEME = "light"
LANGUAGE_KEY = "language"
DEFAULT_LANGUAGE = "zh"


class JsonFileStore:
    """Minimal persistent mapping of string keys to JSON values."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self.path} does not hold a JSON object")
        return data

    def _write_all(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for key, or default if missing or unreadable."""
        try:
            value = self._read_all().get(key)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read {key!r} from storage: {e}")
            return default
        return default if value is None else value

    def set(self, key: str, value: Any) -> bool:
        """Store a JSON-serializable value. Returns False on failure."""
        try:
            data = self._read_all()
            data[key] = value
            self._write_all(data)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write {key!r} to storage: {e}")
            return False
        return True

    def remove(self, key: str) -> bool:
        """Delete a key. Returns False on failure."""
        try:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to remove {key!r} from storage: {e}")
            return False
        return True

    def clear(self) -> bool:
        """Delete every stored key. Returns False on failure."""
        try:
            self._write_all({})
        except OSError as e:
            logger.warning(f"Failed to clear storage: {e}")
            return False
        return True

    def has(self, key: str) -> bool:
        """Return True if key is stored."""
        try:
            return key in self._read_all()
        except (OSError, ValueError):
            return False


class SessionStore:
    """Persists the identifier of the active session."""

    def __init__(self, store: JsonFileStore) -> None:
        self._store = store

    def get_current_session(self) -> str | None:
        """Return the persisted session id, or None if none is stored."""
        value = self._store.get(CURRENT_SESSION_KEY)
        return str(value) if value is not None else None

    def set_current_session(self, session_id: str) -> bool:
        """Persist session_id as the active session.

        Returns:
            True if the value was written.
        """
        return self._store.set(CURRENT_SESSION_KEY, session_id)

    def remove_current_session(self) -> bool:
        """Forget the active session. Returns False on failure."""
        return self._store.remove(CURRENT_SESSION_KEY)


class PreferenceStore:
    """Persists UI preferences."""

    def __init__(self, store: JsonFileStore) -> None:
        self._store = store

    def get_theme(self) -> str:
        """Return the stored theme, ``light`` by default."""
        return str(self._store.get(THEME_KEY, DEFAULT_THEME))

    def set_theme(self, theme: str) -> bool:
        """Persist the theme name. Returns False on failure."""
        return self._store.set(THEME_KEY, theme)

    def get_language(self) -> str:
        """Return the stored UI language code, ``zh`` by default."""
        return str(self._store.get(LANGUAGE_KEY, DEFAULT_LANGUAGE))

    def set_language(self, language: str) -> bool:
        """Persist the UI language code.

        Args:
            language: Language code such as ``zh`` or ``en``.

        Returns:
            True if the value was written.
        """
        return self._store.set(LANGUAGE_KEY, language)
