"""Durable client storage: a small JSON key/value file that survives between sessions."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

# --- Fixed storage keys ---
LOCAL_USERS_KEY = "addedLocalUsers"
AUTH_TOKEN_KEY = "authToken"
CURRENT_USER_KEY = "currentUser"
FILTER_PRESETS_KEY = "filterPresets"
MESSAGE_HISTORY_KEY = "messageHistory"


class LocalStorage:
    """
    JSON-backed key/value store.

    With `path=None` the data only lives in memory. Unreadable files are logged and
    treated as empty; writes go through a temporary file so a crash never leaves a
    half-written document behind.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self._data = self._load()

    def _load(self) -> dict:
        if self.path is None or not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not load persisted client state from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Ignoring persisted client state in {self.path}: expected a JSON object.")
            return {}
        return data

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def remove(self, *keys: str) -> None:
        changed = False
        for key in keys:
            if key in self._data:
                del self._data[key]
                changed = True
        if changed:
            self._save()

    def __contains__(self, key: str) -> bool:
        return key in self._data
