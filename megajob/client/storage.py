"""
Client-side key-value storage.

String keys map to string values, persisted as a single JSON object in a
file, or held only in memory when no path is given. Plays the part of the
browser's localStorage for the auth service and the fallback database.
"""

import json
import logging
import os
from typing import Dict, List, Optional

from megajob.config import settings

logger = logging.getLogger(__name__)


class ClientStorage:
    """Persistent string key-value store."""

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = file_path
        self._data: Dict[str, str] = {}
        if self.file_path:
            self._data = self._read_data()

    @classmethod
    def default(cls) -> "ClientStorage":
        """Storage at the configured ``CLIENT_STORAGE_PATH``; memory only when unset."""
        return cls(settings.CLIENT_STORAGE_PATH)

    def _read_data(self) -> Dict[str, str]:
        """Read all entries from the JSON file"""
        if not os.path.exists(self.file_path):
            return {}
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            logger.error(f"Corrupt storage file: {self.file_path}, starting empty")
            return {}
        except OSError as e:
            logger.error(f"Error reading client storage: {e}")
            return {}

        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_data(self):
        """Write all entries to the JSON file"""
        if not self.file_path:
            return
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.file_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2)

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str):
        self._data[key] = str(value)
        self._write_data()

    def remove_item(self, key: str):
        if self._data.pop(key, None) is not None:
            self._write_data()

    def clear(self):
        self._data = {}
        self._write_data()

    def keys(self) -> List[str]:
        return list(self._data.keys())

    # JSON helpers used by the auth service and the fallback database

    def get_json(self, key: str, default=None):
        """Decode a stored JSON value. Unparseable values read as ``default``."""
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unparseable value for key '{key}'")
            return default

    def set_json(self, key: str, value):
        self.set_item(key, json.dumps(value, default=str))
