import json
import logging
import os
from pathlib import Path
from typing import Optional, Dict

logger = logging.getLogger(__name__)

CART_KEY = "cart"
THEME_KEY = "theme"
TOKEN_KEY = "token"


class LocalStorage:
    """
    String key/value store kept in a single JSON file, surviving restarts.

    Reads never fail: a missing or corrupt file is an empty store.
    Writes are best-effort and only logged when the file cannot be saved.
    """

    def __init__(self, path):
        self.path = Path(os.path.expanduser(str(path)))
        self._items: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            logger.warning("Could not read storage file %s", self.path, exc_info=True)
            return {}

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Storage file %s is corrupt, starting empty", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(self._items), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError:
            logger.warning("Could not persist storage file %s", self.path, exc_info=True)

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        self._items[key] = value
        self._write()

    def remove_item(self, key: str):
        if self._items.pop(key, None) is not None:
            self._write()
