import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from storefront.cart import CartStore
from storefront.storage import LocalStorage, THEME_KEY, TOKEN_KEY
from storefront.utils import Settings, settings as default_settings, token_expired

logger = logging.getLogger(__name__)

# Routes
HOME = "/"
ADMIN_LOGIN = "/admin/login"

LIGHT_THEME = "light-theme"
DARK_THEME = "dark-theme"


class Level(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notification:
    level: Level
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """User-facing messages, newest last."""

    def __init__(self):
        self.messages: List[Notification] = []

    def notify(self, level: Level, message: str) -> Notification:
        notification = Notification(level, message)
        self.messages.append(notification)
        logger.info("User notified (%s)", level.value)
        return notification

    def info(self, message: str) -> Notification:
        return self.notify(Level.INFO, message)

    def success(self, message: str) -> Notification:
        return self.notify(Level.SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.notify(Level.ERROR, message)

    @property
    def last(self) -> Optional[Notification]:
        return self.messages[-1] if self.messages else None


class Navigator:
    def __init__(self, location: str = HOME):
        self.location = location
        self.history: List[str] = [location]

    def go(self, path: str):
        self.location = path
        self.history.append(path)


class AppState:
    """
    Everything the storefront keeps between actions.

    Created once at startup and handed to each component; anything that
    must survive a restart is written back to local storage on change.
    """

    def __init__(self, storage: LocalStorage, settings: Settings = default_settings):
        self.settings = settings
        self.storage = storage
        self.cart = CartStore.load(storage)
        self.notifier = Notifier()
        self.navigator = Navigator()
        self._theme = storage.get_item(THEME_KEY) or LIGHT_THEME

    @classmethod
    def load(cls, settings: Settings = default_settings) -> "AppState":
        return cls(LocalStorage(settings.STORAGE_PATH), settings)

    # --- Theme ---
    @property
    def theme(self) -> str:
        return self._theme

    def toggle_theme(self) -> str:
        self._theme = DARK_THEME if self._theme == LIGHT_THEME else LIGHT_THEME
        self.storage.set_item(THEME_KEY, self._theme)
        return self._theme

    # --- Auth token ---
    @property
    def token(self) -> Optional[str]:
        token = self.storage.get_item(TOKEN_KEY)
        if token and token_expired(token):
            logger.info("Stored admin token has expired")
            self.discard_token()
            return None
        return token or None

    @property
    def is_admin(self) -> bool:
        return self.token is not None

    def set_token(self, token: str):
        self.storage.set_item(TOKEN_KEY, token)

    def discard_token(self):
        self.storage.remove_item(TOKEN_KEY)
