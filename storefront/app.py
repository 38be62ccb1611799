from typing import Optional

import httpx

from storefront.admin import OrderAdminConsole
from storefront.auth import AdminAuth
from storefront.catalog import ProductCatalog
from storefront.checkout import CheckoutFlow
from storefront.client import BackendClient
from storefront.gateway import PaymentWidget
from storefront.logging_config import setup_logging
from storefront.state import AppState
from storefront.storage import LocalStorage
from storefront.utils import Settings, settings as default_settings


class Storefront:
    """
    Wires one AppState into every component.

    Use as an async context manager so the HTTP client is closed on exit.
    """

    def __init__(
        self,
        state: AppState,
        widget: PaymentWidget,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.state = state
        self.widget = widget
        self.client = BackendClient(state, transport=transport)
        self.catalog = ProductCatalog(state, self.client)
        self.auth = AdminAuth(state, self.client)
        self.orders = OrderAdminConsole(state, self.client)

    def checkout(self) -> CheckoutFlow:
        """A fresh checkout session, starting at the shipping step."""
        return CheckoutFlow(self.state, self.client, self.widget)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.client.aclose()


def create_storefront(
    widget: PaymentWidget,
    settings: Settings = default_settings,
    storage: Optional[LocalStorage] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    configure_logging: bool = True,
) -> Storefront:
    if configure_logging:
        setup_logging("storefront", settings.LOG_LEVEL)
    storage = storage or LocalStorage(settings.STORAGE_PATH)
    state = AppState(storage, settings)
    return Storefront(state, widget, transport)
