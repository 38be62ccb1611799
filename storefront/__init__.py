from storefront.app import Storefront, create_storefront
from storefront.cart import CartStore
from storefront.checkout import CheckoutFlow, CheckoutStatus, CheckoutStep
from storefront.state import AppState

__version__ = "1.0.0"

__all__ = [
    "AppState",
    "CartStore",
    "CheckoutFlow",
    "CheckoutStatus",
    "CheckoutStep",
    "Storefront",
    "create_storefront",
]
