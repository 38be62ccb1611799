from datetime import datetime, timezone
from typing import Any, Optional, Dict
from pydantic_settings import BaseSettings
from jose import JWTError, jwt

# --- Configuration ---
class Settings(BaseSettings):
    API_URL: str = "http://localhost:8080/api"
    STORAGE_PATH: str = "~/.storefront/storage.json"
    LOG_LEVEL: str = "INFO"
    CURRENCY: str = "INR"
    STORE_NAME: str = "AYaan's Dry-fruit Store"
    PAYMENT_DESCRIPTION: str = "Order Payment"
    THEME_COLOR: str = "#6366f1"
    DEFAULT_COUNTRY: str = "India"
    FREE_SHIPPING_THRESHOLD: int = 500
    SHIPPING_COST: int = 50
    SEARCH_MIN_LENGTH: int = 2
    RECENT_ORDERS_LIMIT: int = 5

    class Config:
        env_file = ".env"

settings = Settings()

# --- Tokens ---
def token_expired(token: str, now: Optional[datetime] = None) -> bool:
    """
    Read the exp claim of an admin token without verifying it.
    Opaque tokens carry no claims and never expire client-side.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return False

    exp = claims.get("exp")
    if exp is None:
        return False
    now = now or datetime.now(timezone.utc)
    return now.timestamp() >= float(exp)


# --- Exceptions ---
class AppException(Exception):
    def __init__(
        self,
        status_code: Optional[int] = None,
        detail: str = "An error occurred",
    ):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail

class ShippingValidationException(AppException):
    def __init__(self, errors: Dict[str, str]):
        super().__init__(detail="Please correct the highlighted fields")
        self.errors = errors

class ServiceUnavailableException(AppException):
    def __init__(self, detail: str = "Cannot connect to server. Please try again."):
        super().__init__(detail=detail)

class BackendException(AppException):
    def __init__(
        self,
        status_code: int,
        detail: str = "Request failed",
        server_message: Optional[str] = None,
        body: Any = None,
    ):
        super().__init__(status_code=status_code, detail=server_message or detail)
        self.server_message = server_message
        # Parsed JSON error body, if the server sent one
        self.body = body

class NotFoundException(BackendException):
    def __init__(self, detail: str = "Resource not found", server_message: Optional[str] = None):
        super().__init__(404, detail, server_message)

class UnauthorizedException(BackendException):
    def __init__(self, detail: str = "Unauthorized", server_message: Optional[str] = None):
        super().__init__(401, detail, server_message)

class DecodingException(AppException):
    def __init__(self, detail: str = "Unexpected response from server"):
        super().__init__(detail=detail)

class PaymentReconciliationException(AppException):
    def __init__(self, payment_id: str):
        super().__init__(
            detail=(
                "Payment successful but order processing failed. "
                f"Please contact support with Payment ID: {payment_id}"
            )
        )
        self.payment_id = payment_id


def describe_error(exc: Exception, fallback: str) -> str:
    """Turn an exception into the message shown to the user."""
    if isinstance(exc, ServiceUnavailableException):
        return exc.detail
    if isinstance(exc, BackendException) and exc.server_message:
        return exc.server_message
    if isinstance(exc, (ShippingValidationException, PaymentReconciliationException)):
        return exc.detail
    return fallback
