import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from storefront.client import BackendClient
from storefront.gateway import (
    PaymentDismissed, PaymentFailure, PaymentSuccess, PaymentWidget, WidgetOptions,
)
from storefront.schemas import (
    CartEntry, CartLine, CodOrderRequest, CreateOrderRequest, PaymentMethod,
    ShippingDetails, VerifyPaymentRequest,
)
from storefront.state import HOME, AppState
from storefront.utils import (
    AppException, PaymentReconciliationException, Settings,
    ShippingValidationException, describe_error,
)
from storefront.validation import ensure_valid_shipping

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"INR": "₹"}


def format_amount(amount: Decimal, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    return f"{symbol}{amount:.2f}"


class CheckoutStep(str, Enum):
    SHIPPING = "shipping"
    PAYMENT = "payment"


class CheckoutStatus(str, Enum):
    PLACED = "placed"
    INVALID = "invalid"
    EMPTY_CART = "empty_cart"
    BUSY = "busy"
    DISMISSED = "dismissed"
    PAYMENT_FAILED = "payment_failed"
    VERIFICATION_FAILED = "verification_failed"
    RECONCILIATION_FAILED = "reconciliation_failed"
    ERROR = "error"


@dataclass(frozen=True)
class CheckoutOutcome:
    status: CheckoutStatus
    order_number: Optional[str] = None
    payment_id: Optional[str] = None
    message: Optional[str] = None

    @property
    def placed(self) -> bool:
        return self.status == CheckoutStatus.PLACED


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping_cost: Decimal
    total: Decimal
    free_shipping_gap: Decimal = Decimal(0)

    @property
    def amount_minor(self) -> int:
        """Total in paise (or the currency's minor unit)."""
        return int((self.total * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_totals(entries: Iterable[CartEntry], threshold=500, shipping_cost=50) -> OrderTotals:
    subtotal = sum((e.unit_price * e.quantity for e in entries), Decimal(0))
    threshold = Decimal(threshold)
    shipping = Decimal(0) if subtotal > threshold else Decimal(shipping_cost)
    gap = threshold - subtotal if subtotal < threshold else Decimal(0)
    return OrderTotals(subtotal, shipping, subtotal + shipping, gap)


class CheckoutFlow:
    """
    Two-step checkout: Shipping -> Payment.

    Shipping details are validated before the flow may move to Payment.
    In Payment the chosen method decides which submission runs; success
    clears the cart and goes home, anything else keeps the user in Payment
    with the cart intact.
    """

    def __init__(
        self,
        state: AppState,
        client: BackendClient,
        widget: PaymentWidget,
        settings: Optional[Settings] = None,
    ):
        self.state = state
        self.client = client
        self.widget = widget
        self.settings = settings or state.settings
        self.step = CheckoutStep.SHIPPING
        self.shipping = ShippingDetails(country=self.settings.DEFAULT_COUNTRY)
        self.errors: Dict[str, str] = {}
        self.payment_method = PaymentMethod.ONLINE
        self.loading = False
        self.razorpay_key: Optional[str] = None

    async def start(self):
        try:
            self.razorpay_key = await self.client.get_razorpay_key()
        except AppException:
            logger.warning("Error fetching Razorpay key", exc_info=True)

    # --- Shipping step ---
    def update_field(self, name: str, value: str):
        fields = ShippingDetails.model_fields
        attr = name
        if name not in fields:
            attr = next((f for f, info in fields.items() if info.alias == name), None)
            if attr is None:
                raise KeyError(f"Unknown shipping field {name}")
        setattr(self.shipping, attr, value)
        self.errors.pop(fields[attr].alias or attr, None)

    def proceed_to_payment(self) -> bool:
        try:
            ensure_valid_shipping(self.shipping)
        except ShippingValidationException as exc:
            self.errors = exc.errors
            return False
        self.errors = {}
        self.step = CheckoutStep.PAYMENT
        return True

    def edit_shipping(self):
        self.step = CheckoutStep.SHIPPING

    # --- Payment step ---
    def select_payment_method(self, method: Union[PaymentMethod, str]):
        """Accepts a PaymentMethod or its name in any case ("online", "COD")."""
        if not isinstance(method, PaymentMethod):
            name = method.upper() if isinstance(method, str) else method
            try:
                method = PaymentMethod(name)
            except ValueError:
                choices = ", ".join(m.value for m in PaymentMethod)
                raise ValueError(f"Unknown payment method {method!r}; expected one of {choices}") from None
        self.payment_method = method

    def totals(self) -> OrderTotals:
        return compute_totals(
            self.state.cart,
            self.settings.FREE_SHIPPING_THRESHOLD,
            self.settings.SHIPPING_COST,
        )

    async def submit(self) -> CheckoutOutcome:
        if self.loading:
            return CheckoutOutcome(CheckoutStatus.BUSY)
        if self.state.cart.is_empty:
            return self._fail(CheckoutStatus.EMPTY_CART, "Your cart is empty")
        if self.step != CheckoutStep.PAYMENT:
            return CheckoutOutcome(CheckoutStatus.INVALID, message="Please complete your shipping details first")
        try:
            ensure_valid_shipping(self.shipping)
        except ShippingValidationException as exc:
            self.errors = exc.errors
            self.step = CheckoutStep.SHIPPING
            return CheckoutOutcome(
                CheckoutStatus.INVALID, message=describe_error(exc, "Please correct your shipping details"),
            )

        self.loading = True
        try:
            if self.payment_method == PaymentMethod.COD:
                return await self._place_cod_order()
            return await self._pay_online()
        finally:
            self.loading = False

    def _fail(self, status: CheckoutStatus, message: str, payment_id: Optional[str] = None) -> CheckoutOutcome:
        self.state.notifier.error(message)
        return CheckoutOutcome(status, payment_id=payment_id, message=message)

    def _placed(self, order_number: Optional[str], message: str, payment_id: Optional[str] = None) -> CheckoutOutcome:
        self.state.cart.clear()
        self.state.notifier.success(message)
        self.state.navigator.go(HOME)
        logger.info("Order placed", extra={"order_number": order_number})
        return CheckoutOutcome(CheckoutStatus.PLACED, order_number, payment_id, message)

    def _snapshot(self) -> List[CartLine]:
        return self.state.cart.lines(self.client.image_url)

    # --- Cash on delivery ---
    async def _place_cod_order(self) -> CheckoutOutcome:
        totals = self.totals()
        shipping = self.shipping.model_copy()
        payload = CodOrderRequest(
            shipping_details=shipping,
            cart=self._snapshot(),
            subtotal=totals.subtotal,
            shipping_cost=totals.shipping_cost,
            total=totals.total,
        )
        try:
            confirmation = await self.client.create_cod_order(payload)
        except AppException as exc:
            logger.error("Error creating COD order", exc_info=True)
            return self._fail(CheckoutStatus.ERROR, describe_error(exc, "Error processing order. Please try again."))

        amount = format_amount(totals.total, self.settings.CURRENCY)
        return self._placed(
            confirmation.order_number,
            f"Order placed successfully!\n\nOrder Number: {confirmation.order_number}\n\n"
            f"You will pay {amount} in cash upon delivery.\n\n"
            f"We'll send you updates via email at {shipping.email}",
        )

    # --- Online payment ---
    async def _pay_online(self) -> CheckoutOutcome:
        totals = self.totals()
        shipping = self.shipping.model_copy()
        cart = self._snapshot()

        # 1. Create the gateway order
        try:
            if not self.razorpay_key:
                self.razorpay_key = await self.client.get_razorpay_key()
            gateway_order = await self.client.create_order(CreateOrderRequest(
                amount=totals.amount_minor,
                currency=self.settings.CURRENCY,
                receipt=f"receipt_{uuid.uuid4().hex}",
                shipping_details=shipping,
                cart=cart,
                total=totals.total,
            ))
        except AppException as exc:
            logger.error("Error initiating payment", exc_info=True)
            return self._fail(CheckoutStatus.ERROR, describe_error(exc, "Error processing payment. Please try again."))

        # 2. Hand off to the widget
        options = WidgetOptions(
            key=self.razorpay_key,
            amount=gateway_order.amount,
            currency=gateway_order.currency,
            name=self.settings.STORE_NAME,
            description=self.settings.PAYMENT_DESCRIPTION,
            order_id=gateway_order.id,
            prefill={"name": shipping.full_name, "email": shipping.email, "contact": shipping.phone},
            notes={"address": shipping.one_line_address()},
            theme_color=self.settings.THEME_COLOR,
        )
        try:
            result = await self.widget.open(options)
        except Exception:
            logger.error("Error opening payment widget", exc_info=True)
            return self._fail(CheckoutStatus.ERROR, "Error processing payment. Please try again.")

        if isinstance(result, PaymentDismissed):
            logger.info("Payment widget dismissed")
            return CheckoutOutcome(CheckoutStatus.DISMISSED)
        if isinstance(result, PaymentFailure):
            logger.warning("Payment failed: %s", result.reason)
            return self._fail(CheckoutStatus.PAYMENT_FAILED, "Payment failed! Please try again.")

        # 3. Verify with the backend
        return await self._verify(result, shipping, cart, totals)

    async def _verify(
        self,
        payment: PaymentSuccess,
        shipping: ShippingDetails,
        cart: List[CartLine],
        totals: OrderTotals,
    ) -> CheckoutOutcome:
        try:
            verification = await self.client.verify_payment(VerifyPaymentRequest(
                razorpay_order_id=payment.order_id,
                razorpay_payment_id=payment.payment_id,
                razorpay_signature=payment.signature,
                shipping_details=shipping,
                cart=cart,
                total=totals.total,
            ))
        except AppException:
            logger.error("Error verifying payment %s", payment.payment_id, exc_info=True)
            exc = PaymentReconciliationException(payment.payment_id)
            return self._fail(CheckoutStatus.RECONCILIATION_FAILED, exc.detail, payment.payment_id)

        if not verification.success:
            logger.error("Payment verification rejected for %s", payment.payment_id)
            return self._fail(
                CheckoutStatus.VERIFICATION_FAILED,
                "Payment verification failed. Please contact support.",
                payment.payment_id,
            )

        return self._placed(
            verification.order_number,
            f"Order placed successfully!\n\nOrder Number: {verification.order_number}\n"
            f"Payment ID: {payment.payment_id}",
            payment.payment_id,
        )
