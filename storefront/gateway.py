"""
Hand-off to the hosted payment widget.

The widget is opaque: the checkout supplies its configuration and awaits a
single outcome instead of registering success/failure/dismiss callbacks.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Union


@dataclass(frozen=True)
class WidgetOptions:
    key: str
    amount: int
    currency: str
    name: str
    description: str
    order_id: str
    prefill: Dict[str, str] = field(default_factory=dict)
    notes: Dict[str, str] = field(default_factory=dict)
    theme_color: Optional[str] = None


@dataclass(frozen=True)
class PaymentSuccess:
    payment_id: str
    order_id: str
    signature: str


@dataclass(frozen=True)
class PaymentFailure:
    reason: str = "Payment failed"


@dataclass(frozen=True)
class PaymentDismissed:
    pass


PaymentResult = Union[PaymentSuccess, PaymentFailure, PaymentDismissed]


class PaymentWidget(Protocol):
    async def open(self, options: WidgetOptions) -> PaymentResult:
        ...
