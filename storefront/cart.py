import json
import logging
from decimal import Decimal
from typing import Callable, Iterator, List, Optional

from pydantic import ValidationError

from storefront.models import CartDocument, utcnow
from storefront.schemas import CartEntry, CartLine, Product
from storefront.storage import CART_KEY, LocalStorage

logger = logging.getLogger(__name__)


class CartStore:
    """
    Ordered (product, quantity) selections, saved to local storage after
    every change. Holds at most one entry per product id.
    """

    def __init__(self, storage: LocalStorage, entries: Optional[List[CartEntry]] = None):
        self.storage = storage
        self._entries: List[CartEntry] = list(entries or [])

    @classmethod
    def load(cls, storage: LocalStorage) -> "CartStore":
        raw = storage.get_item(CART_KEY)
        if not raw:
            return cls(storage)
        try:
            data = json.loads(raw)
            # Older snapshots were a bare list of entries
            if isinstance(data, list):
                data = {"items": data}
            document = CartDocument.model_validate(data)
        except (ValueError, ValidationError):
            logger.warning("Discarding unreadable cart snapshot")
            return cls(storage)
        return cls(storage, document.items)

    def _persist(self):
        document = CartDocument(items=self._entries, updated_at=utcnow())
        self.storage.set_item(CART_KEY, document.model_dump_json(by_alias=True))

    # --- Queries ---
    @property
    def entries(self) -> List[CartEntry]:
        return list(self._entries)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CartEntry]:
        return iter(list(self._entries))

    def get(self, product_id: int) -> Optional[CartEntry]:
        for entry in self._entries:
            if entry.product_id == product_id:
                return entry
        return None

    def total(self) -> Decimal:
        return sum((entry.line_total for entry in self._entries), Decimal(0))

    def lines(self, image_url: Optional[Callable[[int], str]] = None) -> List[CartLine]:
        """Snapshot of the cart in the shape the order endpoints expect."""
        snapshot = []
        for entry in self._entries:
            image = entry.image_ref
            if not image and image_url:
                image = image_url(entry.product_id)
            snapshot.append(CartLine(
                id=entry.product_id,
                name=entry.name,
                brand=entry.brand,
                category=entry.category,
                price=entry.unit_price,
                quantity=entry.quantity,
                image_url=image,
            ))
        return snapshot

    # --- Mutations ---
    def add(self, product: Product, image_ref: Optional[str] = None) -> CartEntry:
        existing = self.get(product.id)
        if existing:
            existing.quantity += 1
            entry = existing
        else:
            entry = CartEntry(
                product_id=product.id,
                name=product.name,
                brand=product.brand,
                category=product.category,
                unit_price=product.price,
                quantity=1,
                image_ref=image_ref,
            )
            self._entries.append(entry)
        self._persist()
        return entry

    def remove(self, product_id: int):
        self._entries = [e for e in self._entries if e.product_id != product_id]
        self._persist()

    def set_quantity(self, product_id: int, quantity: int):
        entry = self.get(product_id)
        if entry is None:
            return
        entry.quantity = max(1, int(quantity))
        self._persist()

    def clear(self):
        self._entries = []
        self._persist()
