from decimal import Decimal

from storefront.schemas import Product, ShippingDetails


class ScriptedWidget:
    """Payment widget that answers every open() with a fixed result."""

    def __init__(self, result):
        self.result = result
        self.opened = []

    async def open(self, options):
        self.opened.append(options)
        return self.result


def make_product(product_id=1, price="250", available=True, **fields) -> Product:
    data = dict(
        id=product_id,
        name=f"Product {product_id}",
        brand="Ayaan",
        category="Almonds",
        price=Decimal(price),
        product_available=available,
    )
    data.update(fields)
    return Product(**data)


def valid_shipping() -> ShippingDetails:
    return ShippingDetails(
        full_name="Asha Rao",
        email="asha@example.com",
        phone="9876543210",
        address="12 MG Road",
        city="Mumbai",
        state="Maharashtra",
        pincode="400001",
    )
