import asyncio
from decimal import Decimal

import pytest

from storefront.catalog import CATEGORIES, SECTIONS, ProductCatalog
from storefront.schemas import ProductForm
from storefront.state import HOME, Level


@pytest.fixture
def catalog(state, client):
    return ProductCatalog(state, client)


async def test_refresh_attaches_each_image_to_its_product(catalog, backend):
    backend.add_product(id=1, name="Almonds", image=b"almond-bytes")
    backend.add_product(id=2, name="Cashews", image=None)
    backend.add_product(id=3, name="Dates", image=b"date-bytes")

    products = await catalog.refresh()

    images = {p.id: p.image for p in products}
    assert images == {1: b"almond-bytes", 2: None, 3: b"date-bytes"}
    assert catalog.error is None
    assert catalog.loading is False


async def test_image_fetches_run_concurrently(catalog, client, backend, monkeypatch):
    for product_id in (1, 2, 3):
        backend.add_product(id=product_id)
    in_flight = 0
    peak = 0

    async def slow_image(product_id):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return b"img"

    monkeypatch.setattr(client, "get_product_image", slow_image)

    await catalog.refresh()

    assert peak == 3


async def test_refresh_failure_sets_error(catalog, backend):
    backend.fail("products", 500)

    assert await catalog.refresh() == []
    assert catalog.error == "Error loading products"


async def test_short_search_makes_no_request(catalog, backend):
    backend.add_product(id=1, name="Almonds")

    assert await catalog.search("a") == []


async def test_search_returns_matches_with_images(catalog, backend):
    backend.add_product(id=1, name="Kashmiri Walnuts", image=b"w")
    backend.add_product(id=2, name="Dates")

    results = await catalog.search("wal")

    assert [(p.id, p.image) for p in results] == [(1, b"w")]


async def test_get_missing_product_notifies(catalog, state):
    assert await catalog.get(404) is None
    assert state.notifier.last.message == "Product not found"


async def test_sections_and_category_filter(catalog, backend):
    backend.add_product(id=1, category="Almonds", sections="new-arrivals,all-products")
    backend.add_product(id=2, category="Dates", sections="new-arrivals")
    backend.add_product(id=3, category="Almonds", sections="best-sellers")
    await catalog.refresh()

    assert [p.id for p in catalog.in_section("new-arrivals")] == [1, 2]
    assert [p.id for p in catalog.in_section("new-arrivals", "Almonds")] == [1]
    assert [p.id for p in catalog.in_section("kashmiri-special")] == []
    assert [s.id for s in SECTIONS][-1] == "all-products"


async def test_unknown_category_is_rejected(catalog):
    assert "Figs" in CATEGORIES

    with pytest.raises(ValueError, match="Unknown category"):
        catalog.in_section("all-products", "Chocolates")


async def test_add_to_cart_refuses_unavailable(catalog, state, backend):
    backend.add_product(id=1, productAvailable=False)
    backend.add_product(id=2, price=80.0)
    await catalog.refresh()
    unavailable, available = catalog.products

    assert catalog.add_to_cart(unavailable) is False
    assert state.cart.is_empty
    assert catalog.add_to_cart(available) is True
    assert state.cart.get(2).image_ref == "http://testserver/api/product/2/image"
    assert state.cart.total() == Decimal("80")
    assert state.notifier.last.message == "Added to cart!"


async def test_save_new_product_uploads_form_and_image(catalog, state, backend, admin_token):
    form = ProductForm(name="Figs", brand="Ayaan", price=Decimal("420"), category="Figs",
                       stock_quantity=5, product_available=True)
    form.toggle_section("best-sellers")

    product = await catalog.save_product(form, image=b"fig-bytes", image_name="figs.png", image_type="image/png")

    upload = backend.uploads[-1]
    assert upload["product"]["name"] == "Figs"
    assert upload["product"]["price"] == 420.0
    assert upload["product"]["sections"] == "all-products,best-sellers"
    assert upload["image"] == b"fig-bytes"
    assert product.name == "Figs"
    assert [p.name for p in catalog.products] == ["Figs"]
    assert state.navigator.location == HOME
    assert state.notifier.last.message == "Product added successfully!"


async def test_update_product_without_image(catalog, backend, admin_token):
    backend.add_product(id=9, name="Raisins")
    form = ProductForm(name="Golden Raisins", brand="Ayaan", price=Decimal("150"), category="Raisins")

    product = await catalog.save_product(form, product_id=9)

    assert product.name == "Golden Raisins"
    assert backend.uploads[-1]["image"] is None


async def test_save_product_requires_admin(catalog, state, backend):
    form = ProductForm(name="Figs", brand="Ayaan", price=Decimal("420"), category="Figs")

    assert await catalog.save_product(form) is None
    assert backend.uploads == []
    assert state.notifier.last.level == Level.ERROR


async def test_delete_product_needs_confirmation(catalog, backend, admin_token):
    backend.add_product(id=1)

    assert await catalog.delete_product(1, lambda _: False) is False
    assert 1 in backend.products

    assert await catalog.delete_product(1, lambda _: True) is True
    assert 1 not in backend.products


def test_toggle_section_never_empties():
    form = ProductForm(name="Figs", brand="Ayaan", price=Decimal("1"), category="Figs")

    form.toggle_section("all-products")

    assert form.sections == ["all-products"]
