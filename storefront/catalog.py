import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from storefront.client import BackendClient
from storefront.schemas import ALL_PRODUCTS_SECTION, Product, ProductForm
from storefront.state import HOME, AppState
from storefront.utils import AppException, describe_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    subtitle: str


# Add more here to extend the storefront
SECTIONS = [
    Section("new-arrivals", "New Arrivals", "Freshly added to our store"),
    Section("kashmiri-special", "Kashmiri Special", "Premium authentic products from Kashmir"),
    Section("best-sellers", "Best Sellers", "Customer favorites"),
    Section(ALL_PRODUCTS_SECTION, "All Products", "Complete collection"),
]

CATEGORIES = ["Almonds", "Cashews", "Dates", "Walnuts", "Pistachios", "Raisins", "Figs"]


class ProductCatalog:
    """Product listing, search and admin product maintenance."""

    def __init__(self, state: AppState, client: BackendClient):
        self.state = state
        self.client = client
        self.products: List[Product] = []
        self.loading = False
        self.error: Optional[str] = None

    def image_url(self, product_id: int) -> str:
        return self.client.image_url(product_id)

    async def _with_image(self, product: Product) -> Product:
        try:
            image = await self.client.get_product_image(product.id)
        except AppException:
            logger.debug("No image for product %s", product.id)
            image = None
        return product.model_copy(update={"image": image})

    async def _with_images(self, products: List[Product]) -> List[Product]:
        # Each image lands on its own product; completion order does not matter
        return list(await asyncio.gather(*(self._with_image(p) for p in products)))

    async def refresh(self) -> List[Product]:
        self.loading = True
        try:
            products = await self.client.get_products()
            self.products = await self._with_images(products)
            self.error = None
        except AppException as exc:
            logger.error("Error fetching products", exc_info=True)
            self.error = describe_error(exc, "Error loading products")
        finally:
            self.loading = False
        return self.products

    async def search(self, keyword: str) -> List[Product]:
        if len(keyword) < self.state.settings.SEARCH_MIN_LENGTH:
            return []
        try:
            results = await self.client.search_products(keyword)
        except AppException:
            logger.error("Search error", exc_info=True)
            return []
        return await self._with_images(results)

    async def get(self, product_id: int) -> Optional[Product]:
        try:
            product = await self.client.get_product(product_id)
        except AppException as exc:
            logger.error("Error fetching product %s", product_id, exc_info=True)
            self.state.notifier.error(describe_error(exc, "Error loading product"))
            return None
        return await self._with_image(product)

    def in_section(self, section_id: str, category: Optional[str] = None) -> List[Product]:
        if category and category not in CATEGORIES:
            raise ValueError(f"Unknown category {category!r}")
        return [
            p for p in self.products
            if section_id in p.sections and (not category or p.category == category)
        ]

    def add_to_cart(self, product: Product) -> bool:
        if not product.product_available:
            self.state.notifier.error("Out of Stock")
            return False
        self.state.cart.add(product, image_ref=self.image_url(product.id))
        self.state.notifier.success("Added to cart!")
        return True

    # --- Admin ---
    async def save_product(
        self,
        form: ProductForm,
        image: Optional[bytes] = None,
        product_id: Optional[int] = None,
        image_name: str = "image.jpg",
        image_type: str = "image/jpeg",
    ) -> Optional[Product]:
        try:
            if product_id is None:
                product = await self.client.create_product(form, image, image_name, image_type)
                message = "Product added successfully!"
            else:
                product = await self.client.update_product(product_id, form, image, image_name, image_type)
                message = "Product updated successfully!"
        except AppException as exc:
            logger.error("Error saving product", exc_info=True)
            self.state.notifier.error(describe_error(exc, "Error saving product"))
            return None

        self.state.notifier.success(message)
        await self.refresh()
        self.state.navigator.go(HOME)
        return product

    async def delete_product(self, product_id: int, confirm: Callable[[str], bool]) -> bool:
        if not confirm("Are you sure you want to delete this product?"):
            return False
        try:
            await self.client.delete_product(product_id)
        except AppException as exc:
            logger.error("Error deleting product %s", product_id, exc_info=True)
            self.state.notifier.error(describe_error(exc, "Error deleting product"))
            return False

        self.state.notifier.success("Product deleted successfully!")
        await self.refresh()
        self.state.navigator.go(HOME)
        return True
