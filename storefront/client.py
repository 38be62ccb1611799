import json
import time
import uuid
import logging
from typing import Any, Optional, List

import httpx

from storefront.logging_config import RequestLogger
from storefront.schemas import (
    CodOrderConfirmation, CodOrderRequest, CreateOrderRequest, GatewayOrder,
    LoginRequest, LoginResponse, Order, OrderStatus, Product, ProductForm,
    RazorpayKey, StatusUpdate, VerificationResult, VerifyPaymentRequest, decode,
)
from storefront.state import ADMIN_LOGIN, AppState
from storefront.utils import (
    BackendException, DecodingException, NotFoundException,
    ServiceUnavailableException, Settings, UnauthorizedException,
)

logger = logging.getLogger(__name__)

# Keys a backend error body may carry its message under
ERROR_MESSAGE_KEYS = ("message", "error", "detail")


def response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def server_message(response: httpx.Response) -> Optional[str]:
    body = response_body(response)
    if isinstance(body, dict):
        for key in ERROR_MESSAGE_KEYS:
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


class BackendClient:
    """
    Thin async wrapper over the store's REST API.

    Admin-scoped calls carry the stored bearer token; a missing token or a
    401 drops the token and sends the user to the login route.
    """

    def __init__(
        self,
        state: AppState,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.state = state
        self.settings = settings or state.settings
        self.base_url = self.settings.API_URL.rstrip("/")
        self.request_logger = RequestLogger()
        self._http = httpx.AsyncClient(base_url=self.base_url, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    def image_url(self, product_id: int) -> str:
        return f"{self.base_url}/product/{product_id}/image"

    # --- Transport ---
    def _unauthorized(self, detail: str, message: Optional[str] = None):
        self.state.discard_token()
        self.state.navigator.go(ADMIN_LOGIN)
        return UnauthorizedException(detail, server_message=message)

    async def _request(self, method: str, path: str, auth: bool = False, **kwargs) -> httpx.Response:
        request_id = str(uuid.uuid4())
        headers = kwargs.pop("headers", {})
        headers["X-Request-ID"] = request_id

        if auth:
            token = self.state.token
            if not token:
                raise self._unauthorized("Please log in as admin")
            headers["Authorization"] = f"Bearer {token}"

        request = self._http.build_request(method, path, headers=headers, **kwargs)
        start_time = time.time()
        try:
            response = await self._http.send(request)
        except httpx.RequestError:
            duration = (time.time() - start_time) * 1000
            self.request_logger.log_request(request, None, duration, request_id, exc_info=True)
            raise ServiceUnavailableException()

        duration = (time.time() - start_time) * 1000
        self.request_logger.log_request(request, response.status_code, duration, request_id)

        if response.status_code == 401 and auth:
            raise self._unauthorized("Session expired. Please login again.", server_message(response))
        if response.status_code == 404:
            raise NotFoundException(server_message=server_message(response))
        if response.is_error:
            raise BackendException(
                response.status_code,
                server_message=server_message(response),
                body=response_body(response),
            )
        return response

    async def _json(self, method: str, path: str, model, auth: bool = False, **kwargs):
        response = await self._request(method, path, auth=auth, **kwargs)
        try:
            data = response.json()
        except ValueError:
            raise DecodingException(f"Expected JSON from {path}")
        return decode(model, data)

    # --- Products ---
    async def get_products(self) -> List[Product]:
        return await self._json("GET", "/products", List[Product])

    async def search_products(self, keyword: str) -> List[Product]:
        return await self._json("GET", "/products/search", List[Product], params={"keyword": keyword})

    async def get_product(self, product_id: int) -> Product:
        return await self._json("GET", f"/product/{product_id}", Product)

    async def get_product_image(self, product_id: int) -> bytes:
        response = await self._request("GET", f"/product/{product_id}/image")
        return response.content

    def _product_parts(self, form: ProductForm, image: Optional[bytes], image_name: str, image_type: str):
        payload = json.dumps(form.model_dump(mode="json", by_alias=True))
        files = {"product": ("product.json", payload.encode("utf-8"), "application/json")}
        if image is not None:
            files["imageFile"] = (image_name, image, image_type)
        return files

    async def create_product(
        self,
        form: ProductForm,
        image: Optional[bytes] = None,
        image_name: str = "image.jpg",
        image_type: str = "image/jpeg",
    ) -> Product:
        files = self._product_parts(form, image, image_name, image_type)
        return await self._json("POST", "/product", Product, auth=True, files=files)

    async def update_product(
        self,
        product_id: int,
        form: ProductForm,
        image: Optional[bytes] = None,
        image_name: str = "image.jpg",
        image_type: str = "image/jpeg",
    ) -> Product:
        files = self._product_parts(form, image, image_name, image_type)
        return await self._json("PUT", f"/product/{product_id}", Product, auth=True, files=files)

    async def delete_product(self, product_id: int):
        await self._request("DELETE", f"/product/{product_id}", auth=True)

    # --- Orders (admin) ---
    async def get_orders(self) -> List[Order]:
        return await self._json("GET", "/orders", List[Order], auth=True)

    async def update_order_status(self, order_id: int, status: OrderStatus):
        body = StatusUpdate(status=status).model_dump(mode="json", by_alias=True)
        await self._request("PUT", f"/order/{order_id}/status", auth=True, json=body)

    async def delete_order(self, order_id: int):
        await self._request("DELETE", f"/order/{order_id}", auth=True)

    # --- Checkout ---
    async def create_order(self, payload: CreateOrderRequest) -> GatewayOrder:
        body = payload.model_dump(mode="json", by_alias=True)
        return await self._json("POST", "/create-order", GatewayOrder, json=body)

    async def create_cod_order(self, payload: CodOrderRequest) -> CodOrderConfirmation:
        body = payload.model_dump(mode="json", by_alias=True)
        return await self._json("POST", "/create-cod-order", CodOrderConfirmation, json=body)

    async def verify_payment(self, payload: VerifyPaymentRequest) -> VerificationResult:
        """
        A rejected payment may come back with an error status; any body that
        still carries a boolean `success` is a verdict, not a transport error.
        """
        body = payload.model_dump(mode="json", by_alias=True)
        try:
            return await self._json("POST", "/verify-payment", VerificationResult, json=body)
        except BackendException as exc:
            if isinstance(exc.body, dict) and isinstance(exc.body.get("success"), bool):
                logger.warning("Verification answered with status %s", exc.status_code)
                return decode(VerificationResult, exc.body)
            raise

    async def get_razorpay_key(self) -> str:
        result = await self._json("GET", "/razorpay-key", RazorpayKey)
        return result.key

    # --- Auth ---
    async def admin_login(self, username: str, password: str) -> str:
        body = LoginRequest(username=username, password=password).model_dump(by_alias=True)
        result = await self._json("POST", "/admin/login", LoginResponse, json=body)
        return result.token
