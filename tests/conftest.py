import httpx
import pytest
import pytest_asyncio

from storefront.client import BackendClient
from storefront.gateway import PaymentSuccess
from storefront.state import AppState
from storefront.storage import LocalStorage
from storefront.utils import Settings

from tests.fake_backend import FakeBackend
from tests.helpers import ScriptedWidget


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def settings(tmp_path):
    return Settings(API_URL="http://testserver/api", STORAGE_PATH=str(tmp_path / "storage.json"))


@pytest.fixture
def storage(settings):
    return LocalStorage(settings.STORAGE_PATH)


@pytest.fixture
def state(storage, settings):
    return AppState(storage, settings)


@pytest.fixture
def transport(backend):
    return httpx.ASGITransport(app=backend.app)


@pytest_asyncio.fixture
async def client(state, transport):
    async with BackendClient(state, transport=transport) as client:
        yield client


@pytest.fixture
def admin_token(state, backend):
    token = backend.issue_token()
    state.set_token(token)
    return token


@pytest.fixture
def widget():
    return ScriptedWidget(PaymentSuccess(payment_id="pay_1", order_id="order_gw_1", signature="sig_1"))
