import logging

from storefront.client import BackendClient
from storefront.state import ADMIN_LOGIN, HOME, AppState
from storefront.utils import AppException, describe_error

logger = logging.getLogger(__name__)


class AdminAuth:
    def __init__(self, state: AppState, client: BackendClient):
        self.state = state
        self.client = client
        self.loading = False
        self.error = ""

    async def login(self, username: str, password: str) -> bool:
        self.error = ""
        self.loading = True
        try:
            token = await self.client.admin_login(username, password)
        except AppException as exc:
            logger.warning("Admin login failed for %s", username)
            self.error = describe_error(exc, "Invalid credentials!")
            return False
        finally:
            self.loading = False

        self.state.set_token(token)
        self.state.navigator.go(HOME)
        return True

    def logout(self):
        self.state.discard_token()
        self.state.navigator.go(ADMIN_LOGIN)

    def require_admin(self) -> bool:
        if self.state.is_admin:
            return True
        self.state.navigator.go(ADMIN_LOGIN)
        return False
