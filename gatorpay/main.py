"""
gatorpay/main.py

Purpose: Client entry point

- Loads configuration and logging
- Wires token store, API client, session store and navigator
- Creates screen controllers on demand
- Manages the client lifecycle (startup restore / shutdown)
- No business logic should be written here
"""

from contextlib import asynccontextmanager
from typing import Callable, Dict, Optional

import httpx

from gatorpay.core.config import Settings, settings, validate_settings
from gatorpay.core.logging import setup_logging, get_logger
from gatorpay.db.token_store import FileTokenStore, TokenStore
from gatorpay.flow.handlers.login import LoginScreen
from gatorpay.flow.handlers.otp import OtpScreen
from gatorpay.flow.handlers.register import RegisterScreen
from gatorpay.flow.handlers.transactions import TransactionsScreen
from gatorpay.flow.handlers.wallet import WalletScreen
from gatorpay.flow.navigation import Navigator
from gatorpay.services.api_client import GatorPayAPI
from gatorpay.services.session_service import SessionStore
from gatorpay.utils import constants

logger = get_logger(__name__)


class GatorPayApp:
    """
    Composition root of the client.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        token_store: Optional[TokenStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config or settings
        self.token_store = token_store or FileTokenStore(
            path=self.config.TOKEN_STORAGE_PATH,
            key=self.config.TOKEN_STORAGE_KEY,
        )
        self.api = GatorPayAPI(
            token_store=self.token_store,
            base_url=self.config.API_BASE_URL,
            timeout=self.config.API_TIMEOUT_SECONDS,
            transport=transport,
        )
        self.store = SessionStore(self.api, self.token_store)
        self.navigator = Navigator(self.store)
        self._auth_screens: Dict[str, OtpScreen] = {}
        self._unsubscribe_route = self.navigator.current.subscribe(self._close_auth_screens_off_route)

    # Screens

    def login_screen(self) -> LoginScreen:
        return self._open_auth_screen(constants.LOGIN_ROUTE, LoginScreen)

    def register_screen(self) -> RegisterScreen:
        return self._open_auth_screen(constants.REGISTER_ROUTE, RegisterScreen)

    def wallet_screen(self) -> WalletScreen:
        return WalletScreen(self.api, self.store, self.config)

    def transactions_screen(self) -> TransactionsScreen:
        return TransactionsScreen(self.api, self.config)

    def logout(self) -> None:
        self.store.clear()

    def _open_auth_screen(self, route: str, factory: Callable[..., OtpScreen]) -> OtpScreen:
        """
        One live screen per auth destination: opening it again tears the
        previous one down (its cooldown timer and pending challenge included).
        """
        previous = self._auth_screens.pop(route, None)
        if previous is not None:
            previous.close()

        screen = factory(self.api, self.store, self.navigator, self.config)
        self._auth_screens[route] = screen
        return screen

    def _close_auth_screens_off_route(self, route: Optional[str]) -> None:
        for screen_route in [r for r in self._auth_screens if r != route]:
            self._auth_screens.pop(screen_route).close()
            logger.debug(f"Closed {screen_route} screen after navigating to {route}")

    # Lifecycle

    async def start(self) -> bool:
        """
        Restores the persisted session and opens the landing destination.

        Returns:
            True if a session was restored
        """
        logger.info("🚀 Starting GatorPay client...")

        validate_settings(self.config)
        logger.info("✅ Configuration validated")

        restored = await self.store.restore()
        if restored:
            logger.info("✅ Session restored")
        else:
            logger.info("No active session, sign-in required")

        self.navigator.navigate(constants.DEFAULT_AUTHENTICATED_ROUTE)
        logger.info(f"Environment: {self.config.ENVIRONMENT}")
        return restored

    async def shutdown(self) -> None:
        logger.info("🛑 Shutting down GatorPay client...")

        self._unsubscribe_route()
        for route in list(self._auth_screens):
            self._auth_screens.pop(route).close()

        self.navigator.close()
        await self.api.close()
        logger.info("✅ HTTP client closed")


@asynccontextmanager
async def lifespan(config: Optional[Settings] = None, **kwargs):
    """
    Client lifespan manager.

    Usage:
        async with lifespan() as app:
            screen = app.login_screen()
    """
    config = config or settings
    setup_logging(config)

    app = GatorPayApp(config=config, **kwargs)
    try:
        await app.start()
    except Exception as e:
        logger.critical(f"Failed to start client: {str(e)}", exc_info=True)
        await app.shutdown()
        raise

    try:
        yield app
    finally:
        await app.shutdown()
