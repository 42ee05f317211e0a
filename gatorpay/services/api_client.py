"""
gatorpay/services/api_client.py

Purpose: GatorPay backend REST client

- One shared httpx.AsyncClient, created lazily and closed on shutdown
- Unwraps the {success, message, data} envelope
- Attaches the bearer token from the token store
- Maps transport failures to TransientNetworkError and server failures
  to BackendError (status codes are not interpreted further)
"""

import httpx
from pydantic import ValidationError as SchemaError
from typing import Any, Dict, Optional

from gatorpay.core.config import settings
from gatorpay.core.exceptions import BackendError, TransientNetworkError
from gatorpay.core.logging import get_logger
from gatorpay.db.token_store import TokenStore, MemoryTokenStore
from gatorpay.schemas.models import (
    LoginRequest,
    RegisterRequest,
    VerifyOTPRequest,
    ResendOTPRequest,
    AddMoneyRequest,
    WithdrawRequest,
    OTPSent,
    Session,
    Wallet,
    TransactionPage,
)
from gatorpay.schemas.response import ApiEnvelope
from gatorpay.utils import constants

logger = get_logger(__name__)


class GatorPayAPI:
    """
    Thin async client for the /auth and /wallet endpoints.
    """

    def __init__(
        self,
        token_store: Optional[TokenStore] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.token_store = token_store or MemoryTokenStore()
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._timeout = timeout or settings.API_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is not None and not self._client.is_closed:
            return self._client
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )
        return self._client

    async def close(self):
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None
    ) -> Any:
        """
        Sends one request and returns the envelope's `data`.

        Args:
            method: HTTP method
            path: Path below the API base URL
            json: Request body
            params: Query parameters
            token: Bearer token overriding the persisted one

        Raises:
            TransientNetworkError: Timeout or connection failure
            BackendError: Non-2xx status or success=false
        """
        client = await self._ensure_client()

        headers = {}
        bearer = token or self.token_store.get()
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"

        try:
            response = await client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"Backend timeout on {method} {path}")
            raise TransientNetworkError("GatorPay is taking too long to respond. Please try again.")
        except httpx.RequestError as e:
            logger.error(f"Network error on {method} {path}: {e}")
            raise TransientNetworkError()

        try:
            payload = response.json()
        except ValueError:
            payload = None

        envelope = None
        if isinstance(payload, dict):
            try:
                envelope = ApiEnvelope.model_validate(payload)
            except SchemaError:
                envelope = None

        if not response.is_success or envelope is None or not envelope.success:
            message = envelope.message if envelope and envelope.message else None
            if message is None and isinstance(payload, dict):
                message = payload.get("message") or payload.get("error")
            logger.warning(f"{method} {path} failed with {response.status_code}: {message}")
            raise BackendError(message or "", status_code=response.status_code)

        logger.debug(f"{method} {path} -> {response.status_code}")
        return envelope.data

    @staticmethod
    def _parse(model, data: Any, path: str):
        try:
            return model.model_validate(data)
        except SchemaError as e:
            logger.error(f"Unexpected payload from {path}: {e}")
            raise BackendError("Unexpected response from server", details=str(e))

    # Auth

    async def login(self, request: LoginRequest) -> OTPSent:
        data = await self._request("POST", constants.AUTH_LOGIN_PATH, json=request.model_dump())
        return self._parse(OTPSent, data, constants.AUTH_LOGIN_PATH)

    async def register(self, request: RegisterRequest) -> OTPSent:
        data = await self._request("POST", constants.AUTH_REGISTER_PATH, json=request.model_dump())
        return self._parse(OTPSent, data, constants.AUTH_REGISTER_PATH)

    async def verify_otp(self, request: VerifyOTPRequest) -> Session:
        data = await self._request("POST", constants.AUTH_VERIFY_OTP_PATH, json=request.model_dump(mode="json"))
        return self._parse(Session, data, constants.AUTH_VERIFY_OTP_PATH)

    async def resend_otp(self, request: ResendOTPRequest) -> OTPSent:
        data = await self._request("POST", constants.AUTH_RESEND_OTP_PATH, json=request.model_dump(mode="json"))
        return self._parse(OTPSent, data, constants.AUTH_RESEND_OTP_PATH)

    async def me(self, token: Optional[str] = None) -> Session:
        """Current profile; `token` defaults to the persisted one."""
        data = await self._request("GET", constants.AUTH_ME_PATH, token=token)
        return self._parse(Session, data, constants.AUTH_ME_PATH)

    # Wallet

    async def add_money(self, request: AddMoneyRequest) -> Wallet:
        data = await self._request("POST", constants.WALLET_ADD_PATH, json=request.model_dump())
        return self._parse(Wallet, data, constants.WALLET_ADD_PATH)

    async def withdraw(self, request: WithdrawRequest) -> Wallet:
        data = await self._request("POST", constants.WALLET_WITHDRAW_PATH, json=request.model_dump())
        return self._parse(Wallet, data, constants.WALLET_WITHDRAW_PATH)

    async def list_transactions(self, page: int = 1, limit: Optional[int] = None) -> TransactionPage:
        params = {"page": page, "limit": limit or settings.TRANSACTIONS_PAGE_SIZE}
        data = await self._request("GET", constants.WALLET_TRANSACTIONS_PATH, params=params)
        return self._parse(TransactionPage, data, constants.WALLET_TRANSACTIONS_PATH)
