"""
gatorpay/flow/handlers/wallet.py

Handles: wallet screen (balance, add money, withdraw)

The balance shown is always the server's; a successful operation replaces
the store's wallet with the one the backend returns.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Set

from gatorpay.core.config import Settings, settings
from gatorpay.core.errors import handle_screen_errors
from gatorpay.core.exceptions import ValidationError
from gatorpay.core.logging import get_logger
from gatorpay.schemas.models import AddMoneyRequest, Wallet, WithdrawRequest
from gatorpay.schemas.response import ErrorResponse
from gatorpay.services.api_client import GatorPayAPI
from gatorpay.services.observable import Observable
from gatorpay.services.session_service import SessionStore
from gatorpay.utils import constants
from gatorpay.utils.validation_utils import validate_amount

logger = get_logger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "INR": "₹"}


def format_balance(balance: Optional[str], currency: str) -> str:
    """
    Formats the server balance string, e.g. "1234.5" -> "$1,234.50".
    """
    try:
        amount = Decimal(balance or "0")
    except InvalidOperation:
        amount = Decimal("0")

    text = f"{amount:,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"-{symbol}{text[1:]}" if text.startswith("-") else f"{symbol}{text}"
    return f"{text} {currency.upper()}"


class WalletScreen:
    def __init__(self, api: GatorPayAPI, store: SessionStore, config: Optional[Settings] = None):
        self.api = api
        self.store = store
        self.config = config or settings

        self.active_tab: Observable[str] = Observable("add", name="active_tab")

        self.add_loading: Observable[bool] = Observable(False, name="add_loading")
        self.add_error: Observable[str] = Observable("", name="add_error")
        self.add_success: Observable[str] = Observable("", name="add_success")

        self.withdraw_loading: Observable[bool] = Observable(False, name="withdraw_loading")
        self.withdraw_error: Observable[str] = Observable("", name="withdraw_error")
        self.withdraw_success: Observable[str] = Observable("", name="withdraw_success")

        self.error: Observable[str] = Observable("", name="error")
        self.last_error: Optional[ErrorResponse] = None
        self._pending: Set[str] = set()

    @property
    def wallet(self) -> Optional[Wallet]:
        return self.store.current_wallet.value

    def formatted_balance(self) -> str:
        wallet = self.wallet
        currency = wallet.currency if wallet and wallet.currency else self.config.DEFAULT_CURRENCY
        return format_balance(wallet.balance if wallet else None, currency)

    def switch_tab(self, tab: str) -> None:
        if tab not in ("add", "withdraw"):
            raise ValueError(f"Unknown wallet tab: {tab}")
        self.active_tab.set(tab)
        self.clear_messages()

    def clear_messages(self) -> None:
        for observable in (self.add_error, self.add_success, self.withdraw_error, self.withdraw_success, self.error):
            observable.set("")
        self.last_error = None

    @handle_screen_errors(fallback=constants.ADD_MONEY_FAILED_MESSAGE, error_attr="add_error")
    async def add_money(self, amount: float, source: str = constants.DEFAULT_DEPOSIT_SOURCE, description: str = "") -> Optional[Wallet]:
        if "add" in self._pending:
            return None
        if not validate_amount(amount):
            raise ValidationError(constants.INVALID_AMOUNT_MESSAGE)

        self.clear_messages()
        request = AddMoneyRequest(
            amount=float(amount),
            source=source,
            description=description or constants.DEPOSIT_DESCRIPTION_TEMPLATE.format(source=source),
        )

        self._pending.add("add")
        self.add_loading.set(True)
        try:
            wallet = await self.api.add_money(request)
        finally:
            self._pending.discard("add")
            self.add_loading.set(False)

        self.store.apply_wallet(wallet)
        self.add_success.set(constants.ADD_MONEY_SUCCESS_MESSAGE.format(amount=float(amount)))
        logger.info(f"Added {float(amount):.2f} to wallet {wallet.id}")
        return wallet

    @handle_screen_errors(fallback=constants.WITHDRAW_FAILED_MESSAGE, error_attr="withdraw_error")
    async def withdraw(self, amount: float, bank_account: str) -> Optional[Wallet]:
        if "withdraw" in self._pending:
            return None
        if not validate_amount(amount):
            raise ValidationError(constants.INVALID_AMOUNT_MESSAGE)
        if not bank_account or not bank_account.strip():
            raise ValidationError(constants.BANK_ACCOUNT_REQUIRED_MESSAGE)

        self.clear_messages()
        request = WithdrawRequest(amount=float(amount), bank_account=bank_account.strip())

        self._pending.add("withdraw")
        self.withdraw_loading.set(True)
        try:
            wallet = await self.api.withdraw(request)
        finally:
            self._pending.discard("withdraw")
            self.withdraw_loading.set(False)

        self.store.apply_wallet(wallet)
        self.withdraw_success.set(constants.WITHDRAW_SUCCESS_MESSAGE.format(amount=float(amount)))
        logger.info(f"Withdrew {float(amount):.2f} from wallet {wallet.id}")
        return wallet

    @handle_screen_errors()
    async def refresh(self) -> Optional[Wallet]:
        """Reloads user and wallet; a failure logs the user out."""
        session = await self.store.refresh_profile()
        return session.wallet
