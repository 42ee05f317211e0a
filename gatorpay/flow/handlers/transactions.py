"""
gatorpay/flow/handlers/transactions.py

Handles: paginated transaction history
"""

from typing import List, Optional

from gatorpay.core.config import Settings, settings
from gatorpay.core.errors import handle_screen_errors
from gatorpay.schemas.models import Transaction, TransactionPage
from gatorpay.schemas.response import ErrorResponse
from gatorpay.services.api_client import GatorPayAPI
from gatorpay.services.observable import Observable
from gatorpay.utils import constants


class TransactionsScreen:
    def __init__(self, api: GatorPayAPI, config: Optional[Settings] = None):
        self.api = api
        self.page_size = (config or settings).TRANSACTIONS_PAGE_SIZE

        self.transactions: Observable[List[Transaction]] = Observable([], name="transactions")
        self.loading: Observable[bool] = Observable(False, name="loading")
        self.current_page: Observable[int] = Observable(1, name="current_page")
        self.total_pages: Observable[int] = Observable(1, name="total_pages")
        self.total: Observable[int] = Observable(0, name="total")
        self.error: Observable[str] = Observable("", name="error")
        self.last_error: Optional[ErrorResponse] = None

    @handle_screen_errors(fallback=constants.TRANSACTIONS_FAILED_MESSAGE)
    async def load(self, page: Optional[int] = None) -> Optional[TransactionPage]:
        """
        Fetches `page` (default: the current one). `current_page` only moves
        once that page has actually loaded.
        """
        if self.loading.value:
            return None
        page_number = page or self.current_page.value

        self.error.set("")
        self.loading.set(True)
        try:
            result = await self.api.list_transactions(page_number, self.page_size)
        finally:
            self.loading.set(False)

        self.transactions.set(list(result.transactions))
        self.total_pages.set(result.total_pages)
        self.total.set(result.total)
        self.current_page.set(page_number)
        return result

    async def next_page(self) -> Optional[TransactionPage]:
        if self.current_page.value >= self.total_pages.value:
            return None
        return await self.load(self.current_page.value + 1)

    async def prev_page(self) -> Optional[TransactionPage]:
        if self.current_page.value <= 1:
            return None
        return await self.load(self.current_page.value - 1)
