"""
gatorpay/flow/handlers/otp.py

Handles: credential form + OTP step shared by the login and register screens

Flow:
1. User fills the form, submit() validates locally and sends credentials
2. Backend emails a 6-digit code, the screen switches to the OTP step
3. verify_otp() exchanges the code for a session, then navigates home
4. resend_otp() asks for a new code (30 second cooldown)
5. back_to_form() drops the challenge

All protocol errors end up in the `error` observable; nothing escapes to
navigation.
"""

from typing import Any, Dict, Optional

from gatorpay.core.config import Settings
from gatorpay.core.errors import handle_screen_errors
from gatorpay.flow.navigation import Navigator
from gatorpay.flow.states import ChallengeState
from gatorpay.schemas.models import Purpose, Session
from gatorpay.schemas.response import ErrorResponse
from gatorpay.services.api_client import GatorPayAPI
from gatorpay.services.observable import Computed, Observable
from gatorpay.services.otp_service import OtpFlow, check_credentials
from gatorpay.services.session_service import SessionStore
from gatorpay.core.logging import get_logger
from gatorpay.utils import constants

logger = get_logger(__name__)


class OtpScreen:
    """
    Base controller for screens that end in an OTP challenge.
    Subclasses set `purpose`, `submit_failed_message` and `form_data()`.
    """

    purpose: Purpose = Purpose.LOGIN
    submit_failed_message: str = constants.LOGIN_FAILED_MESSAGE

    def __init__(self, api: GatorPayAPI, store: SessionStore, navigator: Navigator, config: Optional[Settings] = None):
        self.store = store
        self.navigator = navigator
        self.flow = OtpFlow(api, store, config)

        self.loading: Observable[bool] = Observable(False, name="loading")
        self.error: Observable[str] = Observable("", name="error")
        self.success: Observable[str] = Observable("", name="success")
        self.otp_step: Computed[bool] = Computed(
            lambda: self.flow.state.value is ChallengeState.CHALLENGE_ISSUED,
            self.flow.state,
            name="otp_step",
        )
        self.last_error: Optional[ErrorResponse] = None

    # Form

    def form_data(self) -> Dict[str, Any]:
        raise NotImplementedError

    @property
    def otp_code(self) -> str:
        return self.flow.code.value

    @otp_code.setter
    def otp_code(self, value: str) -> None:
        self.flow.code.set(value)

    @property
    def masked_email(self) -> str:
        return self.flow.masked_email

    @property
    def resend_cooldown(self) -> int:
        return self.flow.resend_cooldown

    def clear_messages(self) -> None:
        self.error.set("")
        self.success.set("")
        self.last_error = None

    # Actions

    @handle_screen_errors(fallback=lambda screen: screen.submit_failed_message)
    async def submit(self) -> Optional[str]:
        """
        Step 1: validate and send the form.

        Returns:
            Masked email the code went to, or None on failure
        """
        if self.flow.is_pending("credentials"):
            return None

        self.clear_messages()
        request = check_credentials(self.purpose, self.form_data())

        self.loading.set(True)
        try:
            masked_email = await self.flow.submit_credentials(self.purpose, request)
        finally:
            self.loading.set(False)

        self.success.set(constants.CODE_SENT_MESSAGE.format(email=masked_email))
        return masked_email

    @handle_screen_errors(fallback=constants.INVALID_CODE_MESSAGE)
    async def verify_otp(self) -> Optional[Session]:
        """
        Step 2: exchange the typed code for a session.

        Returns:
            The established session, or None on failure
        """
        if self.flow.is_pending("code"):
            return None

        self.clear_messages()
        self.loading.set(True)
        try:
            session = await self.flow.submit_code(self.otp_code)
        finally:
            self.loading.set(False)

        self.store.establish(session)
        self.navigator.navigate(constants.DEFAULT_AUTHENTICATED_ROUTE)
        return session

    @handle_screen_errors(fallback=constants.RESEND_FAILED_MESSAGE)
    async def resend_otp(self) -> Optional[str]:
        if self.resend_cooldown > 0 or self.flow.is_pending("resend"):
            return None

        self.error.set("")
        self.loading.set(True)
        try:
            masked_email = await self.flow.resend()
        finally:
            self.loading.set(False)

        if masked_email:
            self.success.set(constants.NEW_CODE_SENT_MESSAGE.format(email=masked_email))
        return masked_email

    def back_to_form(self) -> None:
        self.flow.abandon()
        self.clear_messages()

    def close(self) -> None:
        """Teardown: cancels the cooldown timer and any pending challenge."""
        self.flow.close()
        self.otp_step.dispose()
        logger.debug(f"{type(self).__name__} closed")
