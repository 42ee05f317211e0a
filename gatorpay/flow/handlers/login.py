"""
gatorpay/flow/handlers/login.py

Handles: login screen (email + password, then OTP)
"""

from typing import Any, Dict

from gatorpay.flow.handlers.otp import OtpScreen
from gatorpay.schemas.models import Purpose
from gatorpay.utils import constants
from gatorpay.utils.validation_utils import validate_email


class LoginScreen(OtpScreen):
    purpose = Purpose.LOGIN
    submit_failed_message = constants.LOGIN_FAILED_MESSAGE

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.email = ""
        self.password = ""

    @property
    def is_email_valid(self) -> bool:
        return validate_email(self.email)

    def form_data(self) -> Dict[str, Any]:
        return {"email": self.email, "password": self.password}
