"""
gatorpay/flow/handlers/register.py

Handles: registration screen (profile form, then OTP)

The phone is sent as its 10 digits, whatever separators were typed.
"""

from typing import Any, Dict

from gatorpay.flow.handlers.otp import OtpScreen
from gatorpay.schemas.models import Purpose
from gatorpay.utils import constants
from gatorpay.utils.validation_utils import registration_errors, validate_email, validate_phone_number


class RegisterScreen(OtpScreen):
    purpose = Purpose.REGISTER
    submit_failed_message = constants.REGISTER_FAILED_MESSAGE

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.email = ""
        self.password = ""
        self.username = ""
        self.phone = ""
        self.first_name = ""
        self.last_name = ""

    @property
    def is_email_valid(self) -> bool:
        return validate_email(self.email)

    @property
    def is_phone_valid(self) -> bool:
        return validate_phone_number(self.phone)

    @property
    def form_errors(self) -> Dict[str, str]:
        """Field -> message for every rule the form currently breaks."""
        return registration_errors(**self.form_data())

    @property
    def is_form_valid(self) -> bool:
        return not self.form_errors

    def form_data(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "password": self.password,
            "username": self.username,
            "phone": self.phone,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }
