"""
gatorpay/utils/validation_utils.py

Purpose: Input validation

- Email, password, username and name checks for the auth forms
- Phone normalization (digits only) and 10-digit check
- OTP format (exactly 6 digits)
- Wallet amount checks
"""

import re
from typing import Any, Dict, List, Optional


EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
OTP_PATTERN = re.compile(r"[0-9]{6}")

MIN_PASSWORD_LENGTH = 8
MIN_USERNAME_LENGTH = 3
PHONE_DIGITS = 10


def validate_email(email: str) -> bool:
    """
    Validates the local@domain.tld shape.

    Args:
        email: Email address as typed

    Returns:
        True if the address looks deliverable
    """
    if not email:
        return False

    return bool(EMAIL_PATTERN.fullmatch(email))


def normalize_phone(phone: str) -> str:
    """
    Keeps only the ASCII digits 0-9.

    Example: "(555) 123-4567" -> "5551234567"
    """
    if not phone:
        return ""

    return re.sub(r"[^0-9]", "", phone)


def validate_phone_number(phone: str) -> bool:
    """
    Validates a phone number has exactly 10 digits once separators are removed.

    Args:
        phone: Phone number string

    Returns:
        True if valid
    """
    return len(normalize_phone(phone)) == PHONE_DIGITS


def validate_otp_format(otp: str) -> bool:
    """
    Validates OTP format (must be 6 digits).

    Args:
        otp: OTP string

    Returns:
        True if valid 6-digit OTP
    """
    if not otp:
        return False

    return bool(OTP_PATTERN.fullmatch(otp))


def validate_password(password: str) -> bool:
    return bool(password) and len(password) >= MIN_PASSWORD_LENGTH


def validate_username(username: str) -> bool:
    return bool(username) and len(username) >= MIN_USERNAME_LENGTH


def validate_name(name: str) -> bool:
    return bool(name) and len(name.strip()) > 0


def validate_amount(amount: Any) -> bool:
    """
    Validates a wallet amount is a positive number.

    Args:
        amount: Number typed into the add-money or withdraw form

    Returns:
        True if amount > 0
    """
    if isinstance(amount, bool):
        return False
    try:
        return float(amount) > 0
    except (TypeError, ValueError):
        return False


def registration_errors(
    email: str,
    password: str,
    username: str,
    phone: str,
    first_name: str,
    last_name: str
) -> Dict[str, str]:
    """
    Runs every registration rule.

    Returns:
        Mapping of field name to error message; empty when the form is valid
    """
    errors: Dict[str, str] = {}

    if not validate_email(email):
        errors["email"] = "Please enter a valid email address"
    if not validate_password(password):
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not validate_username(username):
        errors["username"] = f"Username must be at least {MIN_USERNAME_LENGTH} characters"
    if not validate_phone_number(phone):
        errors["phone"] = f"Phone number must have {PHONE_DIGITS} digits"
    if not validate_name(first_name):
        errors["first_name"] = "First name is required"
    if not validate_name(last_name):
        errors["last_name"] = "Last name is required"

    return errors


def first_error(errors: Dict[str, str], order: Optional[List[str]] = None) -> Optional[str]:
    """Returns the message of the first failing field, in form order."""
    if not errors:
        return None
    for field in order or list(errors):
        if field in errors:
            return errors[field]
    return next(iter(errors.values()))
