"""
gatorpay/utils/time_utils.py

Purpose: Time and expiry helpers

- OTP expiry checks
- Timezone-aware "now"
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Current time in UTC (timezone-aware).
    """
    return datetime.now(timezone.utc)


def calculate_otp_expiry(otp_time: datetime, validity_minutes: int = 5) -> datetime:
    """
    Calculates OTP expiry timestamp.
    """
    return otp_time + timedelta(minutes=validity_minutes)


def is_otp_expired(otp_time: datetime, validity_minutes: int = 5, now: Optional[datetime] = None) -> bool:
    """
    Checks if an OTP has expired.
    """
    expiry_time = calculate_otp_expiry(otp_time, validity_minutes)
    return (now or utc_now()) > expiry_time
