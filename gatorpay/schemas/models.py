"""
gatorpay/schemas/models.py

Purpose: Data shapes exchanged with the GatorPay backend

- User, Wallet and Transaction records
- Session (token + user + wallet) returned by OTP verification and /auth/me
- OTP challenge payloads and request bodies
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from enum import Enum


class Purpose(str, Enum):
    """What an OTP challenge is proving: a login or a new registration."""

    LOGIN = "login"
    REGISTER = "register"


class User(BaseModel):
    """
    Authenticated user profile.
    Read-only on the client; replaced wholesale by a profile refresh.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    email: str
    username: str = ""
    phone: str = ""
    first_name: str = ""
    last_name: str = ""
    avatar_url: str = ""
    auth_provider: str = "email"
    email_verified: bool = False
    kyc_status: str = "pending"
    credit_score: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Wallet(BaseModel):
    """
    User wallet. Balance is the server's decimal string and is never
    recomputed on the client.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    user_id: str
    balance: str = "0"
    currency: str = "USD"
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    wallet_id: str
    type: str
    amount: str
    description: str = ""
    status: str = ""
    created_at: Optional[str] = None


class Session(BaseModel):
    """Authenticated bundle issued by a completed OTP verification."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    token: str
    user: User
    wallet: Wallet


class OTPSent(BaseModel):
    """Challenge ticket returned by login, register and resend."""
    model_config = ConfigDict(extra="ignore")

    user_id: str
    email: str = Field(..., description="Masked destination, e.g. a***@b.com")
    purpose: Purpose


class TransactionPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transactions: List[Transaction] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 0


# Request bodies

class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    username: str
    phone: str
    first_name: str
    last_name: str


class VerifyOTPRequest(BaseModel):
    user_id: str
    code: str
    purpose: Purpose


class ResendOTPRequest(BaseModel):
    user_id: str
    purpose: Purpose


class AddMoneyRequest(BaseModel):
    amount: float = Field(..., gt=0)
    source: str
    description: str


class WithdrawRequest(BaseModel):
    amount: float = Field(..., gt=0)
    bank_account: str
