"""
gatorpay/utils/constants.py

Purpose: Centralized static content

- User-facing messages shown inline next to forms
- Navigation destinations
- Backend endpoint paths

(Prevents hardcoding across the codebase)
"""

# ============================================================
# NAVIGATION
# ============================================================

LOGIN_ROUTE = "/login"
REGISTER_ROUTE = "/register"
DASHBOARD_ROUTE = "/dashboard"
WALLET_ROUTE = "/wallet"
TRANSACTIONS_ROUTE = "/transactions"

# Landing destination once authenticated
DEFAULT_AUTHENTICATED_ROUTE = DASHBOARD_ROUTE

# ============================================================
# BACKEND ENDPOINTS
# ============================================================

AUTH_LOGIN_PATH = "/auth/login"
AUTH_REGISTER_PATH = "/auth/register"
AUTH_VERIFY_OTP_PATH = "/auth/verify-otp"
AUTH_RESEND_OTP_PATH = "/auth/resend-otp"
AUTH_ME_PATH = "/auth/me"
WALLET_ADD_PATH = "/wallet/add"
WALLET_WITHDRAW_PATH = "/wallet/withdraw"
WALLET_TRANSACTIONS_PATH = "/wallet/transactions"

# ============================================================
# AUTH FORMS
# ============================================================

INVALID_EMAIL_MESSAGE = "Please enter a valid email address"
INVALID_OTP_MESSAGE = "Please enter the 6-digit code"
LOGIN_FAILED_MESSAGE = "Login failed. Please try again."
REGISTER_FAILED_MESSAGE = "Registration failed. Please try again."
INVALID_CODE_MESSAGE = "Invalid code. Please try again."
RESEND_FAILED_MESSAGE = "Failed to resend code"
CODE_SENT_MESSAGE = "Verification code sent to {email}"
NEW_CODE_SENT_MESSAGE = "New code sent to {email}"
TOO_MANY_ATTEMPTS_MESSAGE = "Too many incorrect codes. Please sign in again."
GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again later."

# ============================================================
# WALLET
# ============================================================

INVALID_AMOUNT_MESSAGE = "Amount must be greater than 0"
BANK_ACCOUNT_REQUIRED_MESSAGE = "Bank account is required"
ADD_MONEY_FAILED_MESSAGE = "Failed to add money"
WITHDRAW_FAILED_MESSAGE = "Failed to withdraw"
ADD_MONEY_SUCCESS_MESSAGE = "${amount:.2f} added successfully!"
WITHDRAW_SUCCESS_MESSAGE = "${amount:.2f} withdrawn successfully!"
TRANSACTIONS_FAILED_MESSAGE = "Failed to load transactions"
DEFAULT_DEPOSIT_SOURCE = "Bank Account"
DEPOSIT_DESCRIPTION_TEMPLATE = "Deposit from {source}"
