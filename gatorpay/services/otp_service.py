"""
gatorpay/services/otp_service.py

Purpose: Credential/OTP protocol client

Flow (identical for login and registration, parameterized by purpose):
1. submit_credentials -> backend issues a challenge (user_id + masked email)
2. submit_code        -> backend returns the session (token, user, wallet)
3. resend             -> new code, guarded by a 30 second cooldown
4. abandon            -> back to the form, challenge dropped

The caller hands the returned session to SessionStore.establish().
"""

from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Optional, Set, Union

from gatorpay.core.config import Settings, settings
from gatorpay.core.exceptions import (
    AuthRejected,
    BackendError,
    ChallengeExpired,
    ChallengeStateError,
    OperationInProgressError,
    TransientNetworkError,
    ValidationError,
)
from gatorpay.core.logging import get_logger, LogContext
from gatorpay.flow.states import ChallengeState, PendingChallenge, is_valid_transition
from gatorpay.schemas.models import (
    LoginRequest,
    Purpose,
    RegisterRequest,
    ResendOTPRequest,
    Session,
    VerifyOTPRequest,
)
from gatorpay.services.api_client import GatorPayAPI
from gatorpay.services.cooldown import CooldownTimer
from gatorpay.services.observable import Observable
from gatorpay.services.session_service import SessionStore
from gatorpay.utils import constants
from gatorpay.utils.time_utils import utc_now
from gatorpay.utils.validation_utils import (
    first_error,
    normalize_phone,
    registration_errors,
    validate_email,
    validate_otp_format,
)

logger = get_logger(__name__)

CredentialPayload = Union[LoginRequest, RegisterRequest, Dict[str, Any]]


def check_credentials(purpose: Purpose, payload: CredentialPayload) -> Union[LoginRequest, RegisterRequest]:
    """
    Coerces and validates a credential payload.

    Raises:
        ValidationError: If any form rule fails; `details` maps field -> message
    """
    if isinstance(payload, dict):
        fields = payload
    else:
        fields = payload.model_dump()

    if purpose is Purpose.LOGIN:
        if not validate_email(fields.get("email", "")):
            raise ValidationError(constants.INVALID_EMAIL_MESSAGE, details={"email": constants.INVALID_EMAIL_MESSAGE})
        return LoginRequest(email=fields["email"], password=fields.get("password", ""))

    errors = registration_errors(
        email=fields.get("email", ""),
        password=fields.get("password", ""),
        username=fields.get("username", ""),
        phone=fields.get("phone", ""),
        first_name=fields.get("first_name", ""),
        last_name=fields.get("last_name", ""),
    )
    if errors:
        order = ["email", "password", "username", "phone", "first_name", "last_name"]
        raise ValidationError(first_error(errors, order), details=errors)
    request = {key: fields[key] for key in RegisterRequest.model_fields}
    request["phone"] = normalize_phone(request["phone"])
    return RegisterRequest(**request)


class OtpFlow:
    """
    Two-phase authentication state machine for one screen instance.

    States: IDLE -> CREDENTIALS_SUBMITTED -> CHALLENGE_ISSUED -> VERIFIED,
    or CHALLENGE_ISSUED -> IDLE on abandon. At most one PendingChallenge
    exists at a time and it is mirrored into the session store, which
    remembers this flow as its owner.
    """

    def __init__(self, api: GatorPayAPI, store: SessionStore, config: Optional[Settings] = None):
        self.api = api
        self.store = store
        self.config = config or settings

        self.state: Observable[ChallengeState] = Observable(ChallengeState.IDLE, name="challenge_state")
        self.code: Observable[str] = Observable("", name="otp_code")
        self.challenge: Optional[PendingChallenge] = None
        self.cooldown = CooldownTimer(tick_seconds=self.config.OTP_COOLDOWN_TICK_SECONDS)

        self._in_flight: Set[str] = set()
        self._closed = False
        self._unsubscribers = [
            self.cooldown.remaining.subscribe(self._sync_cooldown),
            store.on_logout(self._on_logout),
            store.is_authenticated.subscribe(self._on_authenticated),
        ]

    @property
    def purpose(self) -> Optional[Purpose]:
        return self.challenge.purpose if self.challenge else None

    @property
    def masked_email(self) -> str:
        return self.challenge.email if self.challenge else ""

    @property
    def resend_cooldown(self) -> int:
        return self.cooldown.remaining.value

    def is_pending(self, operation: str) -> bool:
        """True while `operation` ("credentials", "code", "resend") awaits the backend."""
        return operation in self._in_flight

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def submit_credentials(self, purpose: Union[Purpose, str], payload: CredentialPayload) -> str:
        """
        Sends login or registration credentials.

        Args:
            purpose: Purpose.LOGIN or Purpose.REGISTER
            payload: Form fields (model or dict)

        Returns:
            Masked email the code was sent to

        Raises:
            ValidationError: Malformed input, nothing sent
            AuthRejected: Backend refused the credentials
            TransientNetworkError: Backend unreachable
        """
        self._ensure_open()
        purpose = Purpose(purpose)
        request = check_credentials(purpose, payload)

        if self.is_pending("credentials"):
            raise OperationInProgressError()
        if self.store.is_authenticated.value:
            raise ChallengeStateError("Already signed in")
        if self.state.value is ChallengeState.VERIFIED:
            self._transition(ChallengeState.IDLE)
        if self.state.value is not ChallengeState.IDLE:
            raise ChallengeStateError("A verification is already in progress")

        with self._exclusive("credentials"):
            self._transition(ChallengeState.CREDENTIALS_SUBMITTED)
            logger.info(f"Submitting {purpose.value} credentials")

            issued = False
            try:
                if purpose is Purpose.LOGIN:
                    sent = await self.api.login(request)
                else:
                    sent = await self.api.register(request)
                issued = (
                    not self._closed
                    and self.state.value is ChallengeState.CREDENTIALS_SUBMITTED
                    and not self.store.is_authenticated.value
                )
            except BackendError as e:
                raise AuthRejected(e.message, status_code=e.status_code) from e
            finally:
                if not issued and self.state.value is ChallengeState.CREDENTIALS_SUBMITTED:
                    self._transition(ChallengeState.IDLE)

            if not issued:
                raise ChallengeStateError("Verification was cancelled")

            self._transition(ChallengeState.CHALLENGE_ISSUED)
            self.code.set("")
            self._publish(PendingChallenge(user_id=sent.user_id, email=sent.email, purpose=purpose))

            with LogContext(user_id=sent.user_id, purpose=purpose.value):
                logger.info("Verification code issued")
            return sent.email

    async def submit_code(self, code: str) -> Session:
        """
        Verifies the 6-digit code.

        Returns:
            Session to hand to SessionStore.establish()

        Raises:
            ValidationError: Code is not exactly 6 digits, nothing sent
            ChallengeExpired: Code lifetime elapsed (resend first) or too many
                rejected codes (challenge dropped, start over)
            AuthRejected: Backend refused the code; the held code is cleared
        """
        self._ensure_open()
        code = (code or "").strip()
        self.code.set(code)

        if not validate_otp_format(code):
            raise ValidationError(constants.INVALID_OTP_MESSAGE, details={"code": constants.INVALID_OTP_MESSAGE})

        challenge = self._require_challenge()
        if challenge.is_expired(self.config.OTP_EXPIRY_MINUTES):
            self.code.set("")
            raise ChallengeExpired()

        with self._exclusive("code"):
            with LogContext(user_id=challenge.user_id, purpose=challenge.purpose.value):
                logger.info("Submitting verification code")

            request = VerifyOTPRequest(user_id=challenge.user_id, code=code, purpose=challenge.purpose)
            try:
                session = await self.api.verify_otp(request)
            except BackendError as e:
                if self._owns(challenge):
                    self.code.set("")
                    self._record_rejection()
                raise AuthRejected(e.message, status_code=e.status_code) from e
            except TransientNetworkError:
                if self._owns(challenge):
                    self.code.set("")
                raise

            if not self._owns(challenge):
                raise ChallengeStateError("Verification was cancelled")

            self._publish(None)
            self.cooldown.cancel()
            self._transition(ChallengeState.VERIFIED)
            self.code.set("")

            with LogContext(user_id=challenge.user_id, purpose=challenge.purpose.value):
                logger.info("Verification succeeded")
            return session

    async def resend(self) -> Optional[str]:
        """
        Requests a new code.

        Returns:
            Masked email, or None when the cooldown is still running (no request)

        Raises:
            BackendError: Backend refused; the cooldown is left untouched
        """
        self._ensure_open()
        challenge = self._require_challenge()

        if self.cooldown.active:
            logger.debug(f"Resend ignored, {self.cooldown.remaining.value}s cooldown left")
            return None

        with self._exclusive("resend"):
            with LogContext(user_id=challenge.user_id, purpose=challenge.purpose.value):
                logger.info("Requesting a new verification code")

            sent = await self.api.resend_otp(
                ResendOTPRequest(user_id=challenge.user_id, purpose=challenge.purpose)
            )

            if not self._owns(challenge):
                raise ChallengeStateError("Verification was cancelled")

            self._publish(replace(self.challenge, email=sent.email, issued_at=utc_now(), failed_attempts=0))
            self.cooldown.start(self.config.OTP_RESEND_COOLDOWN_SECONDS)
            return sent.email

    def abandon(self) -> None:
        """Back to the credential form: drops the challenge and the timer."""
        if self.challenge is not None:
            logger.info("Verification abandoned")
        self._reset()

    def close(self) -> None:
        """Teardown. No timer callback runs after this returns."""
        if self._closed:
            return
        self._reset()
        self.cooldown.close()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._closed = True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, to_state: ChallengeState) -> None:
        current = self.state.value
        if not is_valid_transition(current, to_state):
            raise ChallengeStateError(f"Invalid challenge transition: {current.value} -> {to_state.value}")
        self.state.set(to_state)

    @contextmanager
    def _exclusive(self, operation: str):
        if operation in self._in_flight:
            raise OperationInProgressError()
        self._in_flight.add(operation)
        try:
            yield
        finally:
            self._in_flight.discard(operation)

    def _ensure_open(self) -> None:
        if self._closed:
            raise ChallengeStateError("Verification screen was closed")

    def _require_challenge(self) -> PendingChallenge:
        if self.state.value is not ChallengeState.CHALLENGE_ISSUED or self.challenge is None:
            raise ChallengeStateError("No verification code has been requested")
        return self.challenge

    def _owns(self, challenge: PendingChallenge) -> bool:
        # A resend replaces the record but keeps the subject
        return (
            not self._closed
            and self.state.value is ChallengeState.CHALLENGE_ISSUED
            and self.challenge is not None
            and self.challenge.user_id == challenge.user_id
        )

    def _record_rejection(self) -> None:
        attempts = self.challenge.failed_attempts + 1
        if attempts >= self.config.OTP_MAX_ATTEMPTS:
            logger.warning(f"Challenge dropped after {attempts} rejected codes")
            self._reset()
            raise ChallengeExpired(constants.TOO_MANY_ATTEMPTS_MESSAGE)
        self._update(replace(self.challenge, failed_attempts=attempts))

    def _publish(self, challenge: Optional[PendingChallenge]) -> None:
        self.challenge = challenge
        self.store.track_challenge(challenge, owner=self)

    def _update(self, challenge: PendingChallenge) -> None:
        # Bookkeeping changes never take the store slot from another flow
        self.challenge = challenge
        if self.store.owns_challenge(self):
            self.store.track_challenge(challenge, owner=self)

    def _reset(self) -> None:
        # Drop the challenge first so the cooldown reset does not republish it
        self.challenge = None
        self.cooldown.cancel()
        self.code.set("")
        self.state.set(ChallengeState.IDLE)
        self._publish(None)

    def _sync_cooldown(self, remaining: int) -> None:
        if self.challenge is not None and self.challenge.resend_cooldown != remaining:
            self._update(replace(self.challenge, resend_cooldown=remaining))

    def _on_logout(self) -> None:
        self._drop_for_session("Pending challenge dropped on logout")

    def _on_authenticated(self, authenticated: bool) -> None:
        if authenticated:
            self._drop_for_session("Pending challenge dropped, signed in elsewhere")

    def _drop_for_session(self, reason: str) -> None:
        if self.challenge is not None and self.state.value is ChallengeState.CHALLENGE_ISSUED:
            logger.info(reason)
            self._reset()
