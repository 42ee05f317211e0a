import asyncio
from datetime import timedelta

import pytest

from fake_backend import TOKEN, VALID_CODE, VALID_PASSWORD, wait_until
from gatorpay.core.exceptions import (
    AuthRejected,
    BackendError,
    ChallengeExpired,
    ChallengeStateError,
    OperationInProgressError,
    ValidationError,
)
from gatorpay.flow.states import ChallengeState
from gatorpay.schemas.models import Purpose
from gatorpay.services.otp_service import OtpFlow, check_credentials
from gatorpay.utils.time_utils import utc_now

LOGIN = {"email": "a@b.com", "password": VALID_PASSWORD}
REGISTRATION = {
    "email": "new@b.com",
    "password": VALID_PASSWORD,
    "username": "newbie",
    "phone": "(555) 123-4567",
    "first_name": "New",
    "last_name": "User",
}


async def issue_login_challenge(flow):
    return await flow.submit_credentials(Purpose.LOGIN, LOGIN)


async def test_login_issues_challenge_then_session(flow, store, backend):
    masked = await issue_login_challenge(flow)

    assert masked == "a***@b.com"
    assert flow.state.value is ChallengeState.CHALLENGE_ISSUED
    assert store.pending_challenge.value.user_id == "u1"
    assert store.pending_challenge.value.purpose is Purpose.LOGIN

    session = await flow.submit_code(VALID_CODE)

    assert session.token == TOKEN
    assert session.user.id == "u1"
    assert session.wallet.currency == "EUR"
    assert flow.state.value is ChallengeState.VERIFIED
    assert store.pending_challenge.value is None
    assert backend.bodies[-1] == {"user_id": "u1", "code": VALID_CODE, "purpose": "login"}


async def test_registration_sends_normalized_phone(flow, backend):
    masked = await flow.submit_credentials("register", REGISTRATION)

    assert masked == "n***@b.com"
    assert backend.bodies[-1]["phone"] == "5551234567"
    assert flow.purpose is Purpose.REGISTER

    session = await flow.submit_code(VALID_CODE)
    assert session.user.id == "u2"


async def test_rejected_credentials_return_to_idle(flow, store):
    with pytest.raises(AuthRejected) as exc_info:
        await flow.submit_credentials(Purpose.LOGIN, {"email": "a@b.com", "password": "wrong-password"})

    assert exc_info.value.message == "invalid email or password"
    assert flow.state.value is ChallengeState.IDLE
    assert store.pending_challenge.value is None


@pytest.mark.parametrize("email", ["not-an-email", "a@b.com\n", "a@b"])
async def test_malformed_email_makes_no_request(flow, backend, email):
    with pytest.raises(ValidationError):
        await flow.submit_credentials(Purpose.LOGIN, {"email": email, "password": VALID_PASSWORD})

    assert backend.calls == []
    assert flow.state.value is ChallengeState.IDLE


def test_registration_rejects_non_ascii_phone_digits():
    with pytest.raises(ValidationError) as exc_info:
        check_credentials(Purpose.REGISTER, dict(REGISTRATION, phone="５５５１２３４５６７"))

    assert set(exc_info.value.details) == {"phone"}


def test_registration_reports_first_invalid_field():
    payload = dict(REGISTRATION, phone="555-123-456", first_name="")

    with pytest.raises(ValidationError) as exc_info:
        check_credentials(Purpose.REGISTER, payload)

    assert set(exc_info.value.details) == {"phone", "first_name"}
    assert exc_info.value.message == exc_info.value.details["phone"]


@pytest.mark.parametrize("code", ["12345", "1234567", "12a456", "", "１２３４５６"])
async def test_malformed_code_makes_no_request(flow, backend, code):
    await issue_login_challenge(flow)

    with pytest.raises(ValidationError):
        await flow.submit_code(code)

    assert backend.count("/auth/verify-otp") == 0
    assert flow.state.value is ChallengeState.CHALLENGE_ISSUED


async def test_wrong_code_clears_input_and_keeps_challenge(flow, store):
    await issue_login_challenge(flow)

    with pytest.raises(AuthRejected) as exc_info:
        await flow.submit_code("000000")

    assert exc_info.value.message == "invalid verification code"
    assert flow.code.value == ""
    assert flow.state.value is ChallengeState.CHALLENGE_ISSUED
    assert store.pending_challenge.value.failed_attempts == 1

    session = await flow.submit_code(VALID_CODE)
    assert session.token == TOKEN


async def test_too_many_wrong_codes_drop_the_challenge(flow, store, config):
    await issue_login_challenge(flow)

    for _ in range(config.OTP_MAX_ATTEMPTS - 1):
        with pytest.raises(AuthRejected):
            await flow.submit_code("000000")

    with pytest.raises(ChallengeExpired):
        await flow.submit_code("000000")

    assert flow.state.value is ChallengeState.IDLE
    assert store.pending_challenge.value is None
    with pytest.raises(ChallengeStateError):
        await flow.submit_code(VALID_CODE)


async def test_expired_code_is_refused_until_resend(flow, backend):
    await issue_login_challenge(flow)
    flow.challenge.issued_at = utc_now() - timedelta(minutes=6)

    with pytest.raises(ChallengeExpired):
        await flow.submit_code(VALID_CODE)
    assert backend.count("/auth/verify-otp") == 0
    assert flow.state.value is ChallengeState.CHALLENGE_ISSUED

    await flow.resend()
    session = await flow.submit_code(VALID_CODE)
    assert session.token == TOKEN


async def test_resend_starts_cooldown(flow, store, backend):
    await issue_login_challenge(flow)

    assert await flow.resend() == "a***@b.com"
    assert flow.resend_cooldown == 30
    assert store.pending_challenge.value.resend_cooldown == 30

    assert await flow.resend() is None
    assert backend.count("/auth/resend-otp") == 1


async def test_resend_allowed_again_after_cooldown(api, store, config, backend):
    short = config.model_copy(update={"OTP_RESEND_COOLDOWN_SECONDS": 2})
    flow = OtpFlow(api, store, short)
    await issue_login_challenge(flow)

    await flow.resend()
    assert await flow.resend() is None
    await wait_until(lambda: flow.resend_cooldown == 0)
    await flow.resend()

    assert backend.count("/auth/resend-otp") == 2
    flow.close()


async def test_failed_resend_leaves_cooldown_untouched(flow, backend):
    await issue_login_challenge(flow)
    backend.fail_next("/auth/resend-otp", 429, "too many requests")

    with pytest.raises(BackendError):
        await flow.resend()

    assert flow.resend_cooldown == 0
    assert flow.state.value is ChallengeState.CHALLENGE_ISSUED


async def test_verification_cancels_cooldown(flow):
    await issue_login_challenge(flow)
    await flow.resend()

    await flow.submit_code(VALID_CODE)

    assert flow.resend_cooldown == 0
    await asyncio.sleep(0.05)
    assert flow.resend_cooldown == 0


async def test_abandon_drops_challenge_and_timer(flow, store):
    await issue_login_challenge(flow)
    await flow.resend()

    flow.abandon()

    assert flow.state.value is ChallengeState.IDLE
    assert flow.masked_email == ""
    assert store.pending_challenge.value is None
    await asyncio.sleep(0.05)
    assert flow.resend_cooldown == 0


async def test_close_stops_timer_and_refuses_work(flow):
    await issue_login_challenge(flow)
    await flow.resend()

    flow.close()
    await asyncio.sleep(0.05)

    assert flow.resend_cooldown == 0
    with pytest.raises(ChallengeStateError):
        await flow.resend()


async def test_abandon_while_credentials_in_flight(flow, store, backend):
    release = backend.hold("/auth/login")
    task = asyncio.create_task(issue_login_challenge(flow))
    await wait_until(lambda: backend.count("/auth/login") == 1)

    flow.abandon()
    release.set()

    with pytest.raises(ChallengeStateError):
        await task
    assert flow.state.value is ChallengeState.IDLE
    assert store.pending_challenge.value is None


async def test_credentials_cannot_be_double_submitted(flow, backend):
    release = backend.hold("/auth/login")
    task = asyncio.create_task(issue_login_challenge(flow))
    await wait_until(lambda: flow.is_pending("credentials"))

    with pytest.raises(OperationInProgressError):
        await issue_login_challenge(flow)

    release.set()
    await task
    assert backend.count("/auth/login") == 1


async def test_code_cannot_be_double_submitted(flow, backend):
    await issue_login_challenge(flow)
    release = backend.hold("/auth/verify-otp")
    task = asyncio.create_task(flow.submit_code(VALID_CODE))
    await wait_until(lambda: flow.is_pending("code"))

    with pytest.raises(OperationInProgressError):
        await flow.submit_code(VALID_CODE)

    release.set()
    await task
    assert backend.count("/auth/verify-otp") == 1


async def test_logout_clears_pending_challenge(flow, store):
    await issue_login_challenge(flow)
    await flow.resend()

    store.clear()

    assert flow.state.value is ChallengeState.IDLE
    assert flow.challenge is None
    assert flow.resend_cooldown == 0


async def test_no_challenge_while_authenticated(flow, store):
    await issue_login_challenge(flow)
    store.establish(await flow.submit_code(VALID_CODE))

    with pytest.raises(ChallengeStateError):
        await issue_login_challenge(flow)
