import asyncio

import pytest

from fake_backend import TOKEN, make_user, make_wallet, wait_until
from gatorpay.core.exceptions import ChallengeStateError, SessionInvalid
from gatorpay.flow.states import PendingChallenge
from gatorpay.schemas.models import Purpose, Session, Wallet


def make_session(token: str = TOKEN, user_id: str = "u1") -> Session:
    return Session.model_validate({"token": token, "user": make_user(user_id), "wallet": make_wallet(user_id)})


async def test_establish_persists_token_and_authenticates(store, token_store):
    changes = []
    store.is_authenticated.subscribe(changes.append)

    store.establish(make_session())

    assert token_store.get() == TOKEN
    assert store.is_authenticated.value is True
    assert store.current_user.value.id == "u1"
    assert store.current_wallet.value.currency == "EUR"
    assert store.current_user.value.full_name == "Alice Baker"
    assert changes == [True]


async def test_establish_rejects_empty_token(store, token_store):
    with pytest.raises(SessionInvalid):
        store.establish(make_session(token=""))
    assert token_store.get() is None
    assert store.is_authenticated.value is False


async def test_establish_drops_pending_challenge(store):
    store.track_challenge(PendingChallenge(user_id="u1", email="a***@b.com", purpose=Purpose.LOGIN))
    store.establish(make_session())
    assert store.pending_challenge.value is None


async def test_clear_is_idempotent(store, token_store):
    logouts = []
    store.on_logout(lambda: logouts.append(True))
    store.establish(make_session())

    store.clear()
    store.clear()

    assert token_store.get() is None
    assert store.current_user.value is None
    assert store.current_wallet.value is None
    assert store.is_authenticated.value is False
    assert logouts == [True]


async def test_restore_without_token_makes_no_request(store, backend):
    assert await store.restore() is False
    assert backend.count("/auth/me") == 0


async def test_restore_after_clear_makes_no_request(store, backend):
    store.establish(make_session())
    store.clear()

    assert await store.restore() is False
    assert backend.count("/auth/me") == 0


async def test_restore_loads_profile(store, token_store, backend):
    token_store.set(TOKEN)

    assert await store.restore() is True

    assert store.is_authenticated.value is True
    assert store.current_user.value.id == "u1"
    assert store.session.token == TOKEN
    assert backend.count("/auth/me") == 1


async def test_failed_restore_clears_token(store, token_store):
    token_store.set("revoked")

    assert await store.restore() is False

    assert token_store.get() is None
    assert store.is_authenticated.value is False


async def test_restore_discarded_when_logged_out_meanwhile(store, token_store, backend):
    token_store.set(TOKEN)
    release = backend.hold("/auth/me")

    task = asyncio.create_task(store.restore())
    await wait_until(lambda: backend.count("/auth/me") == 1)
    store.clear()
    release.set()

    assert await task is False
    assert store.current_user.value is None
    assert token_store.get() is None


async def test_refresh_profile_replaces_wallet(store, backend):
    store.establish(make_session())
    backend.wallet = make_wallet(balance="42.00")

    session = await store.refresh_profile()

    assert session.wallet.balance == "42.00"
    assert store.current_wallet.value.balance == "42.00"


async def test_refresh_failure_forces_logout(store, token_store, backend):
    logouts = []
    store.on_logout(lambda: logouts.append(True))
    store.establish(make_session())
    backend.fail_next("/auth/me", 500, "database unavailable")

    with pytest.raises(SessionInvalid):
        await store.refresh_profile()

    assert logouts == [True]
    assert token_store.get() is None
    assert store.is_authenticated.value is False


async def test_refresh_racing_logout_resolves_once(store, backend):
    logouts = []
    store.on_logout(lambda: logouts.append(True))
    store.establish(make_session())
    release = backend.hold("/auth/me")
    backend.fail_next("/auth/me", 401, "invalid or expired token")

    task = asyncio.create_task(store.refresh_profile())
    await wait_until(lambda: backend.count("/auth/me") == 1)
    store.clear()
    release.set()

    with pytest.raises(SessionInvalid):
        await task
    assert logouts == [True]


async def test_refresh_without_session_raises(store):
    with pytest.raises(SessionInvalid):
        await store.refresh_profile()


async def test_apply_wallet_only_for_current_user(store):
    store.apply_wallet(Wallet.model_validate(make_wallet(balance="5.00")))
    assert store.current_wallet.value is None

    store.establish(make_session())
    store.apply_wallet(Wallet.model_validate(make_wallet(user_id="u2", balance="5.00")))
    assert store.current_wallet.value.balance == "100.00"

    store.apply_wallet(Wallet.model_validate(make_wallet(balance="5.00")))
    assert store.current_wallet.value.balance == "5.00"


async def test_challenge_cannot_start_while_authenticated(store):
    store.establish(make_session())
    with pytest.raises(ChallengeStateError):
        store.track_challenge(PendingChallenge(user_id="u1", email="a***@b.com", purpose=Purpose.LOGIN))


async def test_logout_listener_can_unsubscribe(store):
    logouts = []
    unsubscribe = store.on_logout(lambda: logouts.append(True))
    unsubscribe()

    store.establish(make_session())
    store.clear()

    assert logouts == []


async def test_challenge_is_dropped_only_by_its_owner(store):
    login_flow, register_flow = object(), object()
    challenge = PendingChallenge(user_id="u1", email="a***@b.com", purpose=Purpose.LOGIN)
    store.track_challenge(challenge, owner=login_flow)

    store.track_challenge(None, owner=register_flow)

    assert store.pending_challenge.value is challenge
    assert store.owns_challenge(login_flow)
    assert not store.owns_challenge(register_flow)

    store.track_challenge(None, owner=login_flow)
    assert store.pending_challenge.value is None
    assert not store.owns_challenge(login_flow)


async def test_clear_drops_challenge_of_any_owner(store):
    store.track_challenge(PendingChallenge(user_id="u1", email="a***@b.com", purpose=Purpose.LOGIN), owner=object())

    store.clear()

    assert store.pending_challenge.value is None
