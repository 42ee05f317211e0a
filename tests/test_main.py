import httpx

from fake_backend import TOKEN, VALID_CODE, VALID_PASSWORD
from gatorpay.db.token_store import MemoryTokenStore
from gatorpay.flow.states import ChallengeState
from gatorpay.main import lifespan
from gatorpay.utils import constants


async def test_start_without_token_lands_on_login(backend, config):
    async with lifespan(config, token_store=MemoryTokenStore(), transport=httpx.ASGITransport(app=backend.app)) as app:
        assert app.navigator.current.value == constants.LOGIN_ROUTE
        assert not app.store.is_authenticated.value

    assert backend.calls == []


async def test_start_restores_persisted_session(backend, config):
    token_store = MemoryTokenStore(token=TOKEN)

    async with lifespan(config, token_store=token_store, transport=httpx.ASGITransport(app=backend.app)) as app:
        assert app.store.is_authenticated.value
        assert app.navigator.current.value == constants.DASHBOARD_ROUTE


async def test_stale_token_is_dropped_on_start(backend, config):
    token_store = MemoryTokenStore(token="revoked")

    async with lifespan(config, token_store=token_store, transport=httpx.ASGITransport(app=backend.app)) as app:
        assert app.navigator.current.value == constants.LOGIN_ROUTE

    assert token_store.get() is None


async def test_sign_in_then_logout(backend, config):
    token_store = MemoryTokenStore()

    async with lifespan(config, token_store=token_store, transport=httpx.ASGITransport(app=backend.app)) as app:
        screen = app.login_screen()
        screen.email = "a@b.com"
        screen.password = VALID_PASSWORD
        await screen.submit()
        screen.otp_code = VALID_CODE
        await screen.verify_otp()

        assert token_store.get() == TOKEN
        assert app.navigator.current.value == constants.DASHBOARD_ROUTE

        wallet = await app.wallet_screen().add_money(10)
        assert wallet.balance == "110.00"

        page = await app.transactions_screen().load()
        assert page.total == 25

        app.logout()
        assert token_store.get() is None
        assert app.navigator.current.value == constants.LOGIN_ROUTE


async def test_auth_screens_are_closed_when_replaced_or_left(backend, config):
    async with lifespan(config, token_store=MemoryTokenStore(), transport=httpx.ASGITransport(app=backend.app)) as app:
        first = app.login_screen()
        first.email = "a@b.com"
        first.password = VALID_PASSWORD
        await first.submit()
        await first.resend_otp()

        second = app.login_screen()

        assert first.flow.state.value is ChallengeState.IDLE
        assert first.resend_cooldown == 0
        assert app.store.pending_challenge.value is None

        register = app.register_screen()
        app.navigator.navigate(constants.REGISTER_ROUTE)

        second.email = "a@b.com"
        second.password = VALID_PASSWORD
        assert await second.submit() is None
        assert second.last_error.code == "INVALID_STATE"
        assert backend.count("/auth/login") == 1

        register.email = "new@b.com"
        register.password = VALID_PASSWORD
        register.username = "newbie"
        register.phone = "5551234567"
        register.first_name = "New"
        register.last_name = "User"
        assert await register.submit() == "n***@b.com"
