import httpx
import pytest

from fake_backend import BASE_URL, FakeBackend
from gatorpay.core.config import Settings
from gatorpay.db.token_store import FileTokenStore
from gatorpay.flow.navigation import Navigator
from gatorpay.services.api_client import GatorPayAPI
from gatorpay.services.otp_service import OtpFlow
from gatorpay.services.session_service import SessionStore


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def config(tmp_path):
    return Settings(
        API_BASE_URL=BASE_URL,
        TOKEN_STORAGE_PATH=str(tmp_path / "storage.json"),
        OTP_RESEND_COOLDOWN_SECONDS=30,
        OTP_COOLDOWN_TICK_SECONDS=0.01,
    )


@pytest.fixture
def token_store(config):
    return FileTokenStore(path=config.TOKEN_STORAGE_PATH, key=config.TOKEN_STORAGE_KEY)


@pytest.fixture
async def api(backend, token_store):
    client = GatorPayAPI(
        token_store=token_store,
        base_url=BASE_URL,
        transport=httpx.ASGITransport(app=backend.app),
    )
    yield client
    await client.close()


@pytest.fixture
def store(api, token_store):
    return SessionStore(api, token_store)


@pytest.fixture
def navigator(store):
    nav = Navigator(store)
    yield nav
    nav.close()


@pytest.fixture
def flow(api, store, config):
    otp_flow = OtpFlow(api, store, config)
    yield otp_flow
    otp_flow.close()

