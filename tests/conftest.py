"""Shared test fixtures.

Storage fixtures run every bin against both engines:
- SQL: SQLite through aiosqlite, one database file per test
- Document store: mongomock-motor, an in-memory motor look-alike

API fixtures build the app around the test's own Storage bundle. httpx's
ASGITransport does not run the lifespan, so fixtures initialize storage
and seed the registry themselves.
"""

from collections.abc import AsyncGenerator, Iterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from dsu.core import security
from dsu.core.config import Settings
from dsu.core.rate_limiting import limiter
from dsu.services.container import Services, build_services
from dsu.services.registry_seed import seed_registry
from dsu.storage import Storage
from dsu.storage.factory import create_mongo_storage, create_sql_storage

STORAGE_ENGINES = ["sql", "mongo"]

TEST_PASSWORD = "correct horse battery staple"  # nosec B105
TEST_REDIRECT_URI = "https://app1.example.com/callback"


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch: pytest.MonkeyPatch) -> None:
    """Use the minimum bcrypt cost so tests that register users stay fast."""
    monkeypatch.setattr(security, "BCRYPT_ROUNDS", 4)


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Turn the shared limiter off; rate-limit tests turn it back on."""
    original = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        auth_cookie_secure=False,
        activation_required=False,
        rate_limit_enabled=False,
    )


async def _open_storage(engine: str, tmp_path) -> Storage:
    if engine == "sql":
        storage = create_sql_storage(f"sqlite+aiosqlite:///{tmp_path / 'dsu.db'}")
    else:
        storage = create_mongo_storage(AsyncMongoMockClient(), "dsu_test")
    await storage.initialize()
    return storage


@pytest_asyncio.fixture
async def sql_storage(tmp_path) -> AsyncGenerator[Storage, None]:
    """SQL-backed storage on a fresh SQLite file."""
    storage = await _open_storage("sql", tmp_path)
    yield storage
    await storage.close()


@pytest_asyncio.fixture
async def mongo_storage(tmp_path) -> Storage:
    """Document-store-backed storage on a fresh in-memory client."""
    return await _open_storage("mongo", tmp_path)


@pytest_asyncio.fixture(params=STORAGE_ENGINES)
async def storage(request, tmp_path) -> AsyncGenerator[Storage, None]:
    """Storage for each engine in turn."""
    storage = await _open_storage(request.param, tmp_path)
    yield storage
    if request.param == "sql":
        await storage.close()


@pytest_asyncio.fixture
async def seeded_storage(storage: Storage) -> Storage:
    """Storage whose registry holds the bundled schemas."""
    await seed_registry(storage.registry)
    return storage


@pytest.fixture
def services(seeded_storage: Storage, test_settings: Settings) -> Services:
    """Services wired to seeded storage."""
    return build_services(seeded_storage, test_settings)


@pytest_asyncio.fixture
async def client(
    seeded_storage: Storage, test_settings: Settings
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the app, backed by seeded storage."""
    from dsu.main import create_app

    app = create_app(settings=test_settings, storage=seeded_storage)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# API helpers
# =============================================================================


async def register_user(
    client: AsyncClient, username: str, password: str = TEST_PASSWORD
) -> None:
    """Register an account through the API."""
    response = await client.post(
        "/v1/users",
        json={
            "username": username,
            "password": password,
            "email": f"{username}@example.com",
        },
    )
    assert response.status_code == 201, response.text


async def login(
    client: AsyncClient, username: str, password: str = TEST_PASSWORD
) -> str:
    """Log in and return the authentication token.

    The cookie set by the login response is cleared so each request
    states its credentials explicitly.
    """
    response = await client.post(
        "/v1/auth", data={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return response.json()["omh_auth_token"]


async def register_and_login(client: AsyncClient, username: str) -> str:
    """Register an account and return a fresh authentication token for it."""
    await register_user(client, username)
    return await login(client, username)
