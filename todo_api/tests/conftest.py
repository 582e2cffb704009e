import pytest
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.api.settings import Settings
from src.api.tokens import TokenService
from src.api.users import UserStore, build_password_hasher

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256-signing"
TEST_ISSUER = "todo-api-test"


@pytest.fixture
def settings() -> Settings:
    # Cheap Argon2 parameters keep the suite fast
    return Settings(
        jwt_secret=TEST_SECRET,
        jwt_expiration_seconds=3600,
        jwt_issuer=TEST_ISSUER,
        password_hash_time_cost=1,
        password_hash_memory_cost=1024,
        log_level="DEBUG",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def user_store() -> UserStore:
    return UserStore(build_password_hasher(time_cost=1, memory_cost=1024))


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(secret=TEST_SECRET, lifetime_seconds=3600, issuer=TEST_ISSUER)
