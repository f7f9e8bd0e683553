import pytest
from fastapi.testclient import TestClient

from studycards.core.config import Settings
from studycards.database import build_engine, build_session_factory, init_schema
from studycards.main import create_app
from studycards.seed_admin import seed_admin

TEST_PASSWORD = 'Sup3rsecret'
ADMIN_EMAIL = 'admin@example.com'
ADMIN_PASSWORD = 'Adm1nistrator'


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url='sqlite://',
        jwt_secret_key='test-access-secret',
        jwt_refresh_secret_key='test-refresh-secret',
        bcrypt_rounds=4,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
    )


@pytest.fixture
def db(settings):
    engine = build_engine(settings)
    init_schema(engine)
    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    def _register(email: str, password: str = TEST_PASSWORD) -> dict:
        response = client.post('/api/auth/register', json={'email': email, 'password': password})
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def admin_login(client, settings):
    session = client.app.state.session_factory()
    try:
        seed_admin(session, settings)
    finally:
        session.close()

    response = client.post('/api/auth/login', json={'email': ADMIN_EMAIL, 'password': ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def bearer():
    def _bearer(token: str) -> dict:
        return {'Authorization': f'Bearer {token}'}

    return _bearer
