import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def client(session_factory, statuses):
    from checkout.data.database import get_db
    from checkout.main import create_app

    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
