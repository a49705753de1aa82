import pytest
from fastapi.testclient import TestClient

from database import MemStorage
from main import app, get_storage


# ---------------------------
# Fixtures
# ---------------------------
@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def client(storage):
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
