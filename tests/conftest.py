import fakeredis
import pytest
from fastapi.testclient import TestClient

from app import app
from backend import RedisBackend, get_redis_backend
from services.chat_rooms import ChatRoomService


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(redis_server):
    client = fakeredis.FakeRedis(server=redis_server, decode_responses=True)
    yield client
    client.close()


@pytest.fixture
def backend(redis_client):
    return RedisBackend(redis_client)


@pytest.fixture
def service(backend):
    return ChatRoomService(backend)


@pytest.fixture
def client(backend):
    app.dependency_overrides[get_redis_backend] = lambda: backend
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
