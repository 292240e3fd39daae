import pytest
from rest_framework.test import APIClient

from taskboard.realtime.gateway import RealtimeGateway
from taskboard.realtime.rooms import RoomRegistry
from taskboard.users.models import User
from tests.factories import RecordingServer
from tests.factories import TokenBook
from tests.factories import create_user


@pytest.fixture
def member(db) -> User:
    return create_user(User.Role.USER)


@pytest.fixture
def other_member(db) -> User:
    return create_user(User.Role.USER)


@pytest.fixture
def manager(db) -> User:
    return create_user(User.Role.MANAGER)


@pytest.fixture
def admin(db) -> User:
    return create_user(User.Role.ADMIN)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def server() -> RecordingServer:
    return RecordingServer()


@pytest.fixture
def token_book() -> TokenBook:
    return TokenBook()


@pytest.fixture
def gateway(server, token_book) -> RealtimeGateway:
    return RealtimeGateway(server, authenticate=token_book, registry=RoomRegistry())
