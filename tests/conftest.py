import httpx
import pytest

from services.shared.identity import IdentityClient

USERS = {
    "u1": {
        "id": "u1",
        "username": "una_one",
        "email": "una@example.com",
        "fullName": "Una One",
        "phone": "+1-555-0100",
    },
    "usr-002": {
        "id": "usr-002",
        "username": "jane_smith",
        "email": "jane@example.com",
        "fullName": "Jane Smith",
    },
}


class RecordingDispatcher:
    """publish されたイベントを記録するだけのディスパッチャ。"""

    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)

    async def drain(self):
        return None

    def of_type(self, event_type: str):
        return [e for e in self.events if e.event_type == event_type]


def _user_handler(request: httpx.Request) -> httpx.Response:
    user_id = request.url.path.rsplit("/", 1)[-1]
    if user_id in USERS:
        return httpx.Response(200, json=USERS[user_id])
    return httpx.Response(404, json={"error": "User not found", "userId": user_id})


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def identity():
    return IdentityClient("http://users.test", transport=httpx.MockTransport(_user_handler))


@pytest.fixture
def identity_down():
    return IdentityClient("http://users.test", transport=httpx.MockTransport(_unreachable))


@pytest.fixture
def unreachable_transport():
    return httpx.MockTransport(_unreachable)
