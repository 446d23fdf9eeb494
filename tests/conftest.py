"""
Pytest configuration and fixtures for the hackmud chat client.

Provides an in-memory fake of the chat API served through
httpx.MockTransport, so every layer above the socket runs for real.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
from hackmud_chat.core.session import ChatSession
from hackmud_chat.core.transport import ChatTransport

BASE_URL = "https://chat.example.test/mobile"

Reply = Union[Tuple[int, Any], Callable[[Optional[dict]], httpx.Response]]


class FakeChatApi:
    """Records requests and answers them from canned replies per endpoint."""

    def __init__(self):
        self.requests: List[Tuple[str, str, Optional[dict]]] = []
        self.replies: Dict[str, List[Reply]] = {}

    def reply(self, endpoint: str, body: Any, status: int = 200) -> None:
        """Answer every request to ``endpoint`` with ``body``."""
        self.replies[endpoint] = [(status, body)]

    def queue(self, endpoint: str, body: Any, status: int = 200) -> None:
        """Queue a reply; the last queued reply for an endpoint repeats."""
        self.replies.setdefault(endpoint, []).append((status, body))

    def reply_with(self, endpoint: str, func: Callable[[Optional[dict]], httpx.Response]) -> None:
        self.replies[endpoint] = [func]

    def handler(self, request: httpx.Request) -> httpx.Response:
        endpoint = "/" + request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, endpoint, body))

        queue = self.replies.get(endpoint)
        if not queue:
            return httpx.Response(404, json={"ok": False, "msg": "unknown endpoint"})
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(reply):
            return reply(body)
        status, data = reply
        return httpx.Response(status, json=data)

    def bodies(self, endpoint: str) -> List[Optional[dict]]:
        return [body for _, path, body in self.requests if path == endpoint]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_api() -> FakeChatApi:
    """Fake chat API with a two-user account and no pending chats."""
    api = FakeChatApi()
    api.reply("/account_data.json", {
        "ok": True,
        "users": {
            "alice": {"0000": ["alice", "bob"], "town": ["alice"]},
            "bob": {},
        },
    })
    api.reply("/chats.json", {"ok": True, "chats": {"alice": [], "bob": []}})
    api.reply("/create_chat.json", {"ok": True})
    return api


@pytest.fixture
def transport(fake_api: FakeChatApi) -> ChatTransport:
    return ChatTransport(BASE_URL, transport=fake_api.transport)


@pytest.fixture
def session(transport: ChatTransport) -> ChatSession:
    return ChatSession(transport, token="T")
