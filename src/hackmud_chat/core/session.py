"""
Chat Session

Holds the chat token, the tracked users with their channels, and the
timestamp of the last poll. Every API call goes through here with the token
injected.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from .events import Message, ms_to_wire, parse_chats
from .transport import ChatTransport

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current time in milliseconds"""
    return int(time.time() * 1000)


class ChatSession:
    """Stateful view over the stateless chat API"""

    def __init__(self, transport: ChatTransport, token: Optional[str] = None):
        self.transport = transport
        self.token = token
        # {"com": ["0000", "town"], "com1killer": []}
        self.users: Dict[str, List[str]] = {}
        self.last_poll: int = now_ms()

    async def get_token(self, pass_: str) -> str:
        """Exchange a chat pass for a chat token"""
        data = await self.transport.request("/get_token.json", {"pass": pass_})
        return data["chat_token"]

    async def account_data(self) -> Dict[str, Any]:
        return await self.transport.request("/account_data.json", {"chat_token": self.token})

    async def chats(self, usernames: List[str], before: Optional[int] = None,
                    after: Optional[int] = None) -> Dict[str, Any]:
        """
        Get chats for ``usernames`` before or after a millisecond timestamp

        Exactly one of ``before`` and ``after`` must be given.
        """
        if (before is None) == (after is None):
            raise ValueError("Exactly one of before or after must be specified")
        return await self.transport.request("/chats.json", {
            "chat_token": self.token,
            "usernames": usernames,
            "before": ms_to_wire(before) if before is not None else None,
            "after": ms_to_wire(after) if after is not None else None,
        })

    async def send(self, username: str, channel: str, msg: str) -> Any:
        return await self.transport.request("/create_chat.json", {
            "chat_token": self.token, "username": username, "channel": channel, "msg": msg,
        })

    async def tell(self, username: str, tell: str, msg: str) -> Any:
        return await self.transport.request("/create_chat.json", {
            "chat_token": self.token, "username": username, "tell": tell, "msg": msg,
        })

    async def chat_history(self, username: str, channel: str, before: int, after: int) -> Any:
        """
        Get channel history between two millisecond timestamps

        Upstream returns an empty list unless ``username`` joined or left
        ``channel`` inside the window.
        """
        return await self.transport.request("/chat_history.json", {
            "chat_token": self.token,
            "username": username,
            "channel": channel,
            "before": ms_to_wire(before),
            "after": ms_to_wire(after),
        })

    async def sync_account_data(self) -> Dict[str, List[str]]:
        """Refresh the users/channels mapping from the server"""
        data = await self.account_data()
        users = {user: list(channels or {}) for user, channels in data["users"].items()}
        self.users = users
        logger.debug(f"Synced {len(users)} user(s)")
        return users

    async def poll(self, sort: bool = False) -> List[Message]:
        """Fetch every tracked user's chats since the last poll"""
        usernames = list(self.users)
        data = await self.chats(usernames, after=self.last_poll)
        self.last_poll = max(self.last_poll, now_ms())
        return parse_chats(data["chats"], sort=sort)
