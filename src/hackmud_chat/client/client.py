"""
hackmud Chat Client

Turns the request/response chat API into a continuously updated view: one
timer re-syncs account data, another polls for new chats, and both report
through the event dispatcher.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..auth import TokenAuth
from ..config import ChatSettings
from ..core.events import EventDispatcher, EventTypes
from ..core.session import ChatSession, now_ms
from ..core.transport import ChatTransport, HackmudChatError

logger = logging.getLogger(__name__)


class ClientNotInitialized(HackmudChatError):
    """Client used before initialize() or after destroy()"""
    pass


class HackmudChatClient:
    """
    hackmud chat client

    Usage:
        client = HackmudChatClient("abcde")
        client.on("poll", lambda messages: ...)
        await client.initialize()
        ...
        await client.destroy()

    ``token_or_pass`` may be a chat token or a five character chat pass. A
    pass is exchanged for a token during initialize(). Intervals are in
    seconds; arguments left as None fall back to ``settings``.
    """

    def __init__(self, token_or_pass: str, poll_interval: Optional[float] = None,
                 account_sync_interval: Optional[float] = None, base_url: Optional[str] = None,
                 *, timeout: Optional[float] = None, sort_polled: Optional[bool] = None,
                 settings: Optional[ChatSettings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        overrides = {
            'poll_interval': poll_interval,
            'account_sync_interval': account_sync_interval,
            'base_url': base_url,
            'timeout': timeout,
            'sort_polled': sort_polled,
        }
        settings = settings or ChatSettings()
        self.settings = ChatSettings.model_validate({
            **settings.model_dump(),
            **{k: v for k, v in overrides.items() if v is not None},
        })

        self.auth = TokenAuth(token_or_pass)
        self.transport = ChatTransport(self.settings.base_url, self.settings.timeout, transport)
        self.session = ChatSession(self.transport)
        self.events = EventDispatcher()

        self._tasks: List[asyncio.Task] = []
        self._initialized = False
        self._destroyed = False
        self._init_task: Optional[asyncio.Task] = None

    @property
    def token(self) -> Optional[str]:
        return self.session.token

    @property
    def users(self) -> Dict[str, List[str]]:
        return self.session.users

    @property
    def last_poll(self) -> int:
        return self.session.last_poll

    @property
    def is_running(self) -> bool:
        return self._initialized and not self._destroyed

    async def initialize(self) -> None:
        """
        Authenticate, sync account data once, then start both timers

        Fails only if the chat pass cannot be exchanged; a failed first
        account sync is reported as an ``error`` event.
        """
        if self._destroyed:
            raise ClientNotInitialized("Client has been destroyed")
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._start())
        await self._init_task

    async def _start(self) -> None:
        try:
            await self.auth.authenticate(self.session)
        except Exception:
            self._init_task = None
            await self.transport.close()
            raise
        await self._sync_account_data()
        if self._destroyed:
            return

        self.session.last_poll = now_ms()
        self._tasks = [
            asyncio.create_task(self._run_timer(self.settings.account_sync_interval, self._sync_account_data),
                                name="hackmud-chat-account-sync"),
            asyncio.create_task(self._run_timer(self.settings.poll_interval, self._poll),
                                name="hackmud-chat-poll"),
        ]
        self._initialized = True
        logger.info(f"Chat client started for {len(self.users)} user(s), "
                    f"polling every {self.settings.poll_interval}s")

    async def destroy(self) -> None:
        """Stop both timers and close the HTTP client"""
        self._destroyed = True
        current = asyncio.current_task()
        timers = self._tasks
        tasks = [task for task in timers if task is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = []
        await self.transport.close()
        logger.info("Chat client destroyed")
        if current is not None and current in timers:
            # Called from a tick; stop this timer once the tick returns
            current.cancel()

    async def __aenter__(self) -> 'HackmudChatClient':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.destroy()

    # Events

    def on(self, name: str, handler: Callable[[Any], Any]) -> None:
        """Add an event handler for ``poll``, ``error`` or ``accountSync``"""
        self.events.on(name, handler)

    def off(self, name: str, handler: Callable[[Any], Any]) -> bool:
        return self.events.off(name, handler)

    def subscribe_all(self, handler: Callable[[str, Any], Any]) -> None:
        """Add a handler for every event, called with ``(name, payload)``"""
        self.events.subscribe_all(handler)

    supervise = subscribe_all

    # Scheduling

    async def _run_timer(self, interval: float, tick: Callable[[], Any]) -> None:
        while True:
            await asyncio.sleep(interval)
            await tick()

    async def _sync_account_data(self) -> None:
        try:
            users = await self.session.sync_account_data()
            self.events.emit(EventTypes.ACCOUNT_SYNC, {user: list(channels) for user, channels in users.items()})
        except Exception as e:
            self._report_error(e)

    async def _poll(self) -> None:
        try:
            messages = await self.session.poll(sort=self.settings.sort_polled)
            self.events.emit(EventTypes.POLL, messages)
        except Exception as e:
            self._report_error(e)

    def _report_error(self, error: Exception) -> None:
        logger.warning(f"Scheduled chat operation failed: {error!r}")
        try:
            self.events.emit(EventTypes.ERROR, error)
        except Exception:
            logger.exception("Error handler raised")

    # Direct operations

    def _require_running(self) -> None:
        if not self.is_running:
            raise ClientNotInitialized("Call initialize() before using the client")

    async def send(self, from_user: str, channel: str, message: str) -> Any:
        """Send a message to a channel"""
        self._require_running()
        return await self.session.send(from_user, channel, message)

    async def tell(self, from_user: str, to_user: str, message: str) -> Any:
        """Send a tell to a user"""
        self._require_running()
        return await self.session.tell(from_user, to_user, message)

    async def history(self, username: str, channel: str, before: int, after: int) -> Any:
        """
        Get chat history of a channel between two millisecond timestamps

        Pretty broken upstream: the result is empty unless ``username`` joined
        or left ``channel`` between the given times.
        """
        self._require_running()
        return await self.session.chat_history(username, channel, before, after)

