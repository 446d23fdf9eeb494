"""
Message Schema and Event Dispatch for the hackmud Chat client

This module defines the chat message structure, the fixed set of client
events, and the dispatcher that delivers them to subscribers.
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .transport import HackmudChatError

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Any]


class InvalidEventName(HackmudChatError):
    """Subscription or emission with an unknown event name"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid event name: {name!r} (expected one of {', '.join(EventTypes.ALL)})")


class EventTypes:
    """Names of the events a client emits"""

    POLL = "poll"
    ERROR = "error"
    ACCOUNT_SYNC = "accountSync"

    ALL = (POLL, ERROR, ACCOUNT_SYNC)


# The API speaks seconds; everything inside the client is milliseconds.
def wire_to_ms(seconds: float) -> int:
    """Convert an API timestamp (seconds) to milliseconds"""
    return int(round(float(seconds) * 1000))


def ms_to_wire(timestamp_ms: float) -> int:
    """Convert milliseconds to a whole-second API timestamp"""
    return int(timestamp_ms // 1000)


class Message(BaseModel):
    """
    A single chat message as seen by one of the account's users

    Channel messages carry ``channel``; tells have no channel and are
    addressed to ``to_user``. Fields the API adds beyond these are kept.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(None, description="Message identifier")
    timestamp: int = Field(..., description="Unix timestamp in milliseconds")
    from_user: Optional[str] = Field(None, description="Sender handle")
    to_user: str = Field(..., description="Handle the message was delivered to")
    channel: Optional[str] = Field(None, description="Channel name, None for tells")
    msg: str = Field("", description="Message text")
    is_join: bool = Field(False, description="Channel join notice")
    is_leave: bool = Field(False, description="Channel leave notice")

    @field_validator('timestamp')
    @classmethod
    def validate_timestamp(cls, v):
        if v < 0:
            raise ValueError("Timestamp cannot be negative")
        return v

    @field_validator('msg', mode='before')
    @classmethod
    def validate_msg(cls, v):
        return "" if v is None else v

    @classmethod
    def from_wire(cls, data: Dict[str, Any], username: str) -> 'Message':
        """
        Build a message from an API chat entry fetched for ``username``

        Messages posted by the user to a channel come back without a
        ``to_user``; those default to the user they were fetched for.
        """
        fields = dict(data)
        fields['timestamp'] = wire_to_ms(fields.pop('t'))
        fields['to_user'] = fields.get('to_user') or username
        return cls.model_validate(fields)

    @property
    def is_tell(self) -> bool:
        return self.channel is None

    @property
    def body(self) -> str:
        return self.msg

    @property
    def target(self) -> str:
        """Channel for channel messages, recipient handle for tells"""
        return self.to_user if self.channel is None else self.channel

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


def parse_chats(chats: Dict[str, List[Dict[str, Any]]], sort: bool = False) -> List[Message]:
    """
    Flatten a ``{username: [chat, ...]}`` API response into one list

    Groups are concatenated in the response's user order, so messages are
    only ordered per user. Pass ``sort=True`` for a stable chronological sort.
    Entries that cannot be parsed are logged and skipped.
    """
    messages = []
    for username, user_chats in chats.items():
        for chat in user_chats or []:
            try:
                messages.append(Message.from_wire(chat, username))
            except (ValidationError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed chat for {username}: {e}")
    if sort:
        messages.sort(key=lambda m: m.timestamp)
    return messages


class EventDispatcher:
    """
    Registry of event handlers

    Handlers run synchronously, in registration order. Exceptions raised by a
    handler propagate to whoever emitted the event.
    """

    def __init__(self):
        self._handlers: Dict[str, List[EventHandler]] = {name: [] for name in EventTypes.ALL}

    def _store(self, name: str) -> List[EventHandler]:
        try:
            return self._handlers[name]
        except KeyError:
            raise InvalidEventName(name) from None

    def on(self, name: str, handler: EventHandler) -> None:
        """Add a handler for one event"""
        self._store(name).append(handler)

    def off(self, name: str, handler: EventHandler) -> bool:
        """Remove a handler, returning whether it was registered"""
        store = self._store(name)
        if handler in store:
            store.remove(handler)
            return True
        return False

    def subscribe_all(self, handler: Callable[[str, Any], Any]) -> None:
        """Add a handler for every event, called as ``handler(name, payload)``"""
        for name in EventTypes.ALL:
            self._handlers[name].append(functools.partial(handler, name))

    supervise = subscribe_all

    def emit(self, name: str, payload: Any = None) -> None:
        """Deliver an event to its handlers"""
        handlers = list(self._store(name))
        logger.debug(f"Emitting {name} to {len(handlers)} handler(s)")
        for handler in handlers:
            handler(payload)

    def handler_count(self, name: str) -> int:
        return len(self._store(name))
