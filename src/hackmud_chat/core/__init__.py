"""
hackmud Chat Core Module

This module contains the protocol-level pieces of the client:
- HTTP transport and API errors
- Chat message schema and event dispatch
- Session state and API operations
"""

from .transport import ChatTransport, HackmudChatError, ApiError, TransportError, DEFAULT_BASE_URL
from .events import (
    Message, EventTypes, EventDispatcher, InvalidEventName,
    parse_chats, wire_to_ms, ms_to_wire
)
from .session import ChatSession, now_ms

__all__ = [
    'ChatTransport',
    'HackmudChatError',
    'ApiError',
    'TransportError',
    'DEFAULT_BASE_URL',
    'Message',
    'EventTypes',
    'EventDispatcher',
    'InvalidEventName',
    'parse_chats',
    'wire_to_ms',
    'ms_to_wire',
    'ChatSession',
    'now_ms'
]
