"""
hackmud Chat - Python client for the hackmud chat API

Polls the chat API on a timer and turns it into callback-based events,
keeping track of which channels each of the account's users is in.

Key Features:
- Chat pass to chat token exchange
- Periodic account sync and chat polling on asyncio
- Event handlers for poll, error and accountSync
- Channel messages, tells and history
- Command-line client

Usage:
    from hackmud_chat import HackmudChatClient

    client = HackmudChatClient("my-chat-token")
    client.on("poll", lambda messages: print(messages))
    await client.initialize()
    await client.send("com1killer", "0000", "Hello, World!")
    await client.destroy()
"""

__version__ = "0.1.0"
__author__ = "hackmud-chat Contributors"
__license__ = "AGPLv3"

# Core imports
from .core import (
    Message, EventTypes, EventDispatcher, ChatSession, ChatTransport,
    HackmudChatError, ApiError, TransportError, InvalidEventName
)
from .client.client import HackmudChatClient, ClientNotInitialized
from .auth import TokenAuth, is_chat_pass
from .config import ChatSettings

__all__ = [
    'Message',
    'EventTypes',
    'EventDispatcher',
    'ChatSession',
    'ChatTransport',
    'HackmudChatError',
    'ApiError',
    'TransportError',
    'InvalidEventName',
    'HackmudChatClient',
    'ClientNotInitialized',
    'TokenAuth',
    'is_chat_pass',
    'ChatSettings'
]
