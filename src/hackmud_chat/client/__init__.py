"""
hackmud Chat Client Module

This module contains the host-facing client:
- Pass/token authentication at startup
- Account sync and chat polling timers
- Event subscription
- Sending messages, tells and history lookups
"""

from .client import HackmudChatClient, ClientNotInitialized

__all__ = ['HackmudChatClient', 'ClientNotInitialized']
