"""
Authentication module for the hackmud Chat client

A chat pass is the short code handed out by the in-game ``chat_pass``
command; it can be traded once for a long-lived chat token.
"""

import logging

logger = logging.getLogger(__name__)

CHAT_PASS_LENGTH = 5


def is_chat_pass(token_or_pass: str) -> bool:
    """Chat passes are five characters; anything else is taken as a token"""
    return len(token_or_pass) == CHAT_PASS_LENGTH


class TokenAuth:
    """Resolves a chat token from either a token or a chat pass"""

    def __init__(self, token_or_pass: str):
        self.token_or_pass = token_or_pass
        self.token = None if is_chat_pass(token_or_pass) else token_or_pass

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    async def authenticate(self, session) -> str:
        """Exchange the pass if needed and store the token on ``session``"""
        if self.token is None:
            logger.info("Exchanging chat pass for a chat token")
            self.token = await session.get_token(self.token_or_pass)
        session.token = self.token
        return self.token

__all__ = ['TokenAuth', 'is_chat_pass', 'CHAT_PASS_LENGTH']
