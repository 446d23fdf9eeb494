"""
Tests for ChatSession.

Tests cover:
- Token injection on every endpoint
- Wire time conversion for chats and history
- Account sync mapping and failure isolation
- Poll normalization and last-poll bookkeeping
"""

import pytest
from hackmud_chat.core import session as session_module
from hackmud_chat.core.transport import ApiError


class TestEndpoints:
    """Tests for the raw API operations."""

    @pytest.mark.asyncio
    async def test_get_token(self, fake_api, session):
        fake_api.reply("/get_token.json", {"ok": True, "chat_token": "NEW"})

        assert await session.get_token("abcde") == "NEW"
        assert fake_api.bodies("/get_token.json") == [{"pass": "abcde"}]

    @pytest.mark.asyncio
    async def test_account_data_sends_token(self, fake_api, session):
        await session.account_data()

        assert fake_api.bodies("/account_data.json") == [{"chat_token": "T"}]

    @pytest.mark.asyncio
    async def test_chats_converts_after_to_seconds(self, fake_api, session):
        await session.chats(["alice", "bob"], after=1234567)

        assert fake_api.bodies("/chats.json") == [
            {"chat_token": "T", "usernames": ["alice", "bob"], "after": 1234}
        ]

    @pytest.mark.asyncio
    async def test_chats_converts_before_to_seconds(self, fake_api, session):
        await session.chats(["alice"], before=5000)

        assert fake_api.bodies("/chats.json")[0]["before"] == 5
        assert "after" not in fake_api.bodies("/chats.json")[0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [{}, {"before": 1000, "after": 2000}])
    async def test_chats_requires_exactly_one_bound(self, fake_api, session, kwargs):
        with pytest.raises(ValueError):
            await session.chats(["alice"], **kwargs)

        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_send_to_channel(self, fake_api, session):
        await session.send("alice", "0000", "hello")

        assert fake_api.bodies("/create_chat.json") == [
            {"chat_token": "T", "username": "alice", "channel": "0000", "msg": "hello"}
        ]

    @pytest.mark.asyncio
    async def test_tell(self, fake_api, session):
        await session.tell("alice", "bob", "psst")

        assert fake_api.bodies("/create_chat.json") == [
            {"chat_token": "T", "username": "alice", "tell": "bob", "msg": "psst"}
        ]

    @pytest.mark.asyncio
    async def test_chat_history_passes_result_through(self, fake_api, session):
        """Test that an empty upstream history is returned unchanged."""
        fake_api.reply("/chat_history.json", {"ok": True, "chats": []})

        result = await session.chat_history("alice", "town", before=2000000, after=1000000)

        assert result == {"ok": True, "chats": []}
        assert fake_api.bodies("/chat_history.json") == [
            {"chat_token": "T", "username": "alice", "channel": "town", "before": 2000, "after": 1000}
        ]


class TestAccountSync:
    """Tests for rebuilding the users/channels mapping."""

    @pytest.mark.asyncio
    async def test_maps_users_to_channel_names(self, session):
        users = await session.sync_account_data()

        assert users == {"alice": ["0000", "town"], "bob": []}
        assert session.users == users

    @pytest.mark.asyncio
    async def test_failure_leaves_mapping_intact(self, fake_api, session):
        await session.sync_account_data()
        before = dict(session.users)

        fake_api.reply("/account_data.json", {"ok": False, "msg": "bad token"}, status=401)
        with pytest.raises(ApiError):
            await session.sync_account_data()

        assert session.users == before

    @pytest.mark.asyncio
    async def test_malformed_payload_leaves_mapping_intact(self, fake_api, session):
        await session.sync_account_data()
        before = dict(session.users)

        fake_api.reply("/account_data.json", {"ok": True, "users": {"carol": 7}})
        with pytest.raises(TypeError):
            await session.sync_account_data()

        assert session.users == before


class TestPoll:
    """Tests for a single poll cycle."""

    @pytest.mark.asyncio
    async def test_poll_scenario(self, fake_api, session):
        """Test the alice/bob scenario from end to end."""
        session.users = {"alice": [], "bob": []}
        fake_api.reply("/chats.json", {"ok": True, "chats": {"alice": [{"t": 1000}], "bob": []}})

        messages = await session.poll()

        assert len(messages) == 1
        assert messages[0].timestamp == 1000000
        assert messages[0].to_user == "alice"

    @pytest.mark.asyncio
    async def test_poll_uses_last_poll_and_tracked_users(self, fake_api, session):
        session.users = {"alice": ["town"], "bob": []}
        session.last_poll = 42000

        await session.poll()

        body = fake_api.bodies("/chats.json")[0]
        assert body["usernames"] == ["alice", "bob"]
        assert body["after"] == 42

    @pytest.mark.asyncio
    async def test_poll_advances_last_poll_even_when_empty(self, session, monkeypatch):
        session.users = {"alice": []}
        session.last_poll = 1000
        monkeypatch.setattr(session_module, "now_ms", lambda: 9000)

        assert await session.poll() == []
        assert session.last_poll == 9000

    @pytest.mark.asyncio
    async def test_last_poll_never_moves_backwards(self, session, monkeypatch):
        session.users = {"alice": []}
        session.last_poll = 10000
        monkeypatch.setattr(session_module, "now_ms", lambda: 5000)

        await session.poll()

        assert session.last_poll == 10000

    @pytest.mark.asyncio
    async def test_failed_poll_keeps_last_poll(self, fake_api, session):
        session.users = {"alice": []}
        session.last_poll = 1000
        fake_api.reply("/chats.json", {"ok": False}, status=500)

        with pytest.raises(ApiError):
            await session.poll()

        assert session.last_poll == 1000

    @pytest.mark.asyncio
    async def test_malformed_entry_does_not_block_batch(self, fake_api, session, monkeypatch):
        """Test that one unparseable chat neither hides the others nor stalls polling."""
        session.users = {"alice": [], "bob": []}
        session.last_poll = 1000
        monkeypatch.setattr(session_module, "now_ms", lambda: 9000)
        fake_api.reply("/chats.json", {"ok": True, "chats": {
            "alice": [{"t": 1000, "msg": "good"}],
            "bob": [{"t": 1001, "msg": None}, {"t": 1002, "to_user": ["not", "a", "name"]}],
        }})

        messages = await session.poll()

        assert [(m.to_user, m.body) for m in messages] == [("alice", "good"), ("bob", "")]
        assert session.last_poll == 9000

    @pytest.mark.asyncio
    async def test_malformed_response_still_advances_last_poll(self, fake_api, session, monkeypatch):
        session.users = {"alice": []}
        session.last_poll = 1000
        monkeypatch.setattr(session_module, "now_ms", lambda: 9000)
        fake_api.reply("/chats.json", {"ok": True})

        with pytest.raises(KeyError):
            await session.poll()

        assert session.last_poll == 9000
