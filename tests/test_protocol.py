"""Tests for the challenge sync protocol."""

import json
import logging

import pytest

from lockpick.core.models import Challenge, ClientIdentity
from lockpick.core.protocol import (
    ChallengeSyncProtocol,
    MessageType,
    decode_message,
    encode_message,
)
from lockpick.core.registry import ChallengeRegistry
from lockpick.core.views import ViewRegistry
from lockpick.sim import LocalBroadcastHub

from conftest import RecordingView


def make_challenge(**overrides) -> Challenge:
    values = {
        "id": "c1",
        "actor_ref": "Actor.valeros",
        "dc": 20,
        "required_attempts": 3,
        "gm_id": "gm",
        "player_id": "alice",
    }
    values.update(overrides)
    return Challenge(**values)


def make_protocol(identity: ClientIdentity):
    hub = LocalBroadcastHub()
    registry = ChallengeRegistry()
    views = ViewRegistry()
    opened: list[tuple[str, bool]] = []

    async def open_view(challenge, is_gm_view):
        opened.append((challenge.id, is_gm_view))

    protocol = ChallengeSyncProtocol(identity, registry, views, hub.connect(identity.user_id), open_view)
    return protocol, registry, views, opened


class TestWireFormat:
    """Tests for message encoding."""

    def test_encode_envelope(self):
        message = encode_message(MessageType.UPDATE_CHALLENGE, make_challenge(success_count=1))
        assert message["type"] == "updateChallenge"
        assert message["payload"]["challenge"]["successCount"] == 1
        assert message["payload"]["challenge"]["actorRef"] == "Actor.valeros"

    def test_decode_accepts_json_text_and_bytes(self):
        message = encode_message(MessageType.OPEN_CHALLENGE, make_challenge())
        text = json.dumps(message)
        assert decode_message(text).payload.challenge == make_challenge()
        assert decode_message(text.encode()).type is MessageType.OPEN_CHALLENGE

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            b"\xff\xfe{",
            "[1, 2]",
            {"payload": {"challenge": {}}},
            {"type": "deleteChallenge", "payload": {"challenge": make_challenge().to_snapshot()}},
            {"type": "updateChallenge"},
            {"type": "updateChallenge", "payload": {"challenge": {**make_challenge().to_snapshot(), "dc": 0}}},
            {"type": "updateChallenge", "payload": {"challenge": {**make_challenge().to_snapshot(), "successCount": 9}}},
        ],
    )
    def test_decode_rejects_malformed(self, raw):
        assert decode_message(raw) is None


class TestShouldOpen:
    """Tests for who surfaces an openChallenge."""

    @pytest.mark.parametrize(
        "identity,expected",
        [
            (ClientIdentity("alice"), True),
            (ClientIdentity("bob"), False),
            (ClientIdentity("gm", is_gm=True), False),
            (ClientIdentity("gm2", is_gm=True), True),
        ],
    )
    def test_recipients(self, identity, expected):
        protocol, *_ = make_protocol(identity)
        assert protocol.should_open(make_challenge()) is expected

    def test_gm_beneficiary_opens_own(self):
        """A GM that is also the beneficiary still sees the challenge."""
        protocol, *_ = make_protocol(ClientIdentity("gm", is_gm=True))
        assert protocol.should_open(make_challenge(player_id="gm"))

    def test_no_beneficiary(self):
        protocol, *_ = make_protocol(ClientIdentity("alice"))
        assert not protocol.should_open(make_challenge(player_id=None))


class TestHandleMessage:
    """Tests for applying incoming messages."""

    @pytest.mark.asyncio
    async def test_open_stores_and_opens_view(self):
        protocol, registry, _, opened = make_protocol(ClientIdentity("alice"))
        await protocol.handle_message(encode_message(MessageType.OPEN_CHALLENGE, make_challenge()))

        assert registry.get("c1") == make_challenge()
        assert opened == [("c1", False)]

    @pytest.mark.asyncio
    async def test_open_for_other_player_ignored(self):
        protocol, registry, _, opened = make_protocol(ClientIdentity("bob"))
        await protocol.handle_message(encode_message(MessageType.OPEN_CHALLENGE, make_challenge()))

        assert "c1" not in registry
        assert opened == []

    @pytest.mark.asyncio
    async def test_other_gm_opens_gm_view(self):
        protocol, _, _, opened = make_protocol(ClientIdentity("gm2", is_gm=True))
        await protocol.handle_message(encode_message(MessageType.OPEN_CHALLENGE, make_challenge()))
        assert opened == [("c1", True)]

    @pytest.mark.asyncio
    async def test_update_overwrites_and_renders(self):
        protocol, registry, views, _ = make_protocol(ClientIdentity("alice"))
        registry.put(make_challenge())
        view = RecordingView(make_challenge(), False)
        views.register(view)

        updated = make_challenge(success_count=2, tool_selection="tk1")
        await protocol.handle_message(encode_message(MessageType.UPDATE_CHALLENGE, updated))

        assert registry.get("c1") == updated
        assert view.renders == [updated]

    @pytest.mark.asyncio
    async def test_update_is_idempotent(self):
        protocol, registry, _, _ = make_protocol(ClientIdentity("alice"))
        message = encode_message(MessageType.UPDATE_CHALLENGE, make_challenge(success_count=1))

        await protocol.handle_message(message)
        once = registry.all()
        await protocol.handle_message(message)

        assert registry.all() == once

    @pytest.mark.asyncio
    async def test_update_for_unknown_id_is_stored(self):
        """Updates are applied regardless of whether the id was seen before."""
        protocol, registry, _, opened = make_protocol(ClientIdentity("bob"))
        await protocol.handle_message(encode_message(MessageType.UPDATE_CHALLENGE, make_challenge()))

        assert "c1" in registry
        assert opened == []

    @pytest.mark.asyncio
    async def test_update_may_lower_progress(self):
        """No ordering check: the last message applied wins."""
        protocol, registry, _, _ = make_protocol(ClientIdentity("alice"))
        registry.put(make_challenge(success_count=2))
        await protocol.handle_message(encode_message(MessageType.UPDATE_CHALLENGE, make_challenge(success_count=0)))
        assert registry.get("c1").success_count == 0

    @pytest.mark.asyncio
    async def test_malformed_message_changes_nothing(self):
        protocol, registry, _, opened = make_protocol(ClientIdentity("alice"))
        registry.put(make_challenge(success_count=1))

        await protocol.handle_message({"type": "updateChallenge", "payload": {"challenge": {"id": "c1"}}})
        await protocol.handle_message("{{{")

        assert registry.get("c1").success_count == 1
        assert opened == []


class TestSending:
    """Tests for outgoing broadcasts."""

    @pytest.mark.asyncio
    async def test_sends_full_snapshot(self):
        protocol, *_ = make_protocol(ClientIdentity("gm", is_gm=True))
        assert await protocol.send_open(make_challenge())
        assert protocol.channel.sent == [encode_message(MessageType.OPEN_CHALLENGE, make_challenge())]

    @pytest.mark.asyncio
    async def test_send_failure_logged_not_raised(self, caplog):
        protocol, *_ = make_protocol(ClientIdentity("gm", is_gm=True))
        protocol.channel.fail_sends = True

        with caplog.at_level(logging.ERROR, logger="lockpick.core.protocol"):
            assert not await protocol.send_update(make_challenge())

        assert "Failed to broadcast updateChallenge for c1" in caplog.text

    @pytest.mark.asyncio
    async def test_attach_subscribes_once(self):
        protocol, *_ = make_protocol(ClientIdentity("alice"))
        protocol.attach()
        protocol.attach()
        assert protocol.channel.handlers == [protocol.handle_message]
