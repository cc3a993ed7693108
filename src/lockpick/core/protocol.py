"""Broadcast protocol that keeps challenge replicas in step across clients.

Two message types exist, both carrying a full challenge snapshot:

    {"type": "openChallenge",   "payload": {"challenge": {...}}}
    {"type": "updateChallenge", "payload": {"challenge": {...}}}

There is no version or timestamp. Whatever arrives last overwrites the local
copy, so two clients mutating the same challenge concurrently can lose an
update. Sends are fire-and-forget.
"""

import json
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from .collaborators import BroadcastChannel
from .models import Challenge, ClientIdentity
from .registry import ChallengeRegistry
from .views import ViewRegistry

logger = logging.getLogger(__name__)

ViewOpener = Callable[[Challenge, bool], Awaitable[Any]]


class MessageType(str, Enum):
    OPEN_CHALLENGE = "openChallenge"
    UPDATE_CHALLENGE = "updateChallenge"


class ChallengePayload(BaseModel):
    challenge: Challenge


class SyncMessage(BaseModel):
    """Envelope for every message on the channel."""

    type: MessageType
    payload: ChallengePayload

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.type.value, "payload": {"challenge": self.payload.challenge.to_snapshot()}}


def encode_message(message_type: MessageType, challenge: Challenge) -> dict[str, Any]:
    return SyncMessage(type=message_type, payload=ChallengePayload(challenge=challenge)).to_wire()


def decode_message(raw: dict[str, Any] | str | bytes) -> SyncMessage | None:
    """Parse an envelope; returns None for anything malformed."""
    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.debug(f"Ignoring undecodable message: {e}")
        return None

    if not isinstance(data, dict):
        logger.debug(f"Ignoring non-object message: {type(data).__name__}")
        return None

    try:
        return SyncMessage.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Ignoring invalid {data.get('type')!r} message: {e.error_count()} error(s)")
        return None


class ChallengeSyncProtocol:
    """Encodes outgoing challenge broadcasts and applies incoming ones."""

    def __init__(
        self,
        identity: ClientIdentity,
        registry: ChallengeRegistry,
        views: ViewRegistry,
        channel: BroadcastChannel,
        open_view: ViewOpener | None = None,
    ):
        self.identity = identity
        self.registry = registry
        self.views = views
        self.channel = channel
        self.open_view = open_view
        self._attached = False

    def attach(self) -> None:
        """Start receiving messages from the channel."""
        if self._attached:
            return
        self.channel.subscribe(self.handle_message)
        self._attached = True

    # === Sending ===

    async def send_open(self, challenge: Challenge) -> bool:
        return await self._emit(MessageType.OPEN_CHALLENGE, challenge)

    async def send_update(self, challenge: Challenge) -> bool:
        return await self._emit(MessageType.UPDATE_CHALLENGE, challenge)

    async def _emit(self, message_type: MessageType, challenge: Challenge) -> bool:
        try:
            await self.channel.emit(encode_message(message_type, challenge))
        except Exception as e:
            logger.error(f"Failed to broadcast {message_type.value} for {challenge.id}: {e}")
            return False
        logger.debug(f"Broadcast {message_type.value} for {challenge.id} (successes={challenge.success_count})")
        return True

    # === Receiving ===

    def should_open(self, challenge: Challenge) -> bool:
        """Whether an ``openChallenge`` for this challenge should surface here.

        The beneficiary always sees it. Other arbiters see it too, but the
        arbiter that created it already has its own view open.
        """
        user_id = self.identity.user_id
        if user_id == challenge.player_id:
            return True
        return self.identity.is_gm and user_id != challenge.gm_id

    async def handle_message(self, raw: dict[str, Any] | str | bytes) -> None:
        message = decode_message(raw)
        if message is None:
            return

        challenge = message.payload.challenge
        if message.type is MessageType.OPEN_CHALLENGE:
            await self._handle_open(challenge)
        elif message.type is MessageType.UPDATE_CHALLENGE:
            await self._handle_update(challenge)

    async def _handle_open(self, challenge: Challenge) -> None:
        if not self.should_open(challenge):
            logger.debug(f"Not surfacing challenge {challenge.id} for user {self.identity.user_id}")
            return

        self.registry.put(challenge)
        logger.info(f"Received challenge {challenge.id} from arbiter {challenge.gm_id}")

        if self.open_view is not None:
            await self.open_view(challenge, self.identity.is_gm)

    async def _handle_update(self, challenge: Challenge) -> None:
        self.registry.put(challenge)
        rendered = await self.views.render_all(challenge)
        logger.debug(
            f"Applied update for {challenge.id} "
            f"({challenge.success_count}/{challenge.required_attempts}, {rendered} view(s))"
        )
