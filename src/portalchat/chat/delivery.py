# Reply delivery - the "typing" state machine for one assistant reply.
# Created: 2026-10-12
#
# pending -> streaming -> completed
#        \           \-> cancelled
#         \-> cancelled
#
# A ReplyDelivery only tracks state and position in the text. The manager
# owns the timer and applies each chunk to the session.

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from portalchat.chat.models import ReplyState
from portalchat.errors import InvalidReplyTransition

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[ReplyState, frozenset[ReplyState]] = {
    ReplyState.PENDING: frozenset({ReplyState.STREAMING, ReplyState.CANCELLED}),
    ReplyState.STREAMING: frozenset({ReplyState.COMPLETED, ReplyState.CANCELLED}),
    ReplyState.COMPLETED: frozenset(),
    ReplyState.CANCELLED: frozenset(),
}


@dataclass
class ReplyDelivery:
    """Incremental delivery of a fixed reply string."""

    session_id: str
    full_text: str
    chunk_size: int = 1
    state: ReplyState = ReplyState.PENDING
    message_id: str | None = None
    position: int = 0
    ticks: int = field(default=0, repr=False)

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

    @property
    def is_active(self) -> bool:
        return self.state in (ReplyState.PENDING, ReplyState.STREAMING)

    @property
    def is_finished(self) -> bool:
        return self.position >= len(self.full_text)

    @property
    def emitted(self) -> str:
        """Text delivered so far."""
        return self.full_text[: self.position]

    def _move(self, target: ReplyState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidReplyTransition(self.state.value, target.value)
        logger.debug("Reply for %s: %s -> %s", self.session_id, self.state.value, target.value)
        self.state = target

    def start(self, message_id: str) -> None:
        """Placeholder appended; begin streaming into ``message_id``."""
        self._move(ReplyState.STREAMING)
        self.message_id = message_id

    def advance(self) -> str:
        """Emit the next chunk and return the text delivered so far.

        Moves to COMPLETED on the tick that delivers the last character.
        """
        if self.state is not ReplyState.STREAMING:
            raise InvalidReplyTransition(self.state.value, ReplyState.STREAMING.value)
        self.position = min(self.position + self.chunk_size, len(self.full_text))
        self.ticks += 1
        if self.is_finished:
            self._move(ReplyState.COMPLETED)
        return self.emitted

    def cancel(self) -> None:
        self._move(ReplyState.CANCELLED)
