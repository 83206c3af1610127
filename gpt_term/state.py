"""Request lifecycle gate for outstanding completion requests."""

from __future__ import annotations

from enum import Enum


class RequestState(str, Enum):
    """Lifecycle of the completion request channel."""

    IDLE = "IDLE"
    AWAITING_REPLY = "AWAITING_REPLY"


class RequestGate:
    """Allow at most one outstanding completion request.

    Mutated only from the event loop, so compare-and-set needs no lock.
    """

    def __init__(self) -> None:
        self._state = RequestState.IDLE
        self._conversation_id: str | None = None

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is RequestState.AWAITING_REPLY

    @property
    def conversation_id(self) -> str | None:
        """Id of the conversation whose reply is outstanding."""
        return self._conversation_id

    def busy_for(self, conversation_id: str) -> bool:
        return self.busy and self._conversation_id == conversation_id

    def try_begin(self, conversation_id: str) -> bool:
        """Transition IDLE -> AWAITING_REPLY; False when a request is already out."""
        if self._state is not RequestState.IDLE:
            return False
        self._state = RequestState.AWAITING_REPLY
        self._conversation_id = conversation_id
        return True

    def finish(self) -> str | None:
        """Return to IDLE and report which conversation the request belonged to."""
        finished = self._conversation_id
        self._state = RequestState.IDLE
        self._conversation_id = None
        return finished
