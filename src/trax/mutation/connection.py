"""
Connections and their transaction state machine.

Each connection moves through IDLE -> BUFFERING -> COMMITTING -> IDLE:
incoming messages are buffered in its scratch queue until a commit drains
the queue into the live document.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from trax.core.url import TraxURL
from trax.exceptions import ConnectionStateError, TraxError
from trax.mutation.messages import Message

log = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Transaction state of a connection."""

    IDLE = "idle"
    BUFFERING = "buffering"
    COMMITTING = "committing"


@dataclass
class Connection:
    """
    Logical identity under which a mutation stream is ordered.

    Params:
        id: Connection identity supplied by the transport
        url: Address the connection is bound to; its document is the live tree
        display_url: Address shown to the user (differs after a cosmetic redirect)
        state: Current transaction state
        scratch: Buffered messages in arrival order
        outbox: Outbound messages produced locally (two-way field updates)
        pending_ticket: Ticket of the latest outstanding load request
        pending_url: Address of the latest outstanding load request
    """

    id: str
    url: TraxURL | None = None
    display_url: TraxURL | None = None
    state: ConnectionState = ConnectionState.IDLE
    scratch: deque[Message] = field(default_factory=deque)
    outbox: list[str] = field(default_factory=list)
    pending_ticket: int | None = None
    pending_url: TraxURL | None = None

    def buffer(self, message: Message) -> None:
        if self.state is ConnectionState.COMMITTING:
            raise ConnectionStateError(self.id, "cannot buffer messages while committing")
        if self.state is ConnectionState.IDLE:
            self._transition(ConnectionState.BUFFERING)
        self.scratch.append(message)

    def begin_commit(self) -> list[Message]:
        """Enter COMMITTING and drain the scratch buffer."""
        if self.state is ConnectionState.COMMITTING:
            raise ConnectionStateError(self.id, "a commit is already running")
        self._transition(ConnectionState.COMMITTING)
        messages = list(self.scratch)
        self.scratch.clear()
        return messages

    def end_commit(self) -> None:
        if self.state is not ConnectionState.COMMITTING:
            raise ConnectionStateError(self.id, "no commit is running")
        self._transition(ConnectionState.IDLE)

    def _transition(self, state: ConnectionState) -> None:
        log.debug("Connection %s: %s -> %s", self.id, self.state.value, state.value)
        self.state = state

    def binding(self) -> tuple[TraxURL | None, TraxURL | None, int | None, TraxURL | None]:
        return (self.url, self.display_url, self.pending_ticket, self.pending_url)

    def restore_binding(
        self, binding: tuple[TraxURL | None, TraxURL | None, int | None, TraxURL | None]
    ) -> None:
        self.url, self.display_url, self.pending_ticket, self.pending_url = binding


@dataclass
class MessageOutcome:
    """Result of applying one buffered message."""

    message: Message
    applied: bool
    error: TraxError | None = None


@dataclass
class CommitReport:
    """
    What a commit did.

    Params:
        connection_id: The committing connection
        outcomes: One entry per drained message, in application order
        rolled_back: Whether the whole commit was undone (atomic commits only)
    """

    connection_id: str
    outcomes: list[MessageOutcome] = field(default_factory=list)
    rolled_back: bool = False

    @property
    def applied(self) -> list[Message]:
        return [outcome.message for outcome in self.outcomes if outcome.applied]

    @property
    def failed(self) -> list[MessageOutcome]:
        return [outcome for outcome in self.outcomes if outcome.error is not None]

    @property
    def ok(self) -> bool:
        return not self.failed and not self.rolled_back
