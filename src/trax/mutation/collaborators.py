"""
Collaborator interfaces of the mutation engine.

The engine performs no I/O. Document loading is delegated to a Loader,
whose results come back through `MutationEngine.deliver` together with the
ticket of the request they answer.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from trax.core.url import TraxURL

log = logging.getLogger(__name__)


class Loader(ABC):
    """Abstract base class for document loaders.

    A Loader fetches raw markup for a locator, from disk, the network or
    anywhere else, and hands it back to the engine with
    `MutationEngine.deliver(connection_id, ticket, text)`. Requests must not
    block the engine; delivery may happen at any later time.
    """

    @abstractmethod
    def request(self, connection_id: str, url: TraxURL, ticket: int) -> None:
        """Start loading the document at `url` on behalf of a connection.

        Params:
            connection_id: Connection that asked for the document
            url: Locator of the document (scheme and authority identify it)
            ticket: Identifies this request; passed back on delivery
        """
        ...


@dataclass
class LoadRequest:
    """A load requested from a QueueLoader and not yet delivered."""

    connection_id: str
    url: TraxURL
    ticket: int


class QueueLoader(Loader):
    """Loader recording requests for an external fetcher to service.

    The owner drains `pending` (or calls `pop`) and delivers results to the
    engine itself.
    """

    def __init__(self):
        self.pending: list[LoadRequest] = []

    def request(self, connection_id: str, url: TraxURL, ticket: int) -> None:
        log.info("Load of %s requested by %s (ticket %d)", url, connection_id, ticket)
        self.pending.append(LoadRequest(connection_id, url, ticket))

    def pop(self) -> LoadRequest | None:
        """Take the oldest pending request, if any."""
        if not self.pending:
            return None
        return self.pending.pop(0)
