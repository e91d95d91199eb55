"""
Mutation / transaction engine.

The engine owns the resident documents and the connections mutating them.
Messages received on a connection are buffered until a `commit` arrives;
the commit then applies them in arrival order under the document's lock.

Failure policy: every message is applied atomically. When a message fails
(its target does not resolve, the edit is impossible, a class in its body
cannot be instantiated) the document is restored to its state before that
message, the failure is logged and recorded in the CommitReport, and the
commit continues with the next message. With `atomic_commits` enabled the
first failure instead restores the state from before the commit and the
remaining messages are skipped.
"""

import itertools
import logging
import threading
from contextlib import ExitStack

from trax.config import DEFAULT_SETTINGS, TraxSettings
from trax.core.document import Document, DocumentSnapshot
from trax.core.tree_node import Element, Property, is_quotable
from trax.core.types import CoercionError, NodeId, Value, ValueKind
from trax.core.url import TraxURL, parse_url
from trax.exceptions import (
    ClassInstantiationError,
    ConnectionStateError,
    MutationError,
    TraxError,
)
from trax.execution.evaluation import Evaluator
from trax.execution.resolution import UrlResolver
from trax.mutation.collaborators import Loader
from trax.mutation.connection import CommitReport, Connection, MessageOutcome
from trax.mutation.messages import (
    CommitMessage,
    GetMessage,
    InsertMessage,
    InsertPropMessage,
    Message,
    RedirectMessage,
    parse_messages,
)
from trax.mutation.operations import apply_insert, apply_insert_prop
from trax.parsing.parser import TraxParser
from trax.structure.instantiation import Instantiator
from trax.structure.registry import class_of, register_classes
from trax.structure.templates import CLASS_PREFIX, CLEAR_PREFIX

log = logging.getLogger(__name__)

CLEAR_SELF = f"{CLEAR_PREFIX}:self"


class MutationEngine:
    """
    Applies remotely originated messages to live documents.

    Params:
        loader: Collaborator that fetches documents for `get`/`redirect`
        settings: Engine settings shared with parser, resolver and documents
    """

    def __init__(self, loader: Loader | None = None, settings: TraxSettings = DEFAULT_SETTINGS):
        self.loader = loader
        self.settings = settings
        self.parser = TraxParser(settings)
        self.documents: dict[tuple[str, str | None], Document] = {}
        self.connections: dict[str, Connection] = {}
        self._tickets = itertools.count(1)
        self._lock = threading.RLock()

    # Documents and connections

    def parse_url(self, url: str | TraxURL) -> TraxURL:
        if isinstance(url, TraxURL):
            return url
        return parse_url(url, self.settings)

    def load_document(self, text: str, url: str | TraxURL) -> Document:
        """
        Parse markup and make it the resident document for its address.

        Classes declared in the document are registered and its instances
        expanded. A document already resident at the same address is
        replaced.

        Raises:
            DocumentParseException: If the markup is malformed
            ClassDefinitionError, ClassInstantiationError: On template errors
        """
        parsed_url = self.parse_url(url).document()
        document = self.parser.parse_document(text, parsed_url)
        self._prepare(document)
        with self._lock:
            self.documents[parsed_url.document_key] = document
        log.info("Loaded document %s", parsed_url)
        return document

    def document_at(self, url: str | TraxURL) -> Document | None:
        return self.documents.get(self.parse_url(url).document_key)

    def open_connection(self, connection_id: str, url: str | TraxURL | None = None) -> Connection:
        """Register a connection, optionally bound to an address."""
        with self._lock:
            if connection_id in self.connections:
                raise ConnectionStateError(connection_id, "connection already exists")
            parsed = self.parse_url(url) if url is not None else None
            connection = Connection(connection_id, url=parsed, display_url=parsed)
            self.connections[connection_id] = connection
        log.debug("Opened connection %s at %s", connection_id, parsed)
        return connection

    def close_connection(self, connection_id: str) -> None:
        """
        Tear a connection down.

        Documents no longer bound to any connection are dropped.
        """
        with self._lock:
            connection = self.connection(connection_id)
            del self.connections[connection_id]
            if connection.url is None:
                return
            key = connection.url.document_key
            still_bound = any(
                other.url is not None and other.url.document_key == key
                for other in self.connections.values()
            )
            if not still_bound and self.documents.pop(key, None) is not None:
                log.info("Dropped document %s", connection.url.document())

    def connection(self, connection_id: str) -> Connection:
        try:
            return self.connections[connection_id]
        except KeyError:
            raise ConnectionStateError(connection_id, "unknown connection") from None

    def document_for(self, connection_id: str) -> Document | None:
        """The live document a connection is bound to, if resident."""
        connection = self.connection(connection_id)
        if connection.url is None:
            return None
        return self.documents.get(connection.url.document_key)

    # Receiving and committing

    def receive(self, connection_id: str, text: str) -> list[CommitReport]:
        """
        Accept transport-delimited markup holding one or more messages.

        Every message is validated before any is buffered. Messages are then
        buffered in order and each `commit` runs the commit.

        Returns:
            One CommitReport per `commit` message received

        Raises:
            DocumentParseException: If the markup is malformed
            MessageError: If a message is unknown or malformed
            ConnectionStateError: If the connection is unknown or committing
        """
        self.connection(connection_id)
        fragment = self.parser.parse_fragment(text)
        messages = parse_messages(fragment, self.settings)
        reports = []
        for message in messages:
            if isinstance(message, CommitMessage):
                reports.append(self.commit(connection_id))
            else:
                self.buffer(connection_id, message)
        return reports

    def buffer(self, connection_id: str, message: Message) -> None:
        with self._lock:
            self.connection(connection_id).buffer(message)
        log.debug("Buffered %s on %s", message, connection_id)

    def commit(self, connection_id: str) -> CommitReport:
        """
        Apply every buffered message of a connection, in arrival order.

        The connection's document is looked up again before each message,
        so a `get` or `redirect` earlier in the commit decides where the
        messages after it apply. Each document a commit touches stays
        locked until the commit ends.

        Returns:
            Report of the applied and failed messages

        Raises:
            ConnectionStateError: If the connection is unknown or already committing
        """
        connection = self.connection(connection_id)
        with self._lock:
            messages = connection.begin_commit()
        report = CommitReport(connection_id)
        try:
            with ExitStack() as held:
                self._apply_all(connection, messages, report, held)
        finally:
            connection.end_commit()
        log.debug(
            "Commit on %s: %d applied, %d failed",
            connection_id,
            len(report.applied),
            len(report.failed),
        )
        return report

    def _apply_all(
        self,
        connection: Connection,
        messages: list[Message],
        report: CommitReport,
        held: ExitStack,
    ) -> None:
        atomic = self.settings.atomic_commits
        # Documents entered by this commit, with their pre-commit snapshots.
        entered: list[tuple[Document, DocumentSnapshot | None]] = []
        commit_binding = connection.binding()

        for position, message in enumerate(messages):
            document = self._enter(connection, held, entered)
            snapshot = document.snapshot() if document is not None else None
            binding = connection.binding()
            try:
                self._apply(connection, document, message)
            except TraxError as e:
                if snapshot is not None:
                    document.restore(snapshot)
                connection.restore_binding(binding)
                report.outcomes.append(MessageOutcome(message, applied=False, error=e))
                if atomic:
                    log.warning("Rolling back commit on %s: %s failed: %s", connection.id, message, e)
                    for touched, commit_snapshot in entered:
                        touched.restore(commit_snapshot)
                    connection.restore_binding(commit_binding)
                    report.rolled_back = True
                    report.outcomes.extend(
                        MessageOutcome(skipped, applied=False) for skipped in messages[position + 1 :]
                    )
                    for outcome in report.outcomes:
                        outcome.applied = False
                    return
                log.warning("Discarded %s on %s: %s", message, connection.id, e)
                continue
            if snapshot is not None:
                document.release(snapshot)
            report.outcomes.append(MessageOutcome(message, applied=True))
            log.debug("Applied %s on %s", message, connection.id)

        for touched, commit_snapshot in entered:
            if commit_snapshot is not None:
                touched.release(commit_snapshot)

    def _enter(
        self,
        connection: Connection,
        held: ExitStack,
        entered: list[tuple[Document, DocumentSnapshot | None]],
    ) -> Document | None:
        """The connection's current document, locked for the rest of the commit."""
        document = self.document_for(connection.id)
        if document is None or any(document is touched for touched, _ in entered):
            return document
        held.enter_context(document.lock)
        commit_snapshot = document.snapshot() if self.settings.atomic_commits else None
        entered.append((document, commit_snapshot))
        return document

    def _apply(self, connection: Connection, document: Document | None, message: Message) -> None:
        if isinstance(message, GetMessage):
            self._get(connection, message.doc)
        elif isinstance(message, RedirectMessage):
            self._redirect(connection, message)
        elif isinstance(message, (InsertMessage, InsertPropMessage)):
            if document is None:
                raise MutationError(message.tag, "connection has no resident document")
            if isinstance(message, InsertMessage):
                inserted = apply_insert(document, message)
                self._prepare(document, inserted)
            else:
                target = apply_insert_prop(document, message)
                self._prepare(document, [target])
        else:
            raise MutationError(message.tag, "cannot be applied inside a commit")

    # Loading

    def _get(self, connection: Connection, url: TraxURL) -> None:
        document_url = url.document()
        if document_url.document_key in self.documents:
            # A resident document cancels any outstanding request.
            connection.pending_ticket = None
            connection.pending_url = None
            connection.url = document_url
            if connection.display_url is None:
                connection.display_url = document_url
            log.debug("%s is resident; %s bound to it", document_url, connection.id)
            return
        if self.loader is None:
            raise MutationError(GetMessage.tag, f"no loader to fetch {document_url}")
        ticket = next(self._tickets)
        connection.pending_ticket = ticket
        connection.pending_url = document_url
        log.info("Requesting %s for %s (ticket %d)", document_url, connection.id, ticket)
        self.loader.request(connection.id, document_url, ticket)

    def _redirect(self, connection: Connection, message: RedirectMessage) -> None:
        if message.connection is not None:
            connection = self._connection_at(message.connection)
        if message.cosmetic:
            connection.display_url = message.url
            log.info("Connection %s now displays %s", connection.id, message.url)
            return
        connection.display_url = message.url
        log.info("Connection %s redirected to %s", connection.id, message.url)
        self._get(connection, message.url)

    def _connection_at(self, url: TraxURL) -> Connection:
        for candidate in self.connections.values():
            if candidate.url is not None and str(candidate.url) == str(url):
                return candidate
        for candidate in self.connections.values():
            if candidate.url is not None and candidate.url.document_key == url.document_key:
                return candidate
        raise MutationError(RedirectMessage.tag, f"no connection is bound to {url}")

    def deliver(self, connection_id: str, ticket: int, text: str) -> Document | None:
        """
        Install a document fetched by the loader.

        Only the latest request of the connection is honoured: results for
        superseded tickets are discarded.

        Returns:
            The installed document, or None when the result was stale

        Raises:
            DocumentParseException: If the fetched markup is malformed
        """
        connection = self.connection(connection_id)
        with self._lock:
            if ticket != connection.pending_ticket:
                log.warning(
                    "Discarding stale load result for %s (ticket %d, latest %s)",
                    connection_id,
                    ticket,
                    connection.pending_ticket,
                )
                return None
            url = connection.pending_url
            connection.pending_ticket = None
            connection.pending_url = None
        document = self.load_document(text, url)
        with self._lock:
            connection.url = url
            if connection.display_url is None:
                connection.display_url = url
        return document

    # Templates and local events

    def _prepare(self, document: Document, roots: list[NodeId] | None = None) -> None:
        """Register classes declared under `roots` and expand the instances there."""
        if roots is None:
            roots = [document.root] if document.root is not None else []
        roots = [root for root in roots if root in document]
        register_classes(document, roots)
        evaluator = Evaluator(document)
        Instantiator(document, lambda doc, node, prop: evaluator.evaluate_property(node, prop)).expand(roots)

    def update_field(
        self, connection_id: str, instance: str | TraxURL | NodeId, field: str, value: Value | str
    ) -> Value:
        """
        Set a field of a class instance from the local side.

        The new value is type-checked against the field declaration and
        written to the instance's properties. For a `bind:` field the
        outbound message `<event target="..." value="..." />` is queued on
        the connection's outbox.

        Returns:
            The typed value written

        Raises:
            ElementNotFound: If the instance does not resolve
            MutationError: If the element is not a class instance, or the value
                cannot be written as a quoted attribute
            UndeclaredFieldError: If the class does not declare `field`
            ClassInstantiationError: If the value does not fit the field type
        """
        document = self.document_for(connection_id)
        if document is None:
            raise MutationError("update", "connection has no resident document")
        connection = self.connection(connection_id)

        with document.lock:
            node_id = instance if isinstance(instance, int) else UrlResolver(document).resolve(instance)
            element = document.element(node_id)
            definition = class_of(document, element)
            if definition is None:
                raise MutationError("update", f"<{element.tag}> is not a class instance")
            spec = definition.get_field(field)
            try:
                typed = spec.convert_value(value) if isinstance(value, Value) else spec.convert_literal(value)
            except CoercionError as e:
                raise ClassInstantiationError(
                    definition.name, f"field '{field}' expects {spec.type.value}, got {e.value}"
                ) from None
            if typed.kind is not ValueKind.BOOL and not is_quotable(typed.to_literal()):
                raise MutationError("update", f"field '{field}' value cannot be written as markup")

            document.touch(node_id)
            _write_field(element, field, typed)
            log.debug("Updated %s.%s = %s", definition.name, field, typed)

            if spec.bind_event is not None:
                outbound = _outbound(spec.bind_event, str(document.locate(node_id)), typed)
                connection.outbox.append(outbound)
                log.debug("Queued %s on %s", outbound, connection_id)
        return typed

    def emit(self, connection_id: str, event: str) -> int:
        """
        Deliver a local event: remove every element marked `clear:self="event"`.

        Elements inside class instance shadows are included; blueprints
        inside `class:` declarations are not.

        Returns:
            Number of elements removed
        """
        document = self.document_for(connection_id)
        if document is None:
            return 0
        with document.lock:
            marked = [
                node_id
                for node_id in document.iter_elements(include_shadow=True)
                if document.element(node_id).get_attribute(CLEAR_SELF) == event
                and not _in_declaration(document, node_id)
            ]
            removed = 0
            for node_id in marked:
                if node_id not in document:
                    continue
                if node_id == document.root:
                    log.warning("Not clearing the document root on event '%s'", event)
                    continue
                document.drop(node_id)
                removed += 1
        log.debug("Event '%s' on %s cleared %d elements", event, connection_id, removed)
        return removed

    def drain_outbox(self, connection_id: str) -> list[str]:
        """Take all queued outbound messages of a connection."""
        connection = self.connection(connection_id)
        with self._lock:
            messages = list(connection.outbox)
            connection.outbox.clear()
        return messages


def _in_declaration(document: Document, node_id: NodeId) -> bool:
    parent = document.parent_of(node_id)
    while parent is not None:
        if document.element(parent).prefix == CLASS_PREFIX:
            return True
        parent = document.parent_of(parent)
    return False


def _write_field(element: Element, field: str, value: Value) -> None:
    position = element.index_of(field)
    if value.kind is ValueKind.BOOL:
        if value.data and position is None:
            element.properties.append(Property(field))
        elif value.data:
            element.properties[position] = Property(field)
        elif position is not None:
            del element.properties[position]
        return
    new = Property(field, value.to_literal())
    if position is None:
        element.properties.append(new)
    else:
        element.properties[position] = new


def _outbound(event: str, target: str, value: Value) -> str:
    props = [Property("target", target), Property("value", value.to_literal())]
    return f"<{event} " + " ".join(prop.to_markup() for prop in props) + " />"
