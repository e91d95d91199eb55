"""
Tests for connection state transitions, commit reports and loaders.
"""

import pytest

from trax.core.url import parse_url
from trax.exceptions import ConnectionStateError, MutationError
from trax.mutation import (
    CommitMessage,
    CommitReport,
    Connection,
    ConnectionState,
    Loader,
    MessageOutcome,
    QueueLoader,
)


class TestConnection:
    """Tests for the IDLE/BUFFERING/COMMITTING state machine."""

    def test_buffering(self):
        connection = Connection("c1")
        connection.buffer(CommitMessage())
        assert connection.state is ConnectionState.BUFFERING
        assert len(connection.scratch) == 1

    def test_commit_drains_scratch(self):
        connection = Connection("c1")
        first, second = CommitMessage(), CommitMessage()
        connection.buffer(first)
        connection.buffer(second)
        drained = connection.begin_commit()
        assert drained[0] is first and drained[1] is second
        assert connection.state is ConnectionState.COMMITTING
        assert len(connection.scratch) == 0
        connection.end_commit()
        assert connection.state is ConnectionState.IDLE

    def test_no_buffering_while_committing(self):
        connection = Connection("c1")
        connection.begin_commit()
        with pytest.raises(ConnectionStateError):
            connection.buffer(CommitMessage())

    def test_no_nested_commit(self):
        connection = Connection("c1")
        connection.begin_commit()
        with pytest.raises(ConnectionStateError):
            connection.begin_commit()

    def test_end_without_commit(self):
        with pytest.raises(ConnectionStateError):
            Connection("c1").end_commit()

    def test_binding_round_trip(self):
        connection = Connection("c1", url=parse_url("trax://app"))
        saved = connection.binding()
        connection.url = parse_url("trax://other")
        connection.pending_ticket = 4
        connection.restore_binding(saved)
        assert str(connection.url) == "trax://app"
        assert connection.pending_ticket is None


class TestCommitReport:
    """Tests for report summaries."""

    def test_ok(self):
        report = CommitReport("c1", [MessageOutcome(CommitMessage(), applied=True)])
        assert report.ok
        assert len(report.applied) == 1

    def test_failed(self):
        error = MutationError("insert", "nope")
        report = CommitReport("c1", [MessageOutcome(CommitMessage(), applied=False, error=error)])
        assert not report.ok
        assert report.failed[0].error is error


class TestLoaders:
    """Tests for the loader collaborators."""

    def test_loader_is_abstract(self):
        with pytest.raises(TypeError):
            Loader()

    def test_queue_loader(self):
        loader = QueueLoader()
        assert loader.pop() is None
        url = parse_url("trax://remote")
        loader.request("c1", url, 1)
        loader.request("c1", url, 2)
        assert [request.ticket for request in loader.pending] == [1, 2]
        assert loader.pop().ticket == 1
        assert len(loader.pending) == 1
