"""
TRAX mutation protocol.

This package provides the message catalog, the per-connection transaction
state machine, the tree edits performed by `insert`/`insertProp`, the loader
collaborator interface and the MutationEngine tying them together.
"""

from trax.mutation.collaborators import Loader, LoadRequest, QueueLoader
from trax.mutation.connection import (
    CommitReport,
    Connection,
    ConnectionState,
    MessageOutcome,
)
from trax.mutation.engine import MutationEngine
from trax.mutation.messages import (
    MESSAGE_TYPES,
    CommitMessage,
    GetMessage,
    InsertMessage,
    InsertPropMessage,
    Message,
    RedirectMessage,
    parse_message,
    parse_messages,
)
from trax.mutation.operations import apply_insert, apply_insert_prop

__all__ = [
    "MutationEngine",
    "Connection",
    "ConnectionState",
    "CommitReport",
    "MessageOutcome",
    "Loader",
    "LoadRequest",
    "QueueLoader",
    "Message",
    "GetMessage",
    "RedirectMessage",
    "InsertMessage",
    "InsertPropMessage",
    "CommitMessage",
    "MESSAGE_TYPES",
    "parse_message",
    "parse_messages",
    "apply_insert",
    "apply_insert_prop",
]
