"""
Shared test fixtures and utilities for the trax test suite.
"""

import pytest

from trax.mutation import MutationEngine, QueueLoader

APP_URL = "trax://app"

TODO_APP = """
<Frame>
    <class:Todo>
        <let:title String />
        <let:done Bool />
        <bind:done send="toggle" />
        <card clear:self="dismiss">
            <read:title />
        </card>
    </class:Todo>
    <Header title="Todos" />
    <Body />
</Frame>
"""


@pytest.fixture
def todo_markup() -> str:
    return TODO_APP


@pytest.fixture
def loader() -> QueueLoader:
    return QueueLoader()


@pytest.fixture
def engine(loader) -> MutationEngine:
    """Engine with the todo app resident at trax://app and connection `c1` bound to it."""
    engine = MutationEngine(loader=loader)
    engine.load_document(TODO_APP, APP_URL)
    engine.open_connection("c1", APP_URL)
    return engine

