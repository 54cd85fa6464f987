import os
import sys

import pytest
from pydantic import ValidationError

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.services.exceptions import SessionNotFoundError
from app.services.session_store import InvoiceSessionStore


def test_sessions_are_isolated_per_connection() -> None:
    store = InvoiceSessionStore()
    first = store.create(1)
    second = store.create(1)

    store.get(first).ensure_draft().customer_id = 7

    assert first != second
    assert store.get(second).current_invoice is None
    assert store.get(first).workspace_id == 1
    assert len(store) == 2


def test_workspace_is_fixed_for_the_session() -> None:
    store = InvoiceSessionStore()
    session = store.get(store.create(1))

    with pytest.raises(ValidationError):
        session.workspace_id = 2


def test_discard_forgets_session() -> None:
    store = InvoiceSessionStore()
    session_id = store.create(1)

    assert store.discard(session_id) is True
    assert store.discard(session_id) is False
    with pytest.raises(SessionNotFoundError):
        store.get(session_id)


def test_history_is_bounded_and_resettable() -> None:
    store = InvoiceSessionStore(max_turns=2)
    session_id = store.create(1)

    for index in range(3):
        store.append_turn(session_id, f" question {index} ", f"answer {index}")

    history = store.get_history(session_id)
    assert [turn.user for turn in history] == ["question 1", "question 2"]

    store.reset_history(session_id)
    assert store.get_history(session_id) == []


def test_history_of_unknown_session_raises() -> None:
    store = InvoiceSessionStore()

    with pytest.raises(SessionNotFoundError):
        store.append_turn("missing", "hi", "hello")
