"""In-memory registry of live voice sessions."""

from __future__ import annotations

import uuid
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Deque, Dict, List

from app.schemas.session import InvoiceSessionData
from app.services.exceptions import SessionNotFoundError


@dataclass
class ConversationTurn:
    """Represents one complete exchange between the user and the assistant."""

    user: str
    assistant: str


@dataclass
class _SessionEntry:
    data: InvoiceSessionData
    history: Deque[ConversationTurn] = field(default_factory=deque)


class InvoiceSessionStore:
    """Thread-safe store of per-connection invoice sessions.

    A session lives from the moment a voice connection opens until it is
    discarded. Discarding only forgets the in-memory draft; nothing is
    persisted before an invoice is committed.
    """

    def __init__(self, max_turns: int = 15) -> None:
        self._max_turns = max_turns
        self._sessions: Dict[str, _SessionEntry] = {}
        self._lock = Lock()

    def create(self, workspace_id: int) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            self._sessions[session_id] = _SessionEntry(
                data=InvoiceSessionData(workspace_id=workspace_id),
                history=deque(maxlen=self._max_turns),
            )
        return session_id

    def get(self, session_id: str) -> InvoiceSessionData:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise SessionNotFoundError(session_id)
            return entry.data

    def discard(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def get_history(self, session_id: str) -> List[ConversationTurn]:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise SessionNotFoundError(session_id)
            return list(entry.history)

    def append_turn(self, session_id: str, user_message: str, assistant_message: str) -> None:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise SessionNotFoundError(session_id)
            entry.history.append(
                ConversationTurn(user=user_message.strip(), assistant=assistant_message.strip())
            )

    def reset_history(self, session_id: str) -> None:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise SessionNotFoundError(session_id)
            entry.history.clear()

    def clear(self) -> None:
        """Remove every session. Intended for tests only."""

        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


invoice_sessions = InvoiceSessionStore()
"""Module-level store used by the HTTP and MCP transports."""
