"""Session store: sessions keyed by id, one lock per session.

Submissions against the same session are serialized by that session's lock
so that validate, store, skip-evaluate and advance run as one atomic step.
Different sessions never contend.
"""

from __future__ import annotations

import copy
import threading

import orjson
from pydantic import ValidationError

from taxlogic.core.config import settings
from taxlogic.core.logging import get_logger
from taxlogic.integrations.storage import delete, list_files, read_bytes, write_bytes
from taxlogic.interview.session import InterviewSession, SessionSnapshot
from taxlogic.interview.state_machine import InterviewStateMachine, SessionCorrupt, SubmitOutcome

logger = get_logger(__name__)


class SessionNotFound(KeyError):
    """Raised when no session exists for an identifier."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(session_id)

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


def _snapshot_filename(session_id: str) -> str:
    return f"{session_id}.json"


class SessionStore:
    """In-memory arena of interview sessions with snapshot persistence.

    Args:
        machine: State machine used for every transition.
        storage_url: fsspec URL where snapshots are persisted. Defaults to
            ``settings.session_storage_url``.
    """

    def __init__(
        self,
        machine: InterviewStateMachine | None = None,
        storage_url: str | None = None,
    ) -> None:
        self.machine = machine or InterviewStateMachine()
        self.storage_url = storage_url or settings.session_storage_url
        self._sessions: dict[str, InterviewSession] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._registry_lock:
            if session_id not in self._sessions:
                raise SessionNotFound(session_id)
            return self._locks[session_id]

    def _put(self, session: InterviewSession) -> InterviewSession:
        with self._registry_lock:
            self._sessions[session.session_id] = session
            self._locks.setdefault(session.session_id, threading.Lock())
        return session

    def create(self, tax_year: int, session_id: str | None = None) -> InterviewSession:
        """Start a new session and register it."""
        return self._put(self.machine.start(tax_year, session_id=session_id))

    def get(self, session_id: str) -> InterviewSession:
        """Return a registered session.

        Raises:
            SessionNotFound: If no session is registered under the id.
        """
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None

    def submit(self, session_id: str, raw: str | None) -> SubmitOutcome:
        """Submit one raw answer atomically under the session's lock."""
        with self._lock_for(session_id):
            return self.machine.submit(self.get(session_id), raw)

    def detached(self, session_id: str) -> InterviewSession:
        """Deep copy of a session taken under its lock.

        Readers working outside the lock (the calculation runs in a worker
        thread) see one consistent state instead of a half-applied answer.
        """
        with self._lock_for(session_id):
            return copy.deepcopy(self.get(session_id))

    def snapshot(self, session_id: str) -> SessionSnapshot:
        with self._lock_for(session_id):
            return self.machine.snapshot(self.get(session_id))

    def restore(self, snapshot: SessionSnapshot) -> InterviewSession:
        """Replay a snapshot and register the restored session.

        An existing session with the same id is replaced. A corrupt
        snapshot raises ``SessionCorrupt`` and leaves the store unchanged.
        """
        return self._put(self.machine.restore(snapshot))

    def persist(self, session_id: str) -> str:
        """Write the session snapshot as JSON to storage.

        Returns:
            Full storage path of the snapshot.
        """
        snapshot = self.snapshot(session_id)
        payload = orjson.dumps(snapshot.model_dump(mode="json"))
        path = write_bytes(self.storage_url, _snapshot_filename(session_id), payload)
        logger.info("session_persisted", session_id=session_id, path=path)
        return path

    def read_snapshot(self, session_id: str) -> SessionSnapshot:
        """Read and decode a persisted snapshot without registering it.

        Raises:
            SessionNotFound: If no snapshot exists for the id.
            SessionCorrupt: If the stored bytes are not a valid snapshot.
        """
        try:
            payload = read_bytes(self.storage_url, _snapshot_filename(session_id))
        except FileNotFoundError:
            raise SessionNotFound(session_id) from None
        try:
            snapshot = SessionSnapshot.model_validate(orjson.loads(payload))
        except orjson.JSONDecodeError as exc:
            raise SessionCorrupt(session_id, None, f"snapshot is not valid JSON: {exc}") from exc
        except ValidationError as exc:
            raise SessionCorrupt(
                session_id, None, f"snapshot does not match the schema: {exc.error_count()} errors"
            ) from exc
        if snapshot.session_id != session_id:
            raise SessionCorrupt(
                session_id, None, f"snapshot belongs to session {snapshot.session_id!r}"
            )
        return snapshot

    def load(self, session_id: str) -> InterviewSession:
        """Restore a session from its persisted snapshot.

        Raises:
            SessionNotFound: If no snapshot exists for the id.
            SessionCorrupt: If the snapshot cannot be decoded or replayed.
        """
        return self.restore(self.read_snapshot(session_id))

    def persisted_ids(self) -> list[str]:
        """Identifiers of every persisted snapshot."""
        return [
            entry["name"].removesuffix(".json")
            for entry in list_files(self.storage_url)
            if entry["name"].endswith(".json")
        ]

    def discard(self, session_id: str, purge: bool = False) -> None:
        """Drop a session from the arena, optionally deleting its snapshot."""
        with self._registry_lock:
            self._sessions.pop(session_id, None)
            self._locks.pop(session_id, None)
        if purge:
            delete(self.storage_url, _snapshot_filename(session_id))
        logger.info("session_discarded", session_id=session_id, purged=purge)
