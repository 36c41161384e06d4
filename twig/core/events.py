"""
Event Log — Append-only record of repository state changes

Events are immutable. Once written, never modified or deleted.
This is the source of truth. The rewrite graph, visibility records and
the smartlog are projections rebuilt on every invocation.

Storage is SQLite in the repository's private directory:
- Events are grouped into transactions, one per logical git operation
- A transaction becomes visible to readers in full or not at all
- Appends hold the write lock only while one transaction is written
"""

import logging
import sqlite3
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple, Callable, TypeVar

import orjson

from ..errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A host-supplied transaction key keeps pointing at its transaction this long
TRANSACTION_KEY_TTL = 60.0

DEFAULT_LOCK_TIMEOUT = 1.0
DEFAULT_LOCK_RETRIES = 5
INITIAL_BACKOFF = 0.05


class EventType(Enum):
    COMMIT = "commit"            # CommitCreated
    REWRITE = "rewrite"          # old commit superseded (or dropped)
    REF_UPDATE = "ref_update"    # a ref moved
    HIDE = "hide"
    UNHIDE = "unhide"


@dataclass
class Event:
    type: EventType
    data: Dict[str, Any]
    timestamp: float = field(default_factory=time.time)
    id: int = 0              # assigned by the store on append
    transaction_id: int = 0

    @property
    def commit_id(self) -> Optional[str]:
        return self.data.get("commit_id")

    @property
    def old_commit_id(self) -> Optional[str]:
        return self.data.get("old_commit_id")

    @property
    def new_commit_id(self) -> Optional[str]:
        return self.data.get("new_commit_id")

    @property
    def ref_name(self) -> Optional[str]:
        return self.data.get("ref_name")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Event':
        return cls(
            type=EventType(d["type"]),
            data=d.get("data", {}),
            timestamp=d.get("timestamp", 0.0),
            id=d.get("id", 0),
            transaction_id=d.get("transaction_id", 0),
        )


# =============================================================================
# Event constructors
# =============================================================================

def commit_created(commit_id: str, timestamp: Optional[float] = None) -> Event:
    """A new commit was made at HEAD."""
    return _make(EventType.COMMIT, {"commit_id": commit_id}, timestamp)


def commit_rewritten(
    old_commit_id: str,
    new_commit_id: Optional[str],
    timestamp: Optional[float] = None
) -> Event:
    """
    A commit was superseded by an amend or rebase.

    Args:
        old_commit_id: The commit that was rewritten
        new_commit_id: Its replacement, or None if the commit was dropped
    """
    data = {"old_commit_id": old_commit_id, "new_commit_id": new_commit_id}
    return _make(EventType.REWRITE, data, timestamp)


def ref_updated(
    ref_name: str,
    old_commit_id: Optional[str],
    new_commit_id: Optional[str],
    timestamp: Optional[float] = None
) -> Event:
    """A ref moved. None on either side means created or deleted."""
    data = {
        "ref_name": ref_name,
        "old_commit_id": old_commit_id,
        "new_commit_id": new_commit_id,
    }
    return _make(EventType.REF_UPDATE, data, timestamp)


def commit_hidden(commit_id: str, timestamp: Optional[float] = None) -> Event:
    return _make(EventType.HIDE, {"commit_id": commit_id}, timestamp)


def commit_unhidden(commit_id: str, timestamp: Optional[float] = None) -> Event:
    return _make(EventType.UNHIDE, {"commit_id": commit_id}, timestamp)


def _make(event_type: EventType, data: Dict[str, Any], timestamp: Optional[float]) -> Event:
    if timestamp is None:
        return Event(type=event_type, data=data)
    return Event(type=event_type, data=data, timestamp=timestamp)


def referenced_commits(event: Event) -> List[str]:
    """All commit ids an event mentions, in payload order."""
    if event.type in (EventType.COMMIT, EventType.HIDE, EventType.UNHIDE):
        oids = [event.commit_id]
    elif event.type in (EventType.REWRITE, EventType.REF_UPDATE):
        oids = [event.old_commit_id, event.new_commit_id]
    else:
        raise ValueError(f"Unhandled event type: {event.type}")
    return [oid for oid in oids if oid]


def displayable_commits(event: Event) -> List[str]:
    """Commits an event can bring back into view. Ref moves bring none."""
    if event.type == EventType.REF_UPDATE:
        return []
    return referenced_commits(event)


# =============================================================================
# Store
# =============================================================================

class EventLogStore:
    """
    SQLite-backed append-only event log.

    Invariants:
    - Event ids are strictly increasing and never reused
    - A transaction's events are committed together or not at all
    - Nothing is ever updated or deleted

    Durability over speed: WAL journal with FULL sync. A process killed
    mid-append leaves the log exactly as it was before that append.
    """

    def __init__(
        self,
        path: Path,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        lock_retries: int = DEFAULT_LOCK_RETRIES
    ):
        self.path = Path(path)
        self.lock_timeout = lock_timeout
        self.lock_retries = max(1, lock_retries)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode: transactions are opened explicitly with BEGIN IMMEDIATE
            self.conn = sqlite3.connect(str(self.path), timeout=lock_timeout, isolation_level=None)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Could not open event log {self.path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        self._locked(self._init_schema, "Initializing event log")

    def _init_schema(self):
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=FULL")
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp REAL NOT NULL,
                message TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS transaction_keys (
                key TEXT PRIMARY KEY,
                transaction_id INTEGER NOT NULL,
                timestamp REAL NOT NULL
            );

            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                transaction_id INTEGER NOT NULL,
                type TEXT NOT NULL,
                timestamp REAL NOT NULL,
                data BLOB NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_transaction ON events(transaction_id);
        """)

    # -------------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------------

    def _locked(self, operation: Callable[[], T], description: str) -> T:
        """Run operation, retrying with backoff while another process holds the lock."""
        delay = INITIAL_BACKOFF
        for attempt in range(1, self.lock_retries + 1):
            try:
                return operation()
            except sqlite3.OperationalError as e:
                if not _is_lock_error(e):
                    raise StorageError(f"{description} failed: {e}") from e
                if attempt == self.lock_retries:
                    raise StorageError(
                        f"{description} failed: event log is locked "
                        f"(gave up after {attempt} attempts)"
                    ) from e
                logger.debug("Event log locked, retrying in %.2fs (%d/%d)",
                             delay, attempt, self.lock_retries)
                time.sleep(delay)
                delay *= 2
            except sqlite3.Error as e:
                raise StorageError(f"{description} failed: {e}") from e
        raise StorageError(f"{description} failed")  # unreachable: lock_retries >= 1

    def _transaction(self, body: Callable[[], T]) -> Callable[[], T]:
        """Wrap body in BEGIN IMMEDIATE ... COMMIT, rolling back on any failure."""
        def run() -> T:
            self.conn.execute("BEGIN IMMEDIATE")
            try:
                result = body()
                self.conn.execute("COMMIT")
            except sqlite3.Error:
                self._rollback()
                raise
            except Exception as e:
                self._rollback()
                raise StorageError(f"Transaction aborted: {e}") from e
            return result
        return run

    def _rollback(self):
        if self.conn.in_transaction:
            self.conn.execute("ROLLBACK")

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def allocate_transaction_id(self, message: str, group_key: Optional[str] = None) -> int:
        """
        Allocate the transaction id new events will be appended under.

        Args:
            message: Human-readable description of the operation
            group_key: Host-supplied grouping key. All calls with the same key
                within TRANSACTION_KEY_TTL share one transaction (e.g. the
                several reference-transaction hooks fired by one git command).
        """
        now = time.time()

        def allocate() -> int:
            if group_key is not None:
                row = self.conn.execute(
                    "SELECT transaction_id, timestamp FROM transaction_keys WHERE key = ?",
                    (group_key,)
                ).fetchone()
                if row is not None and now - row["timestamp"] < TRANSACTION_KEY_TTL:
                    return row["transaction_id"]

            cursor = self.conn.execute(
                "INSERT INTO transactions (timestamp, message) VALUES (?, ?)",
                (now, message)
            )
            transaction_id = cursor.lastrowid
            if group_key is not None:
                self.conn.execute(
                    "INSERT OR REPLACE INTO transaction_keys (key, transaction_id, timestamp) "
                    "VALUES (?, ?, ?)",
                    (group_key, transaction_id, now)
                )
            return transaction_id

        return self._locked(self._transaction(allocate), "Allocating transaction")

    def append(self, events: List[Event], transaction_id: int) -> Tuple[int, int]:
        """
        Append events atomically under one transaction.

        Returns:
            (first_id, last_id) of the appended events. Events are updated in
            place with their ids.
        """
        if not events:
            raise ValueError("Cannot append an empty transaction")

        try:
            rows = [
                (transaction_id, e.type.value, e.timestamp, orjson.dumps(e.data))
                for e in events
            ]
        except orjson.JSONEncodeError as e:
            raise StorageError(f"Could not serialize event: {e}") from e

        def write() -> List[int]:
            return [self._insert_event(row) for row in rows]

        ids = self._locked(self._transaction(write), "Appending to event log")

        for event, event_id in zip(events, ids):
            event.id = event_id
            event.transaction_id = transaction_id

        logger.debug("Appended %d event(s) to transaction %d", len(ids), transaction_id)
        return ids[0], ids[-1]

    def _insert_event(self, row: Tuple[int, str, float, bytes]) -> int:
        cursor = self.conn.execute(
            "INSERT INTO events (transaction_id, type, timestamp, data) VALUES (?, ?, ?, ?)",
            row
        )
        return cursor.lastrowid

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def events_since(self, event_id: int = 0) -> List[Event]:
        """Events with id strictly greater than event_id, ascending."""
        rows = self._query(
            "SELECT * FROM events WHERE id > ? ORDER BY id",
            (event_id,)
        )
        return self._to_events(rows)

    def read_all(self) -> List[Event]:
        """Read all events in order."""
        return self.events_since(0)

    def read_transaction(self, transaction_id: int) -> List[Event]:
        rows = self._query(
            "SELECT * FROM events WHERE transaction_id = ? ORDER BY id",
            (transaction_id,)
        )
        return self._to_events(rows)

    def transaction_message(self, transaction_id: int) -> Optional[str]:
        rows = self._query(
            "SELECT message FROM transactions WHERE id = ?",
            (transaction_id,)
        )
        return rows[0]["message"] if rows else None

    def latest_event_id(self) -> int:
        """High-water mark; 0 for an empty log."""
        rows = self._query("SELECT MAX(id) AS latest FROM events", ())
        latest = rows[0]["latest"]
        return latest if latest is not None else 0

    def count(self) -> int:
        rows = self._query("SELECT COUNT(*) AS total FROM events", ())
        return rows[0]["total"]

    def _query(self, sql: str, params: Tuple) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Reading event log failed: {e}") from e

    def _to_events(self, rows: List[sqlite3.Row]) -> List[Event]:
        events = []
        for row in rows:
            try:
                events.append(Event(
                    type=EventType(row["type"]),
                    data=orjson.loads(row["data"]),
                    timestamp=row["timestamp"],
                    id=row["id"],
                    transaction_id=row["transaction_id"],
                ))
            except (ValueError, orjson.JSONDecodeError):
                logger.warning("Skipping malformed event %s in %s", row["id"], self.path)
        return events

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self):
        try:
            self.conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Closing event log failed: {e}") from e

    def __enter__(self) -> 'EventLogStore':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def _is_lock_error(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return "locked" in message or "busy" in message
