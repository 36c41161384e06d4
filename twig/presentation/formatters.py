"""
Formatters — Event-log entries as text

Used by `twig events` to show what the hooks recorded. Each event is one
line: id, type, then the commits and refs it mentions.
"""

from datetime import datetime
from typing import Optional

from ..core.events import Event, EventType
from ..services.git import short_id


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(timestamp: Optional[float]) -> str:
    """Local time, to the second; "unknown" for a missing timestamp."""
    if not timestamp:
        return "unknown"
    return datetime.fromtimestamp(timestamp).strftime(TIMESTAMP_FORMAT)


def format_event(event: Event) -> str:
    """
    One-line description of an event.

    Examples:
        #4 commit 62fc20d2
        #5 rewrite 62fc20d2 -> 2ebe0950
        #6 rewrite 96d1c37a -> (dropped)
        #7 ref_update refs/heads/master 62fc20d2 -> 96d1c37a
        #8 hide cb8137ad
    """
    prefix = f"#{event.id} {event.type.value}"

    if event.type in (EventType.COMMIT, EventType.HIDE, EventType.UNHIDE):
        return f"{prefix} {short_id(event.commit_id)}"
    if event.type == EventType.REWRITE:
        new = short_id(event.new_commit_id) or "(dropped)"
        return f"{prefix} {short_id(event.old_commit_id)} -> {new}"
    if event.type == EventType.REF_UPDATE:
        old = short_id(event.old_commit_id) or "(none)"
        new = short_id(event.new_commit_id) or "(deleted)"
        return f"{prefix} {event.ref_name} {old} -> {new}"
    raise ValueError(f"Unhandled event type: {event.type}")


def format_transaction_header(transaction_id: int, message: Optional[str], timestamp: Optional[float]) -> str:
    return f"Transaction {transaction_id} [{format_timestamp(timestamp)}] {message or ''}".rstrip()
