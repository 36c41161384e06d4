"""
Rewrite Graph — Which commits were superseded, and by what

Projection of REWRITE events: old commit -> new commit (or -> dropped).
Amending twice produces a chain A -> A' -> A''; resolving A follows the
chain to A''. Real history never contains cycles, but a malformed log
might, so resolution is cycle-safe.
"""

import logging
from typing import Optional, Dict, Iterable, Callable

from .events import Event, EventType

logger = logging.getLogger(__name__)


class RewriteGraph:
    """
    Mapping from superseded commit to its successor.

    A value of None means the commit was dropped without replacement.
    The last REWRITE event for a given old commit wins.
    """

    def __init__(self, edges: Optional[Dict[str, Optional[str]]] = None):
        self.edges: Dict[str, Optional[str]] = dict(edges or {})

    @classmethod
    def from_events(cls, events: Iterable[Event]) -> 'RewriteGraph':
        """Build from events in ascending id order."""
        edges: Dict[str, Optional[str]] = {}
        for event in sorted(events, key=lambda e: e.id):
            if event.type == EventType.REWRITE:
                edges[event.old_commit_id] = event.new_commit_id
            elif event.type in (EventType.COMMIT, EventType.REF_UPDATE,
                                EventType.HIDE, EventType.UNHIDE):
                continue
            else:
                raise ValueError(f"Unhandled event type: {event.type}")
        return cls(edges)

    def successor(self, oid: str) -> Optional[str]:
        """Direct successor, or None if not rewritten (or dropped)."""
        return self.edges.get(oid)

    def is_rewritten(self, oid: str) -> bool:
        return oid in self.edges

    def resolve_latest(self, oid: str) -> Optional[str]:
        """
        Follow the rewrite chain to its end.

        Returns:
            The last commit in the chain (oid itself if never rewritten),
            None if the chain ends in a dropped commit, or oid itself if
            the chain loops.
        """
        seen = {oid}
        current = oid
        while current in self.edges:
            nxt = self.edges[current]
            if nxt is None:
                return None
            if nxt in seen:
                logger.warning("Rewrite cycle detected at %s; treating %s as latest",
                               nxt[:8], oid[:8])
                return oid
            seen.add(nxt)
            current = nxt
        return current

    def is_obsolete(self, oid: str, exists: Optional[Callable[[str], bool]] = None) -> bool:
        """
        True if oid was superseded by a commit that still exists.

        A chain ending in a dropped commit, or in a commit the exists
        predicate rejects, leaves nothing to supersede oid with.
        """
        latest = self.resolve_latest(oid)
        if latest is None or latest == oid:
            return False
        return exists is None or exists(latest)

    def __len__(self) -> int:
        return len(self.edges)
