"""
Visibility — Decide which commits the smartlog shows by default

Each candidate commit gets a Verdict: visible, or hidden with a reason.
Rules are evaluated in a fixed order; the first that applies wins:

    1. Public, not HEAD, not under another branch -> hidden (public)
    2. Latest hide/unhide record is a hide         -> hidden (manually hidden)
    3. Superseded by a live, visible successor     -> hidden (rewritten)
    4. Not reachable from HEAD or any branch       -> hidden (unreachable)
    5. Otherwise                                   -> visible

"Another branch" is any branch but the main branch and its upstream. A
public commit that some feature branch still builds on is judged like a
draft from rule 2 on.

Public status overrides an explicit unhide: published history stays out of
the way even if someone unhid it. An explicit hide wins over everything
else, including HEAD.

Showing hidden commits never changes a verdict; it only changes which
commits are seeded into the graph.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Set, Iterable, Callable, List

from .events import Event, EventType
from .rewrite import RewriteGraph
from .snapshot import RepositorySnapshot

logger = logging.getLogger(__name__)


class HiddenReason(Enum):
    MANUALLY_HIDDEN = "manually hidden"
    REWRITTEN = "rewritten"
    UNREACHABLE = "unreachable"
    PUBLIC = "public"


@dataclass(frozen=True)
class Verdict:
    """Visible when reason is None. successor is set only for REWRITTEN."""
    reason: Optional[HiddenReason] = None
    successor: Optional[str] = None

    @property
    def is_visible(self) -> bool:
        return self.reason is None

    @property
    def is_hidden(self) -> bool:
        return self.reason is not None


VISIBLE = Verdict()


class VisibilityState(Enum):
    HIDDEN = "hidden"
    UNHIDDEN = "unhidden"


class VisibilityRecords:
    """Latest explicit hide/unhide per commit (last event by id wins)."""

    def __init__(self, states: Optional[Dict[str, VisibilityState]] = None):
        self.states: Dict[str, VisibilityState] = dict(states or {})

    @classmethod
    def from_events(cls, events: Iterable[Event]) -> 'VisibilityRecords':
        states: Dict[str, VisibilityState] = {}
        for event in sorted(events, key=lambda e: e.id):
            if event.type == EventType.HIDE:
                states[event.commit_id] = VisibilityState.HIDDEN
            elif event.type == EventType.UNHIDE:
                states[event.commit_id] = VisibilityState.UNHIDDEN
            elif event.type in (EventType.COMMIT, EventType.REWRITE, EventType.REF_UPDATE):
                continue
            else:
                raise ValueError(f"Unhandled event type: {event.type}")
        return cls(states)

    def state(self, oid: str) -> Optional[VisibilityState]:
        return self.states.get(oid)

    def has_record(self, oid: str) -> bool:
        return oid in self.states

    def is_manually_hidden(self, oid: str) -> bool:
        return self.states.get(oid) == VisibilityState.HIDDEN

    def commits(self) -> List[str]:
        return list(self.states)


class VisibilityResolver:
    """
    Computes verdicts against one repository snapshot.

    Verdicts are cached per commit; a resolver is meant to live for a
    single invocation, the same as its snapshot.
    """

    def __init__(
        self,
        snapshot: RepositorySnapshot,
        records: VisibilityRecords,
        rewrites: RewriteGraph,
        exists: Optional[Callable[[str], bool]] = None,
    ):
        self.snapshot = snapshot
        self.records = records
        self.rewrites = rewrites
        self.exists = exists
        self._verdicts: Dict[str, Verdict] = {}
        self._public: Dict[str, bool] = {}
        self._pending: Set[str] = set()

    def is_public(self, oid: str) -> bool:
        """Ancestor of (or equal to) any main-branch tip."""
        if oid not in self._public:
            self._public[oid] = any(
                self.snapshot.is_ancestor(oid, tip) for tip in self.snapshot.main_tips
            )
        return self._public[oid]

    def is_reachable(self, oid: str) -> bool:
        """HEAD, a branch tip, or an ancestor of either."""
        if self._is_pinned(oid):
            return True
        tips = list(self.snapshot.branch_tips)
        if self.snapshot.head_oid:
            tips.append(self.snapshot.head_oid)
        return any(self.snapshot.is_ancestor(oid, tip) for tip in tips)

    def verdict(self, oid: str) -> Verdict:
        cached = self._verdicts.get(oid)
        if cached is not None:
            return cached

        self._pending.add(oid)
        try:
            result = self._evaluate(oid)
        finally:
            self._pending.discard(oid)
        self._verdicts[oid] = result
        return result

    def is_visible(self, oid: str) -> bool:
        return self.verdict(oid).is_visible

    def _evaluate(self, oid: str) -> Verdict:
        if self.is_public(oid) and not self._is_shared(oid):
            return Verdict(HiddenReason.PUBLIC)

        if self.records.is_manually_hidden(oid):
            return Verdict(HiddenReason.MANUALLY_HIDDEN)

        if self.rewrites.is_obsolete(oid, self.exists):
            latest = self.rewrites.resolve_latest(oid)
            if latest is not None and self._successor_visible(latest):
                return Verdict(HiddenReason.REWRITTEN, successor=latest)

        if not self.is_reachable(oid):
            return Verdict(HiddenReason.UNREACHABLE)

        return VISIBLE

    def _successor_visible(self, oid: str) -> bool:
        if oid in self._pending:
            logger.debug("Visibility of %s depends on itself; treating as hidden", oid[:8])
            return False
        return self.verdict(oid).is_visible

    def _is_shared(self, oid: str) -> bool:
        """HEAD, or an ancestor of a branch other than the main branch."""
        if oid == self.snapshot.head_oid:
            return True
        return any(self.snapshot.is_ancestor(oid, tip) for tip in self.snapshot.other_branch_tips)

    def _is_pinned(self, oid: str) -> bool:
        """HEAD or the target of some branch."""
        return oid == self.snapshot.head_oid or oid in self.snapshot.branch_tips
