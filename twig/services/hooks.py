"""
Hook Ingestor — Turn git hook invocations into event-log entries

Git runs a hook once per lifecycle point and waits for it. Each method here
parses that hook's arguments and stdin (in git's documented format), appends
the resulting events in one transaction, and returns. No state survives
between invocations apart from the event log itself.

Hooks fired by the same git process share a transaction group key, so a
rebase's post-rewrite and reference-transaction entries land together.

Failures surface as StorageError / RepositoryError; the hook commands turn
those into warnings so the user's git operation is never blocked.
"""

import logging
import os
from typing import Dict, List, Optional, Iterable, Tuple

from ..core.events import (
    Event, EventLogStore,
    commit_created, commit_rewritten, ref_updated, displayable_commits,
)
from .git import GitRepository, KEEP_REF_PREFIX

logger = logging.getLogger(__name__)


TRANSACTION_KEY_ENV = "TWIG_TRANSACTION_KEY"

# Pseudo-refs that change on nearly every operation and carry no history
IGNORED_REFS = frozenset({
    "ORIG_HEAD",
    "FETCH_HEAD",
    "CHERRY_PICK_HEAD",
    "REBASE_HEAD",
    "AUTO_MERGE",
})
IGNORED_REF_PREFIXES = ("refs/twig/",)


def transaction_group_key() -> str:
    """Key shared by every hook that one git process runs."""
    return os.environ.get(TRANSACTION_KEY_ENV) or f"git-{os.getppid()}"


def normalize_oid(oid: Optional[str]) -> Optional[str]:
    """None for a missing or all-zero id (git's "no commit")."""
    if not oid or set(oid) == {"0"}:
        return None
    return oid


class HookIngestor:
    """
    One method per hook.

    Usage:
        ingestor = HookIngestor(store, repo)
        ingestor.post_rewrite("amend", sys.stdin.read().splitlines())

    Each method returns the number of events written.
    """

    def __init__(self, store: EventLogStore, repo: GitRepository,
                 group_key: Optional[str] = None):
        self.store = store
        self.repo = repo
        self.group_key = group_key or transaction_group_key()

    def _record(self, message: str, events: List[Event]) -> int:
        if not events:
            logger.debug("%s: nothing to record", message)
            return 0
        transaction_id = self.store.allocate_transaction_id(message, self.group_key)
        self.store.append(events, transaction_id)
        logger.debug("%s: recorded %d event(s) in transaction %d",
                     message, len(events), transaction_id)
        return len(events)

    def post_commit(self) -> int:
        """A commit was just created at HEAD."""
        head = self.repo.head_oid()
        if head is None:
            logger.warning("post-commit: HEAD does not point at a commit")
            return 0
        return self._record("post-commit", [commit_created(head)])

    def post_rewrite(self, rewrite_type: str, lines: Iterable[str]) -> int:
        """
        Commits were rewritten by amend or rebase.

        Each stdin line is "<old> <new> [<extra>]". A missing or all-zero new
        id means the old commit was dropped.
        """
        events = []
        for old, new in self._parse_rewrites(lines):
            events.append(commit_rewritten(old, new))
        return self._record(f"post-rewrite ({rewrite_type})", events)

    @staticmethod
    def _parse_rewrites(lines: Iterable[str]) -> List[Tuple[str, Optional[str]]]:
        rewrites = []
        for line in lines:
            fields = line.split()
            if not fields:
                continue
            old = normalize_oid(fields[0])
            if old is None:
                logger.warning("post-rewrite: ignoring line without an old commit: %r", line)
                continue
            new = normalize_oid(fields[1]) if len(fields) > 1 else None
            rewrites.append((old, new))
        return rewrites

    def post_checkout(self, previous: str, current: str, is_branch_checkout: str = "1") -> int:
        """
        HEAD moved. Only a change of commit is recorded.

        is_branch_checkout is git's flag ("1" for a branch checkout, "0" for
        a file checkout); a file checkout never moves HEAD.
        """
        old = normalize_oid(previous)
        new = normalize_oid(current)
        if is_branch_checkout == "0" or old == new:
            return 0
        return self._record("post-checkout", [ref_updated("HEAD", old, new)])

    def reference_transaction(self, state: str, lines: Iterable[str]) -> int:
        """
        A batch of ref updates. Only the "committed" state is recorded.

        Each stdin line is "<old> <new> <ref>". Updates that change nothing
        and updates to ignored refs are dropped.
        """
        if state != "committed":
            return 0

        events = []
        for line in lines:
            fields = line.split(" ", 2)
            if len(fields) != 3:
                if line.strip():
                    logger.warning("reference-transaction: malformed line: %r", line)
                continue
            old, new, ref_name = normalize_oid(fields[0]), normalize_oid(fields[1]), fields[2].strip()
            if old == new or is_ignored_ref(ref_name):
                continue
            events.append(ref_updated(ref_name, old, new))
        return self._record("reference-transaction", events)

    def pre_auto_gc(self) -> int:
        """
        Keep alive through gc every commit the smartlog can still show.

        Commits created, rewritten, hidden or unhidden are pinned by refs
        under refs/twig/keep/; commits only seen in ref moves are not.
        Keep refs for commits no longer in that set are deleted in the same
        update-ref batch. Returns the number of commits pinned.
        """
        pinned: Dict[str, Optional[str]] = {}
        checked = set()
        for event in self.store.read_all():
            for oid in displayable_commits(event):
                if oid in checked:
                    continue
                checked.add(oid)
                if self.repo.has_commit(oid):
                    pinned[KEEP_REF_PREFIX + oid] = oid

        stale = [ref for ref in self.repo.refs_under(KEEP_REF_PREFIX) if ref not in pinned]
        updates = dict(pinned)
        updates.update((ref, None) for ref in stale)
        self.repo.update_refs(updates)
        logger.debug("pre-auto-gc: pinned %d commit(s), released %d", len(pinned), len(stale))
        return len(pinned)


def is_ignored_ref(ref_name: str) -> bool:
    return ref_name in IGNORED_REFS or ref_name.startswith(IGNORED_REF_PREFIXES)
