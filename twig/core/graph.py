"""
Commit Graph — The bounded slice of history the smartlog draws

An arena keyed by commit id: nodes refer to each other by id, never by
object reference, so merge convergence and rewrite chains stay plain
lookups.

Two kinds of node:
- main nodes: public commits (on the main branch) where a draft lineage
  meets published history, the main tips themselves, and public commits
  carrying a rewrite or hide marker. They are never linked to each other;
  runs of unmarked public commits between them are elided.
- draft nodes: private work, linked to every parent present in the graph.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Set, Iterable, TYPE_CHECKING

from .events import Event, displayable_commits
from .rewrite import RewriteGraph
from .snapshot import RepositorySnapshot
from .visibility import VisibilityResolver, VisibilityRecords, Verdict, HiddenReason, VISIBLE

if TYPE_CHECKING:
    from ..services.git import GitRepository, CommitInfo, Branch

logger = logging.getLogger(__name__)


DEFAULT_HORIZON = 1000


@dataclass
class SmartlogOptions:
    include_hidden: bool = False
    branches_only: bool = False


@dataclass
class CommitGraphNode:
    commit: 'CommitInfo'
    is_main: bool = False
    is_head: bool = False
    branches: List['Branch'] = field(default_factory=list)
    children: Set[str] = field(default_factory=set)
    verdict: Verdict = VISIBLE
    rewritten_as: Optional[str] = None   # live latest rewrite, if different
    has_record: bool = False             # carries an explicit hide/unhide

    @property
    def oid(self) -> str:
        return self.commit.oid

    @property
    def parents(self) -> List[str]:
        return self.commit.parents


@dataclass
class CommitGraph:
    nodes: Dict[str, CommitGraphNode]
    root_oids: List[str]
    head_oid: Optional[str] = None
    head_branch: Optional[str] = None
    options: SmartlogOptions = field(default_factory=SmartlogOptions)

    def children_of(self, oid: str) -> List[str]:
        """Children in render order: commit time, then commit id."""
        node = self.nodes[oid]
        return sorted(
            node.children,
            key=lambda child: (self.nodes[child].commit.timestamp, child),
        )

    def parents_in_graph(self, oid: str) -> List[str]:
        return [parent for parent in self.nodes[oid].parents if parent in self.nodes]

    def __contains__(self, oid: str) -> bool:
        return oid in self.nodes

    def __getitem__(self, oid: str) -> CommitGraphNode:
        return self.nodes[oid]

    def __len__(self) -> int:
        return len(self.nodes)


class CommitGraphBuilder:
    """
    Seeds the graph and walks draft history back to the main branch.

    Usage:
        builder = CommitGraphBuilder(repo, snapshot, resolver, rewrites)
        graph = builder.build(events, SmartlogOptions(include_hidden=True))
    """

    def __init__(
        self,
        repo: 'GitRepository',
        snapshot: RepositorySnapshot,
        resolver: VisibilityResolver,
        rewrites: RewriteGraph,
        horizon: int = DEFAULT_HORIZON,
    ):
        self.repo = repo
        self.snapshot = snapshot
        self.resolver = resolver
        self.rewrites = rewrites
        self.horizon = horizon

    @property
    def records(self) -> VisibilityRecords:
        return self.resolver.records

    def build(self, events: List[Event], options: Optional[SmartlogOptions] = None) -> CommitGraph:
        options = options or SmartlogOptions()
        nodes: Dict[str, CommitGraphNode] = {}

        for seed in self.seeds(events, options):
            self._walk(seed, nodes)
        self._add_marked_public(nodes)

        self._link(nodes)
        roots = self._order_roots(nodes)
        logger.debug("Commit graph: %d nodes, %d roots", len(nodes), len(roots))

        return CommitGraph(
            nodes=nodes,
            root_oids=roots,
            head_oid=self.snapshot.head_oid,
            head_branch=self.snapshot.head_branch,
            options=options,
        )

    def seeds(self, events: List[Event], options: SmartlogOptions) -> List[str]:
        """Commits the walk starts from, in a stable order without duplicates."""
        candidates: List[str] = []
        if not options.branches_only and self.snapshot.head_oid:
            candidates.append(self.snapshot.head_oid)
        candidates.extend(branch.target for branch in self.snapshot.branches)
        candidates.extend(self.snapshot.main_tips)
        seeds = _unique(candidates)

        if options.include_hidden and not options.branches_only:
            known = set(seeds)
            referenced = _unique(oid for event in events for oid in displayable_commits(event))
            seeds.extend(oid for oid in referenced
                         if oid not in known and self.repo.has_commit(oid))
        return seeds

    def _walk(self, seed: str, nodes: Dict[str, CommitGraphNode]):
        if seed in nodes:
            return
        if self.resolver.is_public(seed):
            self._add(seed, nodes, is_main=True)
            return

        queue = deque([seed])
        walked = 0
        while queue:
            oid = queue.popleft()
            if oid in nodes:
                continue
            if self.resolver.is_public(oid):
                # Merge point with the main branch; the lineage stops here
                self._add(oid, nodes, is_main=True)
                continue
            node = self._add(oid, nodes, is_main=False)
            walked += 1
            if walked >= self.horizon:
                logger.debug("Horizon of %d commits reached walking from %s",
                             self.horizon, seed[:8])
                break
            queue.extend(node.parents)

    def _add_marked_public(self, nodes: Dict[str, CommitGraphNode]):
        """
        Public commits with a marker of their own become main nodes.

        A public commit rewritten into a live successor, or explicitly hidden
        while a branch still builds on it, is drawn between the main nodes
        instead of disappearing into an elision row.
        """
        candidates = _unique(list(self.rewrites.edges) + self.records.commits())
        for oid in candidates:
            if oid in nodes or not self.repo.has_commit(oid) or not self.resolver.is_public(oid):
                continue
            if self._rewritten_as(oid) is None \
                    and self.resolver.verdict(oid).reason != HiddenReason.MANUALLY_HIDDEN:
                continue
            self._add(oid, nodes, is_main=True)

    def _rewritten_as(self, oid: str) -> Optional[str]:
        """Latest rewrite of oid, if it differs and still exists."""
        latest = self.rewrites.resolve_latest(oid)
        if latest is not None and latest != oid and self.repo.has_commit(latest):
            return latest
        return None

    def _add(self, oid: str, nodes: Dict[str, CommitGraphNode], is_main: bool) -> CommitGraphNode:
        node = CommitGraphNode(
            commit=self.repo.get_commit(oid),
            is_main=is_main,
            is_head=oid == self.snapshot.head_oid,
            branches=self.snapshot.branches_at(oid),
            verdict=self.resolver.verdict(oid),
            rewritten_as=self._rewritten_as(oid),
            has_record=self.records.has_record(oid),
        )
        nodes[oid] = node
        return node

    def _link(self, nodes: Dict[str, CommitGraphNode]):
        for oid, node in nodes.items():
            if node.is_main:
                continue
            for parent in node.parents:
                if parent in nodes:
                    nodes[parent].children.add(oid)

    def _order_roots(self, nodes: Dict[str, CommitGraphNode]) -> List[str]:
        """
        Main nodes and parentless drafts, ancestors first.

        Roots that aren't ancestors of one another keep commit-time order,
        ties broken by commit id.
        """
        pending = sorted(
            (oid for oid, node in nodes.items()
             if node.is_main or not any(parent in nodes for parent in node.parents)),
            key=lambda oid: (nodes[oid].commit.timestamp, oid),
        )

        ordered: List[str] = []
        while pending:
            chosen = pending[0]
            for candidate in pending:
                if not any(other != candidate and self.snapshot.is_ancestor(other, candidate)
                           for other in pending):
                    chosen = candidate
                    break
            ordered.append(chosen)
            pending.remove(chosen)
        return ordered


def _unique(oids: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    result = []
    for oid in oids:
        if oid not in seen:
            seen.add(oid)
            result.append(oid)
    return result
