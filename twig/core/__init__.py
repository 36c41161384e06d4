"""
Core — Data layer for twig

Contains the foundational data structures:
- Events: Append-only event log (source of truth)
- Rewrite: Which commits were superseded, and by what
- Snapshot: Refs captured once per invocation
- Visibility: Per-commit verdicts (visible, or hidden and why)
- Graph: The bounded commit graph the smartlog draws
"""

from .events import (
    Event, EventType, EventLogStore,
    commit_created, commit_rewritten, ref_updated, commit_hidden, commit_unhidden,
    referenced_commits, displayable_commits,
)
from .rewrite import RewriteGraph
from .snapshot import RepositorySnapshot
from .visibility import (
    HiddenReason, Verdict, VISIBLE,
    VisibilityState, VisibilityRecords, VisibilityResolver,
)
from .graph import CommitGraph, CommitGraphNode, CommitGraphBuilder, SmartlogOptions, DEFAULT_HORIZON

__all__ = [
    # Events
    "Event", "EventType", "EventLogStore",
    "commit_created", "commit_rewritten", "ref_updated", "commit_hidden", "commit_unhidden",
    "referenced_commits", "displayable_commits",
    # Rewrite
    "RewriteGraph",
    # Snapshot
    "RepositorySnapshot",
    # Visibility
    "HiddenReason", "Verdict", "VISIBLE",
    "VisibilityState", "VisibilityRecords", "VisibilityResolver",
    # Graph
    "CommitGraph", "CommitGraphNode", "CommitGraphBuilder", "SmartlogOptions", "DEFAULT_HORIZON",
]
