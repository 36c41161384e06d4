"""
SmartlogCommand — Show the commits you're working on

Pipeline, all against one snapshot of refs and of the event log:

    refs + events -> rewrite graph + visibility records
                  -> verdicts -> commit graph -> text
"""

from typing import List, Optional

from ..commands.base import BaseCommand
from ..core.events import Event
from ..core.graph import CommitGraph, CommitGraphBuilder, SmartlogOptions, DEFAULT_HORIZON
from ..core.rewrite import RewriteGraph
from ..core.snapshot import RepositorySnapshot
from ..core.visibility import VisibilityResolver, VisibilityRecords
from ..presentation.smartlog import SmartlogRenderer
from ..presentation.symbols import safe_print


COMMAND_NAMES = ['smartlog', 'sl']


def build_graph(
    repo,
    events: List[Event],
    main_branch: str,
    options: Optional[SmartlogOptions] = None,
    horizon: int = DEFAULT_HORIZON,
) -> CommitGraph:
    """
    Build the smartlog's commit graph.

    Args:
        repo: Repository adapter (GitRepository or anything with its interface)
        events: The whole event log, read once
        main_branch: Configured main branch name
        options: Include-hidden / branches-only flags
        horizon: Max draft commits walked per seed
    """
    snapshot = RepositorySnapshot.capture(repo, main_branch)
    rewrites = RewriteGraph.from_events(events)
    records = VisibilityRecords.from_events(events)
    resolver = VisibilityResolver(snapshot, records, rewrites, exists=repo.has_commit)
    builder = CommitGraphBuilder(repo, snapshot, resolver, rewrites, horizon=horizon)
    return builder.build(events, options)


class SmartlogCommand(BaseCommand):
    """Renders the smartlog for the current repository."""

    def smartlog(self, include_hidden: bool = False, branches_only: bool = False) -> int:
        options = SmartlogOptions(include_hidden=include_hidden, branches_only=branches_only)
        graph = build_graph(
            self.repo,
            self.events.read_all(),
            self.config.core.main_branch,
            options=options,
            horizon=self.config.smartlog.horizon,
        )
        text = SmartlogRenderer(self.symbols).render(graph)
        if text:
            safe_print(text, end="")
        return 0


def register_parser(subparsers):
    """Register smartlog command parser (and its short alias)."""
    for name in COMMAND_NAMES:
        p = subparsers.add_parser(
            name,
            help='Show the commits you are working on' if name == 'smartlog'
            else 'Alias for smartlog'
        )
        p.add_argument('--hidden', action='store_true',
                       help='Also show hidden commits, labelled with why they are hidden')
        p.add_argument('--only-branches', dest='only_branches', action='store_true',
                       help='Only show commits reachable from branches (not a detached HEAD)')


def handle(cli, args):
    """Handle smartlog command dispatch."""
    return cli._smartlog_cmd.smartlog(
        include_hidden=args.hidden,
        branches_only=args.only_branches,
    )
