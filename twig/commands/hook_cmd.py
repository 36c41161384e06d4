"""
HookCommand — Entry points git calls from the installed hooks

    twig hook-post-commit
    twig hook-post-rewrite <amend|rebase>          (stdin: old new [extra])
    twig hook-post-checkout <prev> <new> <flag>
    twig hook-reference-transaction <state>        (stdin: old new ref)
    twig hook-pre-auto-gc

Each one ingests a single batch and exits. Failures are reported as
warnings by the CLI and never change the exit status git sees.
"""

import sys
from typing import List, Optional

from ..commands.base import BaseCommand
from ..services.hooks import HookIngestor


COMMAND_NAMES = [
    'hook-post-commit',
    'hook-post-rewrite',
    'hook-post-checkout',
    'hook-reference-transaction',
    'hook-pre-auto-gc',
]


def _read_stdin() -> List[str]:
    return sys.stdin.read().splitlines()


class HookCommand(BaseCommand):

    @property
    def ingestor(self) -> HookIngestor:
        return HookIngestor(self.events, self.repo)

    def post_commit(self) -> int:
        self.ingestor.post_commit()
        return 0

    def post_rewrite(self, rewrite_type: str, lines: Optional[List[str]] = None) -> int:
        if lines is None:
            lines = _read_stdin()
        self.ingestor.post_rewrite(rewrite_type, lines)
        return 0

    def post_checkout(self, previous: str, current: str, flag: str) -> int:
        self.ingestor.post_checkout(previous, current, flag)
        return 0

    def reference_transaction(self, state: str, lines: Optional[List[str]] = None) -> int:
        if lines is None:
            lines = _read_stdin()
        self.ingestor.reference_transaction(state, lines)
        return 0

    def pre_auto_gc(self) -> int:
        self.ingestor.pre_auto_gc()
        return 0


def register_parser(subparsers):
    """Register the hook entry points (hidden from the command list)."""
    subparsers.add_parser('hook-post-commit')

    p = subparsers.add_parser('hook-post-rewrite')
    p.add_argument('rewrite_type', nargs='?', default='unknown')

    p = subparsers.add_parser('hook-post-checkout')
    p.add_argument('previous')
    p.add_argument('current')
    p.add_argument('flag', nargs='?', default='1')

    p = subparsers.add_parser('hook-reference-transaction')
    p.add_argument('state')

    subparsers.add_parser('hook-pre-auto-gc')


def handle(cli, args):
    """Handle hook command dispatch."""
    hooks = cli._hook_cmd
    if args.command == 'hook-post-commit':
        return hooks.post_commit()
    if args.command == 'hook-post-rewrite':
        return hooks.post_rewrite(args.rewrite_type)
    if args.command == 'hook-post-checkout':
        return hooks.post_checkout(args.previous, args.current, args.flag)
    if args.command == 'hook-reference-transaction':
        return hooks.reference_transaction(args.state)
    return hooks.pre_auto_gc()
