"""
HideCommand — Explicitly hide or unhide commits

Each invocation is one transaction: every revision is resolved before
anything is written, so a typo in the last argument hides nothing.
"""

from typing import List

from ..commands.base import BaseCommand
from ..core.events import Event, commit_hidden, commit_unhidden
from ..errors import RepositoryError
from ..presentation.symbols import safe_print, sanitize_control_chars


COMMAND_NAMES = ['hide', 'unhide']


class HideCommand(BaseCommand):

    def hide(self, revisions: List[str]) -> int:
        return self._record("hide", revisions, commit_hidden, "Hid commit")

    def unhide(self, revisions: List[str]) -> int:
        return self._record("unhide", revisions, commit_unhidden, "Unhid commit")

    def _record(self, message: str, revisions: List[str], make_event, verb: str) -> int:
        oids = self.resolve(revisions)
        events: List[Event] = [make_event(oid) for oid in oids]

        transaction_id = self.events.allocate_transaction_id(f"{message} {' '.join(revisions)}")
        self.events.append(events, transaction_id)

        for oid in oids:
            commit = self.repo.get_commit(oid)
            safe_print(f"{verb}: {commit.short_id} {sanitize_control_chars(commit.summary)}")
        return 0

    def resolve(self, revisions: List[str]) -> List[str]:
        """
        Resolve revisions to commit ids, dropping duplicates.

        Raises:
            RepositoryError: a revision doesn't name a commit
        """
        oids: List[str] = []
        for revision in revisions:
            oid = self.repo.resolve_ref(revision)
            if oid is None:
                raise RepositoryError(f"Unknown revision: {revision}")
            if oid not in oids:
                oids.append(oid)
        return oids


def register_parser(subparsers):
    """Register hide and unhide command parsers."""
    p1 = subparsers.add_parser('hide', help='Hide commits from the smartlog')
    p1.add_argument('revisions', nargs='+', metavar='COMMIT',
                    help='Commits to hide (any revision git understands)')

    p2 = subparsers.add_parser('unhide', help='Stop hiding commits')
    p2.add_argument('revisions', nargs='+', metavar='COMMIT',
                    help='Commits to unhide')

    return p1, p2


def handle(cli, args):
    """Handle hide or unhide command dispatch."""
    if args.command == 'hide':
        return cli._hide_cmd.hide(args.revisions)
    return cli._hide_cmd.unhide(args.revisions)
