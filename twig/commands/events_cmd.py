"""
EventsCommand — Show what the hooks recorded

Events are listed oldest first, grouped under their transaction. --since
takes the id of the last event already seen, so repeated calls act as an
incremental cursor over the log.
"""

from itertools import groupby
from typing import Optional

from ..commands.base import BaseCommand
from ..presentation.formatters import format_event, format_transaction_header
from ..presentation.symbols import safe_print


class EventsCommand(BaseCommand):

    def show(self, since: int = 0, limit: Optional[int] = None) -> int:
        events = self.events.events_since(since)
        if limit is not None and limit >= 0:
            events = events[-limit:] if limit else []

        if not events:
            print("No events recorded.")
            return 0

        for transaction_id, group in groupby(events, key=lambda e: e.transaction_id):
            group = list(group)
            message = self.events.transaction_message(transaction_id)
            safe_print(format_transaction_header(transaction_id, message, group[0].timestamp))
            for event in group:
                safe_print(f"  {format_event(event)}")
        return 0


def register_parser(subparsers):
    """Register events command parser."""
    p = subparsers.add_parser('events', help='Show the event log')
    p.add_argument('--since', type=int, default=0, metavar='ID',
                   help='Only events after this event id')
    p.add_argument('--limit', '-n', type=int, default=None, metavar='N',
                   help='Only the N most recent events')
    return p


def handle(cli, args):
    """Handle events command dispatch."""
    return cli._events_cmd.show(since=args.since, limit=args.limit)
