"""
InitCommand — Set up twig in a repository

Installs the hooks that feed the event log and the git aliases
(`git sl`, `git smartlog`, `git hide`, `git unhide`). Running it again
refreshes twig's part of each hook without touching anything else in it.
"""

from ..commands.base import BaseCommand
from ..errors import RepositoryError
from ..services.git import ALIASES


class InitCommand(BaseCommand):

    def init(self) -> int:
        success, message = self.repo.install_hooks()
        if not success:
            raise RepositoryError(message)
        print(message)

        aliases = self.repo.install_aliases()
        print(f"Installed aliases: {', '.join('git ' + alias for alias in aliases)}")

        # Create the event log now so the first hook doesn't have to
        self.events.count()
        print(f"Event log: {self.twig_dir}")
        print(f"Main branch: {self.config.core.main_branch}")
        return 0

    def uninstall(self) -> int:
        success, message = self.repo.uninstall_hooks()
        if not success:
            raise RepositoryError(message)
        print(message)

        self.repo.uninstall_aliases()
        print(f"Removed aliases: {', '.join('git ' + alias for alias in ALIASES)}")
        return 0

    def status(self) -> int:
        print(f"Hooks: {self.repo.hooks_status()}")
        return 0


def register_parser(subparsers):
    """Register init command parser."""
    p = subparsers.add_parser('init', help='Install twig hooks and git aliases')
    group = p.add_mutually_exclusive_group()
    group.add_argument('--uninstall', action='store_true',
                       help='Remove twig hooks and aliases (the event log is kept)')
    group.add_argument('--status', action='store_true',
                       help='Show whether the hooks are installed')
    return p


def handle(cli, args):
    """Handle init command dispatch."""
    if args.uninstall:
        return cli._init_cmd.uninstall()
    if args.status:
        return cli._init_cmd.status()
    return cli._init_cmd.init()
