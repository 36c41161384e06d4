"""
CLI -- Command interface

Two kinds of invocation share this entry point:
- Read commands (smartlog, events, hide, unhide, config, init), run by a
  person. Any twig failure is fatal: message on stderr, exit status 1.
- Hook commands (hook-*), run by git. Failures become warnings and the
  exit status stays 0, so twig never blocks the user's git operation.

Each invocation opens the repository and event log once, runs one command,
and closes everything on the way out.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, List

from .core.events import EventLogStore
from .config import ConfigManager, Config
from .errors import TwigError, RepositoryError
from .presentation.symbols import SymbolSet, get_symbols
from .services.git import GitRepository
from .commands.smartlog_cmd import SmartlogCommand
from .commands.hide_cmd import HideCommand
from .commands.events_cmd import EventsCommand
from .commands.config_cmd import ConfigCommand
from .commands.init_cmd import InitCommand
from .commands.hook_cmd import HookCommand
from . import __version__

logger = logging.getLogger(__name__)


EVENT_LOG_FILE = "events.db"
LOG_FORMAT = "twig: %(message)s"


class TwigCLI:
    """Resources for one invocation: repository, configuration, event log."""

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir)
        self.repo = GitRepository(self.project_dir)
        if not self.repo.is_git_repo:
            raise RepositoryError(f"Not a git repository: {self.project_dir}")

        self.twig_dir = self.repo.twig_dir
        self.config_manager = ConfigManager(self.twig_dir)

        # Opened on first use; hooks that write nothing never touch the log
        self._config: Optional[Config] = None
        self._events: Optional[EventLogStore] = None

        # Initialize command handlers (modular architecture)
        self._smartlog_cmd = SmartlogCommand(self)
        self._hide_cmd = HideCommand(self)
        self._events_cmd = EventsCommand(self)
        self._config_cmd = ConfigCommand(self)
        self._init_cmd = InitCommand(self)
        self._hook_cmd = HookCommand(self)

    @property
    def config(self) -> Config:
        if self._config is None:
            self._config = self.config_manager.load()
        return self._config

    @property
    def symbols(self) -> SymbolSet:
        return get_symbols(self.config.display.symbols)

    @property
    def events(self) -> EventLogStore:
        """The event log, opened on first access."""
        if self._events is None:
            self._events = EventLogStore(
                self.twig_dir / EVENT_LOG_FILE,
                lock_timeout=self.config.events.lock_timeout,
                lock_retries=self.config.events.lock_retries,
            )
        return self._events

    def close(self):
        if self._events is not None:
            self._events.close()
            self._events = None


def configure_logging(verbose: int = 0):
    """
    Send log records to stderr.

    WARNING by default; -v gives INFO, -vv DEBUG. TWIG_LOG_LEVEL sets the
    level by name and wins over -v.
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG

    env_level = os.environ.get("TWIG_LOG_LEVEL", "").upper()
    if env_level:
        named = logging.getLevelName(env_level)
        if isinstance(named, int):
            level = named

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("twig").setLevel(level)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the twig CLI.

    Uses command registry pattern for modular command handling.
    Parser definitions and dispatch logic are in individual command modules.

    Returns:
        Process exit status
    """
    parser = argparse.ArgumentParser(
        prog="twig",
        description="twig -- A smartlog for git",
        epilog="Shows the commits you're working on, and hides the ones you're not."
    )

    parser.add_argument(
        '--project', '-p',
        default=os.environ.get("TWIG_PROJECT_PATH", "."),
        help='Repository directory (default: TWIG_PROJECT_PATH or current)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='count',
        default=0,
        help='Log more detail to stderr (repeat for debug output)'
    )

    parser.add_argument(
        '--version', '-V',
        action='version',
        version=f'twig {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Register all commands from command modules (self-registration pattern)
    from .commands import register_all, dispatch
    register_all(subparsers)

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    is_hook = args.command.startswith("hook-")
    try:
        return run_command(args, dispatch)
    except TwigError as e:
        if is_hook:
            logger.warning("%s failed: %s", args.command, e)
            return 0
        print(f"twig: error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        # git aborts the operation (gc included) if a hook exits non-zero
        if not is_hook:
            raise
        logger.warning("%s failed unexpectedly: %s", args.command, e)
        return 0


def run_command(args, dispatch) -> int:
    """Run one command against a fresh TwigCLI, closing it even on failure."""
    cli = TwigCLI(Path(args.project))
    try:
        return dispatch(args.command, cli, args) or 0
    finally:
        cli.close()


if __name__ == '__main__':
    sys.exit(main())
