"""
BaseCommand — Shared foundation for all CLI commands

Provides access to CLI resources via composition.
Commands receive the CLI instance and access its resources through properties.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..cli import TwigCLI


class BaseCommand:
    """
    Base class for CLI commands with access to shared resources.

    Commands don't open resources themselves; they go through the CLI
    instance, which opens each one at most once per invocation.
    """

    def __init__(self, cli: 'TwigCLI'):
        """
        Initialize command with CLI instance.

        Args:
            cli: The TwigCLI instance holding all resources
        """
        self._cli = cli

    @property
    def repo(self):
        """Git repository adapter."""
        return self._cli.repo

    @property
    def twig_dir(self):
        """Repository-private twig directory."""
        return self._cli.twig_dir

    @property
    def events(self):
        """Event log store (opened lazily)."""
        return self._cli.events

    @property
    def config(self):
        """Application configuration."""
        return self._cli.config

    @property
    def config_manager(self):
        return self._cli.config_manager

    @property
    def symbols(self):
        """Glyph set for display (ASCII/Unicode)."""
        return self._cli.symbols
