"""
ConfigCommand — View and change configuration

    twig config                          show effective settings
    twig config get core.main_branch     print one value
    twig config set KEY VALUE [--user]   change project (or user) config
"""

from ..commands.base import BaseCommand
from ..errors import ConfigError


class ConfigCommand(BaseCommand):
    """Configuration display and modification."""

    def show_config(self) -> int:
        print(self.config_manager.display())
        return 0

    def get_config(self, key: str) -> int:
        value = self.config_manager.get(key)
        if value is None:
            raise ConfigError(f"Unknown config key: {key}")
        print(value)
        return 0

    def set_config(self, key: str, value: str, scope: str = "project") -> int:
        """
        Raises:
            ConfigError: unknown key or invalid value
        """
        error = self.config_manager.set(key, value, scope)
        if error:
            raise ConfigError(error)
        print(f"Set {key} = {value} ({scope} config)")
        return 0


def register_parser(subparsers):
    """Register config command parser."""
    p = subparsers.add_parser('config', help='View or set configuration')
    config_sub = p.add_subparsers(dest='config_command')

    get_parser = config_sub.add_parser('get', help='Print one setting')
    get_parser.add_argument('key', help='Setting name (e.g., core.main_branch)')

    set_parser = config_sub.add_parser('set', help='Change a setting')
    set_parser.add_argument('key', help='Setting name (e.g., core.main_branch)')
    set_parser.add_argument('value', help='New value')
    set_parser.add_argument('--user', action='store_true',
                            help='Apply to user config instead of this repository')
    return p


def handle(cli, args):
    """Handle config command dispatch."""
    if args.config_command == 'set':
        scope = "user" if args.user else "project"
        return cli._config_cmd.set_config(args.key, args.value, scope)
    if args.config_command == 'get':
        return cli._config_cmd.get_config(args.key)
    return cli._config_cmd.show_config()
