"""
Commands — Modular CLI command implementations with self-registration

Each command module:
1. Defines XxxCommand class (handler implementation)
2. Exports register_parser(subparsers) to configure its argparse
3. Exports handle(cli, args) to dispatch to handler methods, returning
   the process exit status (None means 0)

Add a command = add its module to COMMAND_MODULES.
"""

import importlib
from typing import Dict, Callable, Any

from .base import BaseCommand

# Command modules that participate in auto-registration
# Order determines help display order
COMMAND_MODULES = [
    # Viewing
    'smartlog_cmd',
    'hide_cmd',
    'events_cmd',
    # Setup
    'init_cmd',
    'config_cmd',
    # Invoked by git
    'hook_cmd',
]

# Handler registry: command_name -> handle function
_handlers: Dict[str, Callable] = {}


def register_all(subparsers) -> None:
    """
    Import each module in COMMAND_MODULES, register its parser and handler.

    Args:
        subparsers: argparse subparsers object from main parser
    """
    _handlers.clear()

    for module_name in COMMAND_MODULES:
        module = importlib.import_module(f'.{module_name}', __package__)

        if hasattr(module, 'register_parser'):
            module.register_parser(subparsers)

        if hasattr(module, 'handle'):
            # Derive from module name: 'init_cmd' -> 'init'
            cmd_name = getattr(module, 'COMMAND_NAME', module_name.replace('_cmd', ''))

            # Handle modules that register multiple commands
            for name in getattr(module, 'COMMAND_NAMES', [cmd_name]):
                _handlers[name] = module.handle


def dispatch(command: str, cli: Any, args: Any) -> Any:
    """
    Dispatch command to its registered handler.

    Args:
        command: Command name from args.command
        cli: TwigCLI instance
        args: Parsed argparse arguments

    Returns:
        Exit status from handler (None means 0)

    Raises:
        KeyError: If command not registered
    """
    if command not in _handlers:
        raise KeyError(f"Unknown command: {command}. Available: {list(_handlers.keys())}")

    return _handlers[command](cli, args)


def get_registered_commands() -> list:
    """Get list of registered command names."""
    return list(_handlers.keys())


__all__ = ['BaseCommand', 'register_all', 'dispatch', 'get_registered_commands']
