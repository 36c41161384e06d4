"""
twig — A smartlog for git

Shows the commits you're working on and hides the ones you're not:
published history collapses, rewritten and hidden commits drop out.

Git hooks feed an append-only event log (commits, rewrites, ref moves,
explicit hide/unhide). Every query rebuilds its view from that log plus
the repository's refs.

Usage:
    twig init
    twig smartlog
    twig smartlog --hidden
    twig hide <commit>
    twig unhide <commit>
    twig events --since 42
    twig config set core.main_branch main
"""

__version__ = "0.1.0"

# Core layer (data)
from .core.events import Event, EventType, EventLogStore
from .core.rewrite import RewriteGraph
from .core.snapshot import RepositorySnapshot
from .core.visibility import HiddenReason, Verdict, VisibilityRecords, VisibilityResolver
from .core.graph import CommitGraph, CommitGraphNode, CommitGraphBuilder, SmartlogOptions

# Services layer
from .services.git import GitRepository, CommitInfo, Branch
from .services.hooks import HookIngestor

# Presentation layer
from .presentation.smartlog import SmartlogRenderer
from .presentation.symbols import get_symbols, SymbolSet, UNICODE, ASCII

# Config and errors (stay at root)
from .config import Config, ConfigManager, get_config
from .errors import TwigError, StorageError, RepositoryError, ConfigError, RenderError

__all__ = [
    # Core
    'Event', 'EventType', 'EventLogStore',
    'RewriteGraph', 'RepositorySnapshot',
    'HiddenReason', 'Verdict', 'VisibilityRecords', 'VisibilityResolver',
    'CommitGraph', 'CommitGraphNode', 'CommitGraphBuilder', 'SmartlogOptions',
    # Services
    'GitRepository', 'CommitInfo', 'Branch', 'HookIngestor',
    # Presentation
    'SmartlogRenderer', 'get_symbols', 'SymbolSet', 'UNICODE', 'ASCII',
    # Config
    'Config', 'ConfigManager', 'get_config',
    # Errors
    'TwigError', 'StorageError', 'RepositoryError', 'ConfigError', 'RenderError',
]
