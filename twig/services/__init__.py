"""
Services — External integration layer for twig

Contains integrations with external systems:
- Git: Repository adapter, hook installation
- Hooks: Parsing git hook payloads into events
"""

from .git import GitRepository, CommitInfo, Branch, short_id
from .hooks import HookIngestor, transaction_group_key

__all__ = [
    # Git
    "GitRepository", "CommitInfo", "Branch", "short_id",
    # Hooks
    "HookIngestor", "transaction_group_key",
]
