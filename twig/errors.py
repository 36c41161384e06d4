"""
Errors — Failure taxonomy shared by every layer

StorageError:    event log I/O or lock failures
RepositoryError: git object/ref lookups that failed unexpectedly
ConfigError:     invalid configuration (e.g. a main branch that doesn't exist)
RenderError:     internal invariant violation while laying out the smartlog

Hooks report any TwigError as a warning and exit cleanly.
Read commands treat any TwigError as fatal.
"""


class TwigError(Exception):
    """Base class for all twig failures."""


class StorageError(TwigError):
    """Event log could not be read or written."""


class RepositoryError(TwigError):
    """Git could not answer a query about objects or refs."""


class ConfigError(TwigError):
    """Configuration is invalid for this repository."""


class RenderError(TwigError):
    """Commit graph violated an invariant during rendering."""
