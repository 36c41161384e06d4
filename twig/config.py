"""
Configuration — Centralized settings management

Config hierarchy (highest to lowest priority):
  1. Environment variables (TWIG_MAIN_BRANCH, TWIG_SYMBOLS)
  2. Project config (<git-common-dir>/twig/config.yaml)
  3. User config (~/.twig/config.yaml)
  4. Defaults

The project config lives in the repository's private directory, so it is
shared by every worktree and never committed.
"""

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from .errors import ConfigError
from .core.events import DEFAULT_LOCK_TIMEOUT, DEFAULT_LOCK_RETRIES
from .core.graph import DEFAULT_HORIZON
from .presentation.symbols import SYMBOL_SETS


DEFAULT_MAIN_BRANCH = "master"


@dataclass
class CoreConfig:
    """Repository-wide settings."""
    main_branch: str = DEFAULT_MAIN_BRANCH  # "master" or "origin/master"

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if not self.main_branch or any(c.isspace() for c in self.main_branch):
            return f"Invalid main branch name '{self.main_branch}'"
        return None


@dataclass
class SmartlogConfig:
    """How much history the smartlog walks."""
    horizon: int = DEFAULT_HORIZON  # max draft commits walked per seed

    def validate(self) -> Optional[str]:
        if self.horizon < 1:
            return f"smartlog.horizon must be at least 1, got {self.horizon}"
        return None


@dataclass
class DisplayConfig:
    """Display preferences."""
    symbols: str = "ascii"  # "ascii" | "unicode" | "auto"

    def validate(self) -> Optional[str]:
        if self.symbols not in SYMBOL_SETS:
            return f"Unknown symbols setting '{self.symbols}'. Valid: {', '.join(SYMBOL_SETS)}"
        return None


@dataclass
class EventsConfig:
    """Event log locking."""
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT  # seconds per attempt
    lock_retries: int = DEFAULT_LOCK_RETRIES

    def validate(self) -> Optional[str]:
        if self.lock_timeout <= 0:
            return f"events.lock_timeout must be positive, got {self.lock_timeout}"
        if self.lock_retries < 1:
            return f"events.lock_retries must be at least 1, got {self.lock_retries}"
        return None


@dataclass
class Config:
    """Application configuration."""
    core: CoreConfig = field(default_factory=CoreConfig)
    smartlog: SmartlogConfig = field(default_factory=SmartlogConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    events: EventsConfig = field(default_factory=EventsConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "core": {
                "main_branch": self.core.main_branch,
            },
            "smartlog": {
                "horizon": self.smartlog.horizon,
            },
            "display": {
                "symbols": self.display.symbols,
            },
            "events": {
                "lock_timeout": self.events.lock_timeout,
                "lock_retries": self.events.lock_retries,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """
        Create from dictionary.

        Raises:
            ConfigError: a value has the wrong type
        """
        core_data = data.get("core") or {}
        smartlog_data = data.get("smartlog") or {}
        display_data = data.get("display") or {}
        events_data = data.get("events") or {}

        try:
            return cls(
                core=CoreConfig(
                    main_branch=str(core_data.get("main_branch", DEFAULT_MAIN_BRANCH)),
                ),
                smartlog=SmartlogConfig(
                    horizon=int(smartlog_data.get("horizon", DEFAULT_HORIZON)),
                ),
                display=DisplayConfig(
                    symbols=str(display_data.get("symbols", "ascii")),
                ),
                events=EventsConfig(
                    lock_timeout=float(events_data.get("lock_timeout", DEFAULT_LOCK_TIMEOUT)),
                    lock_retries=int(events_data.get("lock_retries", DEFAULT_LOCK_RETRIES)),
                ),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

    def validate(self) -> Optional[str]:
        """First error across all sections, or None."""
        for section in (self.core, self.smartlog, self.display, self.events):
            error = section.validate()
            if error:
                return error
        return None


class ConfigManager:
    """
    Manages configuration loading and persistence.

    Hierarchy:
      1. Environment
      2. Project config (<git-common-dir>/twig/config.yaml)
      3. User config (~/.twig/config.yaml)
      4. Defaults
    """

    USER_CONFIG_DIR = Path.home() / ".twig"
    CONFIG_FILE = "config.yaml"

    # Setting names accepted by set/get, per section
    KEYS = {
        "core": ("main_branch",),
        "smartlog": ("horizon",),
        "display": ("symbols",),
        "events": ("lock_timeout", "lock_retries"),
    }

    def __init__(self, project_dir: Optional[Path] = None):
        """
        Args:
            project_dir: Directory holding the project config (the
                repository's twig directory). None = no project layer.
        """
        self.project_dir = Path(project_dir) if project_dir else None
        self._config: Optional[Config] = None

    @property
    def project_config_path(self) -> Optional[Path]:
        if self.project_dir is None:
            return None
        return self.project_dir / self.CONFIG_FILE

    @property
    def user_config_path(self) -> Path:
        return self.USER_CONFIG_DIR / self.CONFIG_FILE

    def load(self) -> Config:
        """
        Load configuration from all sources.

        Raises:
            ConfigError: a config file is malformed or holds an invalid value
        """
        if self._config is not None:
            return self._config

        config_data: Dict[str, Any] = {}

        # Layer 1: User config
        config_data = self._merge(config_data, self._read(self.user_config_path))

        # Layer 2: Project config (higher priority)
        if self.project_config_path is not None:
            config_data = self._merge(config_data, self._read(self.project_config_path))

        # Layer 3: Environment overrides
        if os.environ.get("TWIG_MAIN_BRANCH"):
            config_data.setdefault("core", {})["main_branch"] = os.environ["TWIG_MAIN_BRANCH"]
        if os.environ.get("TWIG_SYMBOLS"):
            config_data.setdefault("display", {})["symbols"] = os.environ["TWIG_SYMBOLS"]

        config = Config.from_dict(config_data)
        error = config.validate()
        if error:
            raise ConfigError(error)

        self._config = config
        return self._config

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping of sections")
        return data

    @staticmethod
    def _write(path: Path, data: Dict[str, Any]):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False)

    def set(self, key: str, value: str, scope: str = "project") -> Optional[str]:
        """
        Set a configuration value.

        Args:
            key: Dot-separated key (e.g., "core.main_branch")
            value: Value to set
            scope: "project" or "user"

        Returns:
            Error message or None if successful
        """
        parts = key.split(".")
        if len(parts) != 2:
            return f"Invalid key format: {key}. Use 'section.setting' (e.g., 'core.main_branch')"

        section, setting = parts
        if section not in self.KEYS:
            return f"Unknown section: {section}. Valid: {', '.join(self.KEYS)}"
        if setting not in self.KEYS[section]:
            return f"Unknown {section} setting: {setting}. Valid: {', '.join(self.KEYS[section])}"

        # Write only the layer being changed, so lower layers keep showing through
        path = self.project_config_path if scope == "project" else self.user_config_path
        if path is None:
            return "Not inside a git repository; use --user"
        try:
            data = self._read(path)
        except ConfigError as e:
            return str(e)
        if not isinstance(data.get(section), dict):
            data[section] = {}
        data[section][setting] = value

        try:
            candidate = Config.from_dict(self._merge(self._effective_data(), data))
        except ConfigError as e:
            return str(e)
        error = candidate.validate()
        if error:
            return error

        layer = Config.from_dict(data)
        self._write(path, self._coerce(data, layer))

        self._config = None
        return None

    def _effective_data(self) -> Dict[str, Any]:
        """Merged file layers, without environment overrides."""
        data = self._read(self.user_config_path)
        if self.project_config_path is not None:
            data = self._merge(data, self._read(self.project_config_path))
        return data

    @staticmethod
    def _coerce(data: Dict[str, Any], typed: Config) -> Dict[str, Any]:
        """Keep only the keys present in data, with values of the proper type."""
        typed_data = typed.to_dict()
        return {
            section: {setting: typed_data[section][setting]
                      for setting in values if setting in typed_data[section]}
            for section, values in data.items()
            if section in typed_data and isinstance(values, dict)
        }

    def get(self, key: str) -> Optional[str]:
        """Get a configuration value."""
        config = self.load()

        parts = key.split(".")
        if len(parts) != 2:
            return None

        section, setting = parts
        if setting not in self.KEYS.get(section, ()):
            return None
        return str(getattr(getattr(config, section), setting))

    def _merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dicts, override wins."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value
        return result

    def display(self) -> str:
        """Format config for display."""
        config = self.load()

        lines = [
            "Configuration:",
            "",
            "Core:",
            f"  Main branch: {config.core.main_branch}",
            "",
            "Smartlog:",
            f"  Horizon: {config.smartlog.horizon}",
            "",
            "Display:",
            f"  Symbols: {config.display.symbols}",
            "",
            "Events:",
            f"  Lock timeout: {config.events.lock_timeout}s",
            f"  Lock retries: {config.events.lock_retries}",
            "",
            "Config files:",
            f"  User: {self.user_config_path}",
            f"  Project: {self.project_config_path or '(not in a repository)'}",
        ]

        return "\n".join(lines)


# Convenience function
def get_config(project_dir: Optional[Path] = None) -> Config:
    """Load configuration for a project."""
    return ConfigManager(project_dir).load()
