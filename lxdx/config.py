"""
Configuration for lxdx with XDG-compliant paths.

Loads and merges system, user, project and explicit configuration files with
hierarchical precedence, and resolves target names to Target descriptors.
"""

# pylint: disable=broad-exception-caught

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from omegaconf import DictConfig, OmegaConf

from .models import URI_SCHEME, Target

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
PROJECT_DIRNAME = ".lxdx"


class ConfigManager:
    """Manages lxdx configuration loading, merging and target lookup."""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file
        self.system_config: Optional[DictConfig] = None
        self.user_config: Optional[DictConfig] = None
        self.project_config: Optional[DictConfig] = None
        self.explicit_config: Optional[DictConfig] = None
        self.merged_config: Optional[DictConfig] = None
        self._load_configs()

    def _get_xdg_config_dirs(self) -> List[Path]:
        """Get XDG config directories in precedence order."""
        xdg_config_dirs = os.environ.get("XDG_CONFIG_DIRS", "/etc/xdg")
        return [Path(d) / "lxdx" for d in xdg_config_dirs.split(":") if d]

    def _get_user_config_dir(self) -> Path:
        """Get user config directory following XDG spec."""
        xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config_home:
            return Path(xdg_config_home) / "lxdx"
        return Path.home() / ".config" / "lxdx"

    def _get_project_config_dir(
        self, start_path: Optional[Path] = None
    ) -> Optional[Path]:
        """Find the nearest .lxdx directory walking up from start_path."""
        current = (start_path or Path.cwd()).resolve()

        while True:
            project_dir = current / PROJECT_DIRNAME
            if project_dir.is_dir():
                return project_dir
            if current == current.parent:
                return None
            current = current.parent

    def _load_file(self, config_file: Path, label: str) -> Optional[DictConfig]:
        """Load one YAML file, warning instead of failing if it is unreadable."""
        if not config_file.exists():
            return None
        try:
            config = OmegaConf.load(config_file)
        except Exception as e:
            click.echo(
                f"Warning: Failed to load {label} config {config_file}: {e}", err=True
            )
            return None
        if not isinstance(config, DictConfig):
            click.echo(
                f"Warning: {label} config {config_file} must contain a mapping",
                err=True,
            )
            return None
        return config

    def _load_system_config(self) -> Optional[DictConfig]:
        """Load system-wide configuration."""
        for config_dir in self._get_xdg_config_dirs():
            config = self._load_file(config_dir / CONFIG_FILENAME, "system")
            if config is not None:
                return config
        return None

    def _load_configs(self):
        """Load and merge all configuration files."""
        self.system_config = self._load_system_config()
        self.user_config = self._load_file(
            self._get_user_config_dir() / CONFIG_FILENAME, "user"
        )

        project_dir = self._get_project_config_dir()
        self.project_config = (
            self._load_file(project_dir / CONFIG_FILENAME, "project")
            if project_dir
            else None
        )

        if self.config_file:
            self.explicit_config = self._load_file(
                Path(self.config_file).expanduser(), "explicit"
            )

        # Precedence: system < user < project < explicit
        configs = [
            c
            for c in (
                self.system_config,
                self.user_config,
                self.project_config,
                self.explicit_config,
            )
            if c is not None
        ]

        if configs:
            self.merged_config = OmegaConf.merge(*configs)
        else:
            self.merged_config = OmegaConf.create({})

    def get_config_files(self) -> Dict[str, Path]:
        """Get paths to all relevant config files."""
        files = {}
        for i, config_dir in enumerate(self._get_xdg_config_dirs()):
            files[f"system_{i}"] = config_dir / CONFIG_FILENAME
        files["user"] = self._get_user_config_dir() / CONFIG_FILENAME

        project_dir = self._get_project_config_dir()
        if project_dir:
            files["project"] = project_dir / CONFIG_FILENAME
        if self.config_file:
            files["explicit"] = Path(self.config_file).expanduser()
        return files

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level configuration value."""
        value = OmegaConf.select(self.merged_config, key, default=default)
        if OmegaConf.is_config(value):
            return OmegaConf.to_container(value, resolve=True)
        return value

    def get_defaults(self) -> Dict[str, Any]:
        """Options applied to every target."""
        defaults = self.get("defaults", {})
        return defaults if isinstance(defaults, dict) else {}

    def _get_target_entries(self) -> Dict[str, Any]:
        targets = self.get("targets", {})
        return targets if isinstance(targets, dict) else {}

    def _target_from_entry(self, name: str, entry: Any) -> Target:
        options = self.get_defaults()
        if isinstance(entry, dict):
            host = entry.get("host", name)
            options.update(entry.get("options") or {})
        else:
            # Short form: "web: web-1"
            host = entry if entry else name
        return Target(name=name, host=str(host) if host else "", options=options)

    def get_target(self, name: str) -> Target:
        """
        Resolve a target name.

        Looks the name up in the configured targets first, then accepts an
        lxd:// URI, and finally treats the name as a container on the default
        remote.
        """
        entries = self._get_target_entries()
        if name in entries:
            return self._target_from_entry(name, entries[name])

        if name.startswith(f"{URI_SCHEME}://"):
            return Target.from_uri(name, self.get_defaults())

        return Target(name=name, host=name, options=self.get_defaults())

    def list_targets(self) -> List[Target]:
        """All configured targets, in file order."""
        return [
            self._target_from_entry(name, entry)
            for name, entry in self._get_target_entries().items()
        ]


# -v count -> (level, format); anything above the last entry logs at DEBUG
LOG_LEVELS = [
    (logging.ERROR, "%(levelname)s: %(message)s"),
    (logging.WARNING, "%(levelname)s: %(message)s"),
    (logging.INFO, "%(levelname)s: %(message)s"),
    (logging.DEBUG, "%(levelname)s:%(name)s: %(message)s"),
]


def setup_logging(
    verbosity: Optional[int] = None, config: Optional[ConfigManager] = None
) -> int:
    """
    Install a single stderr handler on the root logger.

    An explicit verbosity (the count of -v flags) wins. Without one, the
    ``verbosity`` key of the merged configuration is used, so a project can
    turn on lxc command tracing through ``.lxdx/config.yaml``.

    Returns the effective verbosity.
    """
    if not verbosity and config is not None:
        verbosity = config.get("verbosity", 0)
    try:
        verbosity = max(int(verbosity or 0), 0)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid verbosity setting: {verbosity!r}")
        verbosity = 0

    level, format_str = LOG_LEVELS[min(verbosity, len(LOG_LEVELS) - 1)]

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_str))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return verbosity
