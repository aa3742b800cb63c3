"""StoreConfig dataclass and global configuration state.

Configuration is layered (lowest to highest priority): defaults, XDG config
(``~/.config/tagged-tasks/config.toml``), user config
(``~/.tagged-tasks.toml``), project config (``./tagged-tasks.toml``), then
``TAGGED_TASKS_*`` environment variables.

Example ``tagged-tasks.toml``::

    [store]
    path = ".taskmaster/tasks/tasks.json"
    lock_timeout = 5
    max_retries = 2

    [backups]
    enabled = true
    max = 10

    [task_files]
    generate = true

    [logging]
    level = "DEBUG"
    structured = false
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tagged_tasks.config.parsing import _normalize_log_level, _parse_bool, _parse_float, _parse_int
from tagged_tasks.core.models import DEFAULT_TAG

logger = logging.getLogger(__name__)

DEFAULT_TASKS_PATH = Path(".taskmaster") / "tasks" / "tasks.json"
CONFIG_FILE_NAME = "tagged-tasks.toml"


@dataclass
class StoreConfig:
    """Store configuration with support for env vars and TOML overrides."""

    # Location of the tasks file; relative paths resolve against project_dir
    tasks_path: Path = DEFAULT_TASKS_PATH
    project_dir: Path = Path(".")

    # Writer settings
    lock_timeout: float = 10.0
    max_retries: int = 0
    backups_enabled: bool = True
    max_backups: int = 10

    # Derived task files
    generate_task_files: bool = False
    task_files_dir: Optional[Path] = None

    default_tag: str = DEFAULT_TAG

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "StoreConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. Project TOML config (./tagged-tasks.toml)
        3. User TOML config (~/.tagged-tasks.toml)
        4. XDG config (~/.config/tagged-tasks/config.toml)
        5. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("TAGGED_TASKS_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
            xdg_config = Path(xdg_config_home) / "tagged-tasks" / "config.toml"
            if xdg_config.exists():
                config._load_toml(xdg_config)
                logger.debug("Loaded XDG config from %s", xdg_config)

            home_config = Path.home() / ".tagged-tasks.toml"
            if home_config.exists():
                config._load_toml(home_config)
                logger.debug("Loaded user config from %s", home_config)

            project_config = Path(CONFIG_FILE_NAME)
            if project_config.exists():
                config._load_toml(project_config)
                logger.debug("Loaded project config from %s", project_config)

        config._load_env()
        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning("Config file not found: %s", path)
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error("Error loading config file %s: %s", path, e)
            return

        if "store" in data:
            store = data["store"]
            if "path" in store:
                self.tasks_path = Path(store["path"])
            if "project_dir" in store:
                self.project_dir = Path(store["project_dir"])
            if "default_tag" in store:
                self.default_tag = str(store["default_tag"])
            if "lock_timeout" in store:
                timeout = _parse_float(store["lock_timeout"], "store.lock_timeout")
                if timeout is not None:
                    self.lock_timeout = timeout
            if "max_retries" in store:
                retries = _parse_int(store["max_retries"], "store.max_retries")
                if retries is not None:
                    self.max_retries = retries

        if "backups" in data:
            backups = data["backups"]
            if "enabled" in backups:
                self.backups_enabled = _parse_bool(backups["enabled"])
            if "max" in backups:
                max_backups = _parse_int(backups["max"], "backups.max")
                if max_backups is not None:
                    self.max_backups = max_backups

        if "task_files" in data:
            files = data["task_files"]
            if "generate" in files:
                self.generate_task_files = _parse_bool(files["generate"])
            if "dir" in files:
                self.task_files_dir = Path(files["dir"])

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = _normalize_log_level(log["level"])
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if path := os.environ.get("TAGGED_TASKS_PATH"):
            self.tasks_path = Path(path)
        if project_dir := os.environ.get("TAGGED_TASKS_DIR"):
            self.project_dir = Path(project_dir)
        if tag := os.environ.get("TAGGED_TASKS_DEFAULT_TAG"):
            self.default_tag = tag
        if level := os.environ.get("TAGGED_TASKS_LOG_LEVEL"):
            self.log_level = _normalize_log_level(level)
        if structured := os.environ.get("TAGGED_TASKS_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)
        if timeout := os.environ.get("TAGGED_TASKS_LOCK_TIMEOUT"):
            parsed_timeout = _parse_float(timeout, "TAGGED_TASKS_LOCK_TIMEOUT")
            if parsed_timeout is not None:
                self.lock_timeout = parsed_timeout
        if retries := os.environ.get("TAGGED_TASKS_MAX_RETRIES"):
            parsed_retries = _parse_int(retries, "TAGGED_TASKS_MAX_RETRIES")
            if parsed_retries is not None:
                self.max_retries = parsed_retries
        if backups := os.environ.get("TAGGED_TASKS_BACKUPS"):
            self.backups_enabled = _parse_bool(backups)
        if max_backups := os.environ.get("TAGGED_TASKS_MAX_BACKUPS"):
            parsed_max = _parse_int(max_backups, "TAGGED_TASKS_MAX_BACKUPS")
            if parsed_max is not None:
                self.max_backups = parsed_max
        if generate := os.environ.get("TAGGED_TASKS_GENERATE_FILES"):
            self.generate_task_files = _parse_bool(generate)

    def resolve_tasks_path(self) -> Path:
        """Absolute-or-project-relative path of the tasks file."""
        path = self.tasks_path.expanduser()
        if path.is_absolute():
            return path
        return self.project_dir.expanduser() / path

    def resolve_task_files_dir(self, tasks_path: Optional[Path] = None) -> Path:
        """Directory for generated task files (defaults to the tasks file's directory).

        Args:
            tasks_path: Tasks file in use, when it differs from ``resolve_tasks_path()``
        """
        if self.task_files_dir is not None:
            return self.task_files_dir.expanduser()
        return (tasks_path or self.resolve_tasks_path()).parent

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.structured_logging:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)

        root_logger = logging.getLogger("tagged_tasks")
        root_logger.setLevel(level)
        # Repeated calls replace the handler instead of stacking duplicates.
        for existing in list(root_logger.handlers):
            if getattr(existing, "_tagged_tasks_handler", False):
                root_logger.removeHandler(existing)
        handler._tagged_tasks_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)


# Global configuration instance
_config: Optional[StoreConfig] = None


def get_config() -> StoreConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = StoreConfig.from_env()
    return _config


def set_config(config: Optional[StoreConfig]) -> None:
    """Set (or with None, reset) the global configuration instance."""
    global _config
    _config = config
