"""Configuration for tagged-tasks.

Re-exports the public configuration API.
"""

from tagged_tasks.config.settings import (
    CONFIG_FILE_NAME,
    DEFAULT_TASKS_PATH,
    StoreConfig,
    get_config,
    set_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_TASKS_PATH",
    "StoreConfig",
    "get_config",
    "set_config",
]
