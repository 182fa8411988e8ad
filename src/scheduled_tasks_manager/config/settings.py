# scheduled_tasks_manager/config/settings.py
"""Manages application-wide configuration settings.

This module provides the `Settings` class, which is responsible for loading
settings from a JSON file, providing default values for missing keys, saving
changes back to the file, and determining the appropriate application data and
configuration directories based on the environment.

The configuration is stored in a nested JSON format. Settings are accessed
programmatically using dot-notation (e.g., `settings.get('history.max_events')`).
"""

import os
import json
import logging
import collections.abc
from typing import Any, Dict

from appdirs import user_data_dir

from scheduled_tasks_manager.error import ConfigurationError
from scheduled_tasks_manager.config.const import (
    package_name,
    env_name,
    app_author,
    get_installed_version,
    TASK_SCHEDULER_LOG_NAME,
)

logger = logging.getLogger(__name__)

# The schema version for the configuration file.
CONFIG_SCHEMA_VERSION = 1
CONFIG_FILE_NAME = "scheduled_tasks_manager.json"


def deep_merge(source: Dict, destination: Dict) -> Dict:
    """
    Recursively merges the `source` dictionary into the `destination` dictionary.

    Nested dictionaries are merged, while other values in `source` overwrite
    those in `destination`.

    Args:
        source: The dictionary with new or updated values.
        destination: The dictionary to be updated.

    Returns:
        The merged dictionary (`destination`).
    """
    for key, value in source.items():
        if isinstance(value, collections.abc.Mapping):
            node = destination.setdefault(key, {})
            deep_merge(value, node)
        else:
            destination[key] = value
    return destination


class Settings:
    """Manages loading, accessing, and saving application settings.

    This class acts as a single source of truth for configuration. It handles
    the logic for determining application data and config directories, provides
    defaults in a nested structure, and ensures the log directory exists. It
    offers `get` and `set` methods using dot-notation, persisting any changes
    to a JSON file.
    """

    def __init__(self):
        """Initializes the Settings object.

        Determines the application's file paths, loads any existing
        configuration, creates a default configuration if one doesn't exist,
        and ensures the log directory is present on the filesystem.
        """
        logger.debug("Initializing Settings")
        self._app_data_dir_path = self._determine_app_data_dir()
        self._config_dir_path = self._determine_app_config_dir()
        self.config_file_name = CONFIG_FILE_NAME
        self.config_path = os.path.join(self._config_dir_path, self.config_file_name)

        self._version_val = get_installed_version()

        self._settings: Dict[str, Any] = {}
        self.load()

    def _determine_app_data_dir(self) -> str:
        """Determines the main application data directory.

        It prioritizes the `SCHEDULED_TASKS_MANAGER_DATA_DIR` environment
        variable if set. Otherwise, it defaults to the platform's user data
        directory as reported by `appdirs`. The directory is created if it
        doesn't exist.

        Returns:
            The absolute path to the application data directory.
        """
        env_var_name = f"{env_name}_DATA_DIR"
        data_dir = os.environ.get(env_var_name)
        if not data_dir:
            data_dir = user_data_dir(package_name, app_author)
        os.makedirs(data_dir, exist_ok=True)
        return data_dir

    def _determine_app_config_dir(self) -> str:
        """Determines the application's configuration directory.

        Returns:
            The absolute path to the `.config` directory nested within the
            application data directory.
        """
        config_dir = os.path.join(self._app_data_dir_path, ".config")
        os.makedirs(config_dir, exist_ok=True)
        return config_dir

    @property
    def default_config(self) -> dict:
        """Provides the default configuration values for the application.

        Returns:
            A dictionary of default settings with a nested structure.
        """
        app_data_dir_val = self._app_data_dir_path
        return {
            "config_version": CONFIG_SCHEMA_VERSION,
            "paths": {
                "logs": os.path.join(app_data_dir_val, ".logs"),
            },
            "retention": {
                "logs": 3,
            },
            "logging": {
                "file_level": logging.INFO,
                "cli_level": logging.WARNING,
            },
            "history": {
                "log_name": TASK_SCHEDULER_LOG_NAME,
                "max_events": 500,
                "max_runs": None,
                "absorb_uncorrelated": True,
            },
        }

    def load(self):
        """Loads settings from the JSON configuration file.

        If the file doesn't exist, it's created with defaults. User settings
        are merged over the defaults.
        """
        # Always start with a fresh copy of the defaults to build upon.
        self._settings = self.default_config

        if not os.path.exists(self.config_path):
            logger.info(
                f"Configuration file not found at {self.config_path}. "
                "Creating with default settings."
            )
            self._write_config()
        else:
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    user_config = json.load(f)
                if not isinstance(user_config, dict):
                    raise ValueError("top-level JSON value is not an object")
                deep_merge(user_config, self._settings)

            except (ValueError, OSError) as e:
                logger.warning(
                    f"Could not load config file at {self.config_path}: {e}. "
                    "Using default settings. A new config will be saved on the next settings change."
                )

        self._ensure_dirs_exist()

    def _ensure_dirs_exist(self):
        """Ensures that the directories specified in the settings exist.

        Raises:
            ConfigurationError: If a directory cannot be created.
        """
        dir_path = self.get("paths.logs")
        if dir_path and isinstance(dir_path, str):
            try:
                os.makedirs(dir_path, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(
                    f"Could not create critical directory: {dir_path}"
                ) from e

    def _write_config(self):
        """Writes the current settings dictionary to the JSON configuration file.

        Raises:
            ConfigurationError: If writing the configuration fails.
        """
        try:
            os.makedirs(self._config_dir_path, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, indent=4, sort_keys=True)
        except (OSError, TypeError) as e:
            raise ConfigurationError(f"Failed to write configuration: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieves a setting value using dot-notation for nested access.

        Example: `settings.get("history.max_events")`

        Args:
            key: The dot-separated configuration key.
            default: The value to return if the key is not found.

        Returns:
            The value associated with the key, or the default value.
        """
        d = self._settings
        try:
            for k in key.split("."):
                d = d[k]
            return d
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any):
        """Sets a configuration value using dot-notation and saves the change.

        Intermediate dictionaries are created if they do not exist. The
        configuration is only written to disk if the new value is different
        from the old one.

        Args:
            key: The dot-separated configuration key to set.
            value: The value to associate with the key.
        """
        if self.get(key) == value:
            return

        keys = key.split(".")
        d = self._settings
        for k in keys[:-1]:
            d = d.setdefault(k, {})

        d[keys[-1]] = value
        logger.info(f"Setting '{key}' updated to '{value}'. Saving configuration.")
        self._write_config()

    @property
    def config_dir(self) -> str:
        """The absolute path to the application's configuration directory."""
        return self._config_dir_path

    @property
    def app_data_dir(self) -> str:
        """The absolute path to the application's main data directory."""
        return self._app_data_dir_path

    @property
    def version(self) -> str:
        """The installed version of the application package."""
        return self._version_val
