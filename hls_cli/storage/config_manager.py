"""
Reads and writes the INI settings file behind `DownloadConfig`.

All settings live in the `DEFAULT` section. Keys added in newer versions are
written back into an older file on load, with their default values.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from hls_cli.exceptions import ConfigurationError
from hls_cli.models.config import DownloadConfig

log = logging.getLogger(__name__)

SECTION = "DEFAULT"


class ConfigManager:
    """Owns one INI file and turns it into validated `DownloadConfig` objects."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = Path(config_file_path)
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> DownloadConfig:
        """
        Builds the effective configuration: defaults, then the file, then
        command-line overrides.

        A missing file is not an error; every setting has a default.

        Raises:
            ConfigurationError: If the file cannot be parsed or a value is invalid.
        """
        values: dict[str, Any] = {}
        if self.config_file_path.is_file():
            self._read_file()
            if self._add_missing_keys():
                log.info(
                    "[yellow]Configuration file was updated with new default "
                    "values.[/yellow]"
                )
            values = self._read_values()
        else:
            log.debug(f"No config file at '{self.config_file_path}', using defaults.")

        values.update(cli_options or {})
        try:
            return DownloadConfig(
                **values, config_path=str(self.config_file_path.parent)
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any] | None = None) -> None:
        """Writes a fresh file from the defaults, overridden by `settings`."""
        values = DownloadConfig(**(settings or {})).model_dump(
            include=DownloadConfig.get_ini_keys()
        )
        parser = configparser.ConfigParser(interpolation=None)
        parser[SECTION] = {
            key: self._to_ini_value(value)
            for key, value in sorted(values.items())
            if value is not None
        }
        self._write(parser)

    def as_display_dict(self) -> dict[str, Any]:
        """Returns the effective settings for display."""
        return self.load_config().model_dump(exclude={"config_path"})

    def _read_file(self) -> None:
        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

    def _read_values(self) -> dict[str, Any]:
        """Converts each known key with the getter matching its field type."""
        section = self._parser[SECTION]
        getters = {
            bool: section.getboolean,
            int: section.getint,
            float: section.getfloat,
        }
        values: dict[str, Any] = {}
        for key in DownloadConfig.get_ini_keys():
            if key not in section:
                continue
            annotation = DownloadConfig.model_fields[key].annotation
            getter = getters.get(annotation, section.get)
            try:
                values[key] = getter(key)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for '{key}' in configuration file: {e}"
                ) from e
        return values

    def _add_missing_keys(self) -> bool:
        """Fills in keys the file lacks. Returns True if the file was rewritten."""
        section = self._parser[SECTION]
        defaults = DownloadConfig()
        missing = sorted(DownloadConfig.get_ini_keys() - set(section))
        for key in missing:
            section[key] = self._to_ini_value(getattr(defaults, key))
            log.debug(f"Added missing config key '{key}' = '{section[key]}'.")

        if not missing:
            return False
        try:
            self._write(self._parser)
        except ConfigurationError as e:
            log.error(f"Could not save migrated configuration file: {e}")
            return False
        return True

    def _write(self, parser: configparser.ConfigParser) -> None:
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                parser.write(f)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _to_ini_value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
