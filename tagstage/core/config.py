"""
Configuration management for tagstage.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - The music library directory to scan for MP3 files
    - The storage directory for the database and log files
    - The ordered list of available phases

Configuration File Location:
    By default the config.yaml file is read from the current working
    directory. The CLI accepts --config to point elsewhere.

Example config.yaml:
    library:
      directory: "~/Music/DJ"

    storage:
      directory: "~/Music/DJ/.tagstage"  # Optional

    phases:
      - starter
      - buildup
      - peak
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from tagstage.core.exceptions import ConfigError


# Default configuration file name (in current working directory)
CONFIG_FILENAME = "config.yaml"

# Default storage subdirectory inside the library directory
DEFAULT_STORAGE_DIRNAME = ".tagstage"

DATABASE_FILENAME = "tagstage.db"

_PHASE_NAME_RE = re.compile(r"^\w+$")


@dataclass(frozen=True)
class LibraryConfig:
    """
    Music library configuration.

    Attributes:
        directory: Absolute path to the folder holding the MP3 files.
                   Path expansion is performed (~ is expanded to home directory).
    """
    directory: Path


@dataclass(frozen=True)
class StorageConfig:
    """
    Storage location configuration.

    Attributes:
        directory: Directory holding the SQLite database and the logs/ folder.
                   Defaults to {library.directory}/.tagstage if not specified.
                   Created on startup if it doesn't exist.
    """
    directory: Path

    @property
    def database_path(self) -> Path:
        """Path to the SQLite database file."""
        return self.directory / DATABASE_FILENAME


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable (frozen dataclass).

    Attributes:
        library: Music library settings.
        storage: Database and log location.
        phases: Ordered tuple of available phase names (without the '#').

    Example:
        config = load_config()
        print(f"Library: {config.library.directory}")
        print(f"Phases: {', '.join(config.phases)}")
    """
    library: LibraryConfig
    storage: StorageConfig
    phases: tuple[str, ...]


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing required fields, or contains invalid values.

    Behavior:
        1. Locate config file (explicit path or CWD/config.yaml)
        2. Read and parse YAML content
        3. Validate structure (required sections exist)
        4. Validate and expand the library directory
        5. Resolve the storage directory (default inside the library)
        6. Validate the phase list
        7. Create and return frozen Config object
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    _validate_config(raw_config)

    library_config = _parse_library_config(raw_config["library"])
    storage_config = _parse_storage_config(raw_config.get("storage"), library_config)
    phases = parse_phases(raw_config.get("phases"))

    return Config(
        library=library_config,
        storage=storage_config,
        phases=phases
    )


def _validate_config(raw_config: dict[str, Any]) -> None:
    """
    Validate the raw configuration dictionary structure.

    Args:
        raw_config: Dictionary parsed from config.yaml.

    Raises:
        ConfigError: If a required section is missing or has the wrong type.
    """
    required_sections = ["library"]

    for section in required_sections:
        if section not in raw_config:
            raise ConfigError(
                f"Missing required section: '{section}'",
                details={"missing_section": section}
            )

        if not isinstance(raw_config[section], dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )

    storage = raw_config.get("storage")
    if storage is not None and not isinstance(storage, dict):
        raise ConfigError(
            "Section 'storage' must be a dictionary",
            details={"section": "storage"}
        )


def _parse_library_config(library_section: dict[str, Any]) -> LibraryConfig:
    """
    Parse and validate the library configuration section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT check that the directory exists (scan time does that).

    Raises:
        ConfigError: If directory is missing or empty.
    """
    directory = library_section.get("directory", "")

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'library.directory' must be a non-empty string",
            details={"field": "library.directory"}
        )

    return LibraryConfig(directory=Path(directory.strip()).expanduser().resolve())


def _parse_storage_config(
    storage_section: dict[str, Any] | None,
    library: LibraryConfig
) -> StorageConfig:
    """Parse the optional storage section, defaulting inside the library."""
    if storage_section is None or storage_section.get("directory") is None:
        return StorageConfig(directory=library.directory / DEFAULT_STORAGE_DIRNAME)

    directory = storage_section["directory"]
    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'storage.directory' must be a non-empty string",
            details={"field": "storage.directory"}
        )

    return StorageConfig(directory=Path(directory.strip()).expanduser().resolve())


def parse_phases(raw_phases: Any) -> tuple[str, ...]:
    """
    Validate the phase list.

    Args:
        raw_phases: The 'phases' value from config.yaml, or None.

    Returns:
        Tuple of phase names in the user's order. Empty if not configured.

    Raises:
        ConfigError: If the value is not a list, a phase is not a word
                     (letters, digits, underscore), or a phase is repeated.
    """
    if raw_phases is None:
        return ()

    if not isinstance(raw_phases, list):
        raise ConfigError(
            "'phases' must be a list of names",
            details={"field": "phases"}
        )

    phases: list[str] = []
    seen: set[str] = set()
    for raw in raw_phases:
        name = raw.strip().lstrip("#") if isinstance(raw, str) else raw
        if not isinstance(name, str) or not _PHASE_NAME_RE.match(name):
            raise ConfigError(
                f"Invalid phase name: {raw!r} (use letters, digits and underscores)",
                details={"field": "phases", "value": raw}
            )
        if name.lower() in seen:
            raise ConfigError(
                f"Duplicate phase name: {name}",
                details={"field": "phases", "value": name}
            )
        seen.add(name.lower())
        phases.append(name)

    return tuple(phases)
