"""
Configuration management for the video transcoder.

This module handles loading, validating, and managing configuration from YAML
files, with environment variable overrides for the deployment-level knobs.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from video_transcoder.config.models import TranscoderSettings
from video_transcoder.utils import ConfigurationError, get_logger

logger = get_logger(__name__)

ENV_PREFIX = "VIDEO_TRANSCODER_"

# Environment variable suffix -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "MAX_CONCURRENT_TASKS": ("execution", "max_concurrent_tasks"),
    "PROCESS_TIMEOUT": ("execution", "process_timeout"),
    "MEMORY_THRESHOLD": ("execution", "memory_threshold"),
    "DEFAULT_QUALITY": ("defaults", "quality"),
    "VIDEO_CODEC": ("defaults", "video_codec"),
    "AUDIO_CODEC": ("defaults", "audio_codec"),
}


class ConfigManager:
    """Manages transcoder configuration."""

    DEFAULT_CONFIG_LOCATIONS = [
        Path.home() / ".video-transcoder.yaml",
        Path.home() / ".config" / "video-transcoder" / "config.yaml",
        Path.cwd() / ".video-transcoder.yaml",
    ]

    def __init__(
        self,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file
            environ: Environment mapping for overrides (defaults to os.environ)
        """
        self.config_path = config_path
        self._environ = environ if environ is not None else os.environ
        self._config: Optional[TranscoderSettings] = None

    @property
    def config(self) -> TranscoderSettings:
        """
        Get current configuration, loading it if necessary.

        Raises:
            ConfigurationError: If configuration cannot be loaded
        """
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self, config_path: Optional[Path] = None) -> TranscoderSettings:
        """
        Load configuration from file or create default, then apply env overrides.

        Args:
            config_path: Optional path to configuration file

        Returns:
            Loaded TranscoderSettings

        Raises:
            ConfigurationError: If configuration file or an override is invalid
        """
        path = config_path or self.config_path

        if path:
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")
            config = self._load_from_file(path)
        else:
            config = None
            for default_path in self.DEFAULT_CONFIG_LOCATIONS:
                if default_path.exists():
                    logger.info(f"Loading configuration from {default_path}")
                    config = self._load_from_file(default_path)
                    break

            if config is None:
                logger.debug("No configuration file found, using defaults")
                config = TranscoderSettings.create_default()

        return self.apply_env_overrides(config)

    def _load_from_file(self, path: Path) -> TranscoderSettings:
        """
        Load configuration from YAML file.

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        if data is None:
            raise ConfigurationError(f"Configuration file is empty: {path}")

        try:
            config = TranscoderSettings(**data)
        except (PydanticValidationError, TypeError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        logger.debug(f"Successfully loaded configuration from {path}")
        return config

    def apply_env_overrides(self, config: TranscoderSettings) -> TranscoderSettings:
        """
        Apply VIDEO_TRANSCODER_* environment overrides.

        Args:
            config: Base configuration

        Returns:
            New configuration with overrides applied

        Raises:
            ConfigurationError: If an override value is invalid
        """
        data = config.model_dump()
        applied = []

        for suffix, (section, field) in ENV_OVERRIDES.items():
            value = self._environ.get(ENV_PREFIX + suffix)
            if value is None or value == "":
                continue
            data[section][field] = value
            applied.append(ENV_PREFIX + suffix)

        if not applied:
            return config

        try:
            overridden = TranscoderSettings(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid environment override: {e}") from e

        logger.debug(f"Applied environment overrides: {', '.join(applied)}")
        return overridden

    def save(self, path: Optional[Path] = None, config: Optional[TranscoderSettings] = None) -> None:
        """
        Save configuration to file.

        Args:
            path: Path to save configuration (uses default if None)
            config: Configuration to save (uses current if None)

        Raises:
            ConfigurationError: If configuration cannot be saved
        """
        cfg = config or self.config
        save_path = path or self.config_path or self.DEFAULT_CONFIG_LOCATIONS[0]

        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            data = cfg.model_dump(mode="json")

            with open(save_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)

            logger.info(f"Configuration saved to {save_path}")

        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

    def init_default_config(self, path: Optional[Path] = None, force: bool = False) -> Path:
        """
        Initialize default configuration file.

        Args:
            path: Path to create configuration file (uses default if None)
            force: Overwrite existing file

        Returns:
            Path to created configuration file

        Raises:
            ConfigurationError: If file already exists and force=False
        """
        target_path = path or self.DEFAULT_CONFIG_LOCATIONS[0]

        if target_path.exists() and not force:
            raise ConfigurationError(
                f"Configuration file already exists: {target_path}. Use force=True to overwrite."
            )

        self.save(target_path, TranscoderSettings.create_default())
        return target_path

    def reload(self) -> TranscoderSettings:
        """Reload configuration from file."""
        self._config = None
        return self.config
