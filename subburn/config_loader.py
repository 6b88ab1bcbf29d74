"""Handles loading configuration from YAML files."""

import yaml
import os
import logging
from .compression import COMPRESSION_LEVELS, DEFAULT_COMPRESSION_LEVEL
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'temp_dir': 'temp',
    'output_dir': 'outputs',
    'log_dir': 'logs',
    'log_file': 'subburn.log',
    'ffmpeg_path': None,
    'ffprobe_path': None,
    'compression_level': DEFAULT_COMPRESSION_LEVEL,
    'subtitle_font': 'Arial',
    'subtitle_font_size': 24,
    'max_chars_per_line': 42,
    'max_attempts': 3,
    'retry_base_delay': 2.0,
    'render_workers': 1,
    'transcription_backend': 'openai',
    'openai_api_key': None,
    'openai_model': 'whisper-1',
    'whisper_model': 'medium',
    'device': 'cuda',
    'whisper_fp16': True,
    'language': None,
}

class ConfigLoader:
    """Loads configuration settings from a YAML file."""

    def load_config(self, config_path: str) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Keys missing from the file take their values from DEFAULT_CONFIG.

        Args:
            config_path: The path to the YAML configuration file.

        Returns:
            A dictionary containing the loaded configuration settings.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML, if there
                              are other reading errors, or if a value is invalid.
        """
        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
             logger.error(f"Configuration path is not a file: {config_path}")
             raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except IOError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if loaded is None:
            loaded = {} # Empty file
        if not isinstance(loaded, dict):
            # Handle cases where YAML loads something other than a dictionary (e.g., just a string)
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")

        config = dict(DEFAULT_CONFIG)
        config.update(loaded)
        self.validate(config)
        logger.info(f"Configuration loaded successfully from {config_path}")
        return config

    def validate(self, config: dict) -> None:
        """Checks value ranges. Unknown compression levels only warn; the renderer falls back."""
        if config.get('compression_level') not in COMPRESSION_LEVELS:
            logger.warning(f"Unknown compression_level '{config.get('compression_level')}' in config.")
        if config.get('transcription_backend') not in ('openai', 'whisper'):
            raise ConfigurationError(
                f"transcription_backend must be 'openai' or 'whisper', got '{config.get('transcription_backend')}'"
            )
        for key in ('max_attempts', 'render_workers', 'subtitle_font_size', 'max_chars_per_line'):
            value = config.get(key)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"'{key}' must be a positive integer, got {value!r}")
        delay = config.get('retry_base_delay')
        if not isinstance(delay, (int, float)) or isinstance(delay, bool) or delay < 0:
            raise ConfigurationError(f"'retry_base_delay' must be a non-negative number, got {delay!r}")
