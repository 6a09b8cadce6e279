"""Application configuration for the translate-json command."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jsonschema
import yaml
from dotenv import load_dotenv

from translate_json.errors import ConfigurationError
from translate_json.logging_config import setup_logger

DEFAULT_CONFIG_FILE = 'config.yaml'

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "translator": {"type": "string", "minLength": 1},
        "language": {"type": "string", "minLength": 1},
        "model_name": {"type": "string", "minLength": 1},
        "max_concurrent_api_calls": {"type": "integer", "minimum": 1},
        "max_concurrent_translations": {"type": "integer", "minimum": 1},
        "requests_per_minute": {"type": "number", "exclusiveMinimum": 0},
        "max_retries": {"type": "integer", "minimum": 1},
        "max_line_length": {"type": ["integer", "null"], "minimum": 1},
        "show_progress": {"type": "boolean"},
        "logging": {
            "type": "object",
            "properties": {
                "log_level": {"type": "string"},
                "log_file_path": {"type": ["string", "null"]},
                "log_to_console": {"type": "boolean"}
            },
            "additionalProperties": False
        }
    },
    "additionalProperties": False
}

# Environment variables, overridden by command line flags
ENV_TRANSLATOR = 'APP_TRANSLATOR'
ENV_LANGUAGE = 'APP_LANGUAGE'
ENV_MODEL_NAME = 'APP_MODEL_NAME'
ENV_OPENAI_API_KEY = 'OPENAI_API_KEY'
ENV_CONFIG_FILE = 'TRANSLATOR_CONFIG_FILE'


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Translator selection
    translator: str
    language: str
    model_name: str
    openai_api_key: Optional[str]

    # Processing settings
    max_concurrent_api_calls: int
    max_concurrent_translations: int
    requests_per_minute: float
    max_retries: int
    max_line_length: Optional[int]
    show_progress: bool

    # Logging
    log_level: str
    log_file_path: Optional[str]
    log_to_console: bool


def _load_dotenv_files(project_root: str) -> Optional[str]:
    """Load .env files from project root or docker directory."""
    dotenv_path_project_root = os.path.join(project_root, '.env')
    dotenv_path_docker_dir = os.path.join(project_root, 'docker', '.env')

    if os.path.exists(dotenv_path_project_root):
        load_dotenv(dotenv_path_project_root)
        return dotenv_path_project_root
    if os.path.exists(dotenv_path_docker_dir):
        load_dotenv(dotenv_path_docker_dir)
        return dotenv_path_docker_dir
    return None


def _load_yaml_config(config_file: str) -> Dict[str, Any]:
    """Load the YAML configuration file, falling back to defaults if it is unusable."""
    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            return config

        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)

    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except OSError as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _validate_config(config: Dict[str, Any]) -> None:
    try:
        jsonschema.validate(instance=config, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = '.'.join(str(part) for part in e.absolute_path) or '<root>'
        raise ConfigurationError(f"invalid configuration at '{location}': {e.message}") from e


def _setup_logger_from_config(config: Dict[str, Any], overrides: Dict[str, Any]) -> logging.Logger:
    log_config = config.get('logging', {})
    log_level_str = overrides.get('log_level') or log_config.get('log_level', 'INFO')
    log_file_path = log_config.get('log_file_path')
    log_to_console = log_config.get('log_to_console', True)
    try:
        return setup_logger(log_level_str, log_file_path, log_to_console)
    except OSError as e:
        raise ConfigurationError(f"cannot open log file '{log_file_path}': {e}") from e


def load_app_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    project_root: Optional[str] = None
) -> AppConfig:
    """
    Load application configuration.

    Values are resolved in order of precedence: ``overrides`` (command line
    flags), environment variables, the YAML configuration file, defaults.

    Args:
        config_file: Path to the YAML file. Defaults to ``$TRANSLATOR_CONFIG_FILE``
            or ``config.yaml`` in ``project_root``.
        overrides: Values that win over everything else; None values are ignored.
        project_root: Directory holding ``.env`` and ``config.yaml``. Defaults
            to the current working directory.

    Returns:
        AppConfig: The loaded application configuration.

    Raises:
        ConfigurationError: If the YAML file does not match the schema, or the
            log file cannot be opened.
    """
    project_root = project_root or os.getcwd()
    overrides = {key: value for key, value in (overrides or {}).items() if value is not None}

    dotenv_path = _load_dotenv_files(project_root)

    if config_file is None:
        config_file = os.environ.get(ENV_CONFIG_FILE, os.path.join(project_root, DEFAULT_CONFIG_FILE))
    config = _load_yaml_config(config_file)
    _validate_config(config)

    logger = _setup_logger_from_config(config, overrides)
    if dotenv_path:
        logger.info("Loaded environment variables from: %s", dotenv_path)
    else:
        logger.debug("No .env file found in '%s'. Relying on system environment variables if any.", project_root)

    def resolve(key: str, env_var: Optional[str], default: Any) -> Any:
        if key in overrides:
            return overrides[key]
        if env_var and os.environ.get(env_var):
            return os.environ[env_var]
        return config.get(key, default)

    log_config = config.get('logging', {})

    return AppConfig(
        translator=resolve('translator', ENV_TRANSLATOR, 'openai'),
        language=resolve('language', ENV_LANGUAGE, 'en'),
        model_name=resolve('model_name', ENV_MODEL_NAME, 'gpt-4o-mini'),
        openai_api_key=resolve('openai_api_key', ENV_OPENAI_API_KEY, None),
        max_concurrent_api_calls=resolve('max_concurrent_api_calls', None, 1),
        max_concurrent_translations=resolve('max_concurrent_translations', None, 1),
        requests_per_minute=resolve('requests_per_minute', None, 60),
        max_retries=resolve('max_retries', None, 5),
        max_line_length=resolve('max_line_length', None, None),
        show_progress=resolve('show_progress', None, False),
        log_level=overrides.get('log_level') or log_config.get('log_level', 'INFO'),
        log_file_path=log_config.get('log_file_path'),
        log_to_console=log_config.get('log_to_console', True),
    )
