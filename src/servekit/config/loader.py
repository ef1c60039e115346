"""Configuration loader for servekit.

This module turns the options a caller hands to ``Server`` (a
``ServerConfig``, a mapping, keyword overrides, or a YAML file) into a
validated ``ServerConfig``.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from servekit.config.env_loader import substitute_env_vars
from servekit.config.validator import first_error_field, flatten_pydantic_errors
from servekit.lib.errors import ConfigurationError
from servekit.lib.logging_config import get_logger
from servekit.models.config import ServerConfig

logger = get_logger(__name__)


def build_server_config(
    config: ServerConfig | Mapping[str, Any] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ServerConfig:
    """Merge supplied fields over defaults and validate the result.

    The merge is shallow: each field given in ``overrides`` replaces the
    same field of ``config``, and unspecified fields fall back to their
    defaults individually.

    Args:
        config: Base configuration
        overrides: Fields that take precedence over ``config``

    Returns:
        Validated ServerConfig

    Raises:
        ConfigurationError: If validation fails
    """
    if isinstance(config, ServerConfig) and not overrides:
        return config

    if isinstance(config, ServerConfig):
        data: dict[str, Any] = config.model_dump(exclude_unset=True)
        if config.options is not None:
            data["options"] = config.options
    else:
        data = dict(config or {})
    data.update(overrides or {})

    try:
        return ServerConfig.model_validate(data)
    except PydanticValidationError as e:
        messages = flatten_pydantic_errors(e)
        raise ConfigurationError(first_error_field(e), "; ".join(messages)) from e


class ConfigLoader:
    """Loads server configuration from YAML files.

    This class handles:
    - Parsing YAML files into Python dictionaries
    - Environment variable substitution (``${VAR_NAME}``)
    - Converting validation errors into human-readable messages
    """

    def parse_yaml(self, file_path: str | Path) -> dict[str, Any]:
        """Parse a YAML file and return its contents as a dictionary.

        Args:
            file_path: Path to the YAML file to parse

        Returns:
            Dictionary containing parsed YAML content (empty for an empty file)

        Raises:
            ConfigurationError: If the file is missing, unreadable, or invalid YAML
        """
        path = Path(file_path)

        try:
            raw_text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                "file",
                f"Configuration file not found at {file_path}. "
                f"Please ensure the file exists at this path.",
            ) from e

        substituted = substitute_env_vars(raw_text)
        try:
            content = yaml.safe_load(substituted)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                "yaml_parse",
                f"Failed to parse YAML file {file_path}: {str(e)}",
            ) from e

        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ConfigurationError(
                "yaml_parse",
                f"Expected a mapping at the top of {file_path}, "
                f"got {type(content).__name__}",
            )
        return content

    def load_server_yaml(
        self,
        file_path: str | Path,
        overrides: Mapping[str, Any] | None = None,
    ) -> ServerConfig:
        """Load and validate a server configuration from YAML.

        Args:
            file_path: Path to the YAML file
            overrides: Fields that take precedence over the file (e.g. CLI flags)

        Returns:
            Validated ServerConfig

        Raises:
            ConfigurationError: If loading or validation fails
        """
        content = self.parse_yaml(file_path)
        logger.debug(f"Loaded server configuration from {file_path}")
        return build_server_config(content, overrides)
