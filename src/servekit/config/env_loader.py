"""Environment variable helpers for servekit configuration.

Loads ``.env`` files with python-dotenv and substitutes ``${VAR_NAME}``
references in configuration text.
"""

import os
import re
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from servekit.lib.errors import ConfigurationError
from servekit.lib.logging_config import get_logger

logger = get_logger(__name__)

# Matches ${VAR_NAME}; names follow shell identifier rules
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def load_env_file(path: str | Path | None = None) -> bool:
    """Load variables from a ``.env`` file into the process environment.

    Variables already present in the environment are never overridden.

    Args:
        path: Explicit ``.env`` path; None searches from the working directory

    Returns:
        True if a file was found and loaded
    """
    dotenv_path = path if path is not None else find_dotenv(usecwd=True)
    loaded = load_dotenv(dotenv_path=dotenv_path, override=False)
    if loaded:
        logger.debug(f"Loaded environment file {dotenv_path}")
    return loaded


def get_env_var(name: str, default: str | None = None) -> str | None:
    """Return an environment variable, or ``default`` when unset."""
    return os.environ.get(name, default)


def substitute_env_vars(text: str) -> str:
    """Replace every ``${VAR_NAME}`` in text with its environment value.

    Args:
        text: Raw configuration text

    Returns:
        Text with all references substituted

    Raises:
        ConfigurationError: If a referenced variable is not set
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        value = os.environ.get(name)
        if value is None:
            raise ConfigurationError(
                name, f"Environment variable '{name}' is referenced but not set"
            )
        return value

    return ENV_VAR_PATTERN.sub(_replace, text)
