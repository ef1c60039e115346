"""Configuration loading and validation for servekit.

Main components:
- servekit.config.loader: ConfigLoader for YAML files and build_server_config
  for merging options objects over defaults
- Environment variable substitution (${VAR_NAME} pattern)
- Default configuration values
"""

from servekit.config.env_loader import get_env_var, load_env_file, substitute_env_vars

__all__ = [
    "substitute_env_vars",
    "get_env_var",
    "load_env_file",
]
