"""
Configuration loading for requestor.

Load ClientConfig from REQUESTOR_* environment variables, a .env file,
or a JSON/YAML config file.

Example:
    >>> from requestor.core.env_config import load_from_env, load_from_file
    >>>
    >>> config = load_from_env()
    >>> config = load_from_env(env_file="prod.env", max_retries=5)
    >>> config = load_from_file("requestor.yaml")
"""

from .settings import RequestorSettings
from .loader import load_from_env, load_from_file, settings_to_config

__all__ = [
    "RequestorSettings",
    "load_from_env",
    "load_from_file",
    "settings_to_config",
]
