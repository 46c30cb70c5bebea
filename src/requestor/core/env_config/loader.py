"""
Build ClientConfig from settings sources.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError
from pydantic_settings import SettingsConfigDict

from ..config import ClientConfig, ProxyConfig, TLSConfig
from ..exceptions import ConfigurationError
from ..logging import LoggingConfig
from .settings import RequestorSettings


class _FileSettings(RequestorSettings):
    """Settings read only from explicit values (config files)."""

    model_config = SettingsConfigDict(extra='forbid')

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (init_settings,)


def settings_to_config(settings: RequestorSettings) -> ClientConfig:
    """
    Convert validated settings to ClientConfig.

    Args:
        settings: RequestorSettings instance

    Returns:
        ClientConfig
    """
    tls = None
    if settings.tls_ca_bundle or settings.tls_cert or not settings.tls_verify:
        cert: Any = settings.tls_cert
        if settings.tls_cert and settings.tls_key:
            cert = (settings.tls_cert, settings.tls_key)
        tls = TLSConfig(verify=settings.tls_ca_bundle or settings.tls_verify, cert=cert)

    proxy = None
    if settings.proxy_url:
        proxy = ProxyConfig(
            url=settings.proxy_url,
            scheme=settings.proxy_scheme,
            username=settings.proxy_username,
            password=settings.proxy_password.get_secret_value(),
        )

    logging_config = None
    if settings.log_enabled:
        logging_config = LoggingConfig.create(
            level=settings.log_level,
            format=settings.log_format,
            enable_console=settings.log_enable_console,
            enable_file=bool(settings.log_file_path),
            file_path=settings.log_file_path,
        )

    return ClientConfig.create(
        timeout=settings.timeout,
        max_retries=settings.max_retries,
        retry_delay=settings.retry_delay,
        disable_keep_alives=settings.disable_keep_alives,
        max_connections_per_host=settings.max_connections_per_host,
        max_idle_connections_per_host=settings.max_idle_connections_per_host,
        max_idle_connections=settings.max_idle_connections,
        idle_connection_timeout=settings.idle_connection_timeout,
        tls=tls,
        proxy=proxy,
        logging=logging_config,
    )


def load_from_env(env_file: Optional[str] = None, **overrides) -> ClientConfig:
    """
    Load ClientConfig from environment variables.

    Priority (highest to lowest):
    1. **overrides - explicit parameters
    2. Environment variables (REQUESTOR_*)
    3. .env file (env_file or ./.env)
    4. Defaults

    Args:
        env_file: Custom .env file path
        **overrides: Settings field overrides (e.g. max_retries=5)

    Returns:
        ClientConfig

    Raises:
        ConfigurationError: Invalid value in any source

    Example:
        >>> config = load_from_env(max_retries=3, retry_delay=0.5)
    """
    kwargs: Dict[str, Any] = dict(overrides)
    if env_file is not None:
        kwargs['_env_file'] = env_file

    try:
        settings = RequestorSettings(**kwargs)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid environment configuration: {e}") from e

    return settings_to_config(settings)


def load_from_file(path: Union[str, Path]) -> ClientConfig:
    """
    Загрузить конфиг из JSON или YAML файла (по расширению).

    Ключи такие же, как у RequestorSettings (без префикса). Переменные
    окружения не читаются.

    Args:
        path: Путь к .json, .yaml или .yml файлу

    Returns:
        ClientConfig

    Raises:
        FileNotFoundError: Файл не найден
        ConfigurationError: Неизвестный формат, синтаксис или невалидные значения
        ImportError: YAML файл, а PyYAML не установлен
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == '.json':
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON syntax in {path}: {e}") from e
    elif suffix in ('.yaml', '.yml'):
        try:
            import yaml
        except ImportError:
            raise ImportError(
                "PyYAML is required to load YAML configs. "
                "Install it with: pip install requestor[yaml] or pip install pyyaml"
            )
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {path}: {e}") from e
    else:
        raise ConfigurationError(f"Unsupported config file format: {path.suffix}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    try:
        settings = _FileSettings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

    return settings_to_config(settings)
