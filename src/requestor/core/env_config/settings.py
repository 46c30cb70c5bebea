"""
Pydantic settings model for environment configuration.
"""

from typing import Optional, Literal
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RequestorSettings(BaseSettings):
    """
    Client configuration from environment variables.

    Reads from:
    1. Explicit keyword arguments
    2. Environment variables (REQUESTOR_*)
    3. .env file
    4. Defaults

    Example .env file:
        REQUESTOR_TIMEOUT=10
        REQUESTOR_MAX_RETRIES=3
        REQUESTOR_RETRY_DELAY=0.5
        REQUESTOR_DISABLE_KEEP_ALIVES=false
        REQUESTOR_PROXY_URL=localhost:3128
        REQUESTOR_LOG_ENABLED=true
        REQUESTOR_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix='REQUESTOR_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # Retry / timeout
    max_retries: int = Field(default=1, ge=0, description="Max attempts per call")
    retry_delay: float = Field(default=1.0, ge=0, description="Fixed delay between attempts (0 -> 1s)")
    timeout: float = Field(default=0, ge=0, description="Per-attempt timeout, 0 = unlimited")

    # Transport
    disable_keep_alives: bool = Field(default=True)
    max_connections_per_host: int = Field(default=0, ge=0)
    max_idle_connections_per_host: int = Field(default=10, ge=0)
    max_idle_connections: int = Field(default=10, ge=0)
    idle_connection_timeout: float = Field(default=0, ge=0)

    # TLS
    tls_verify: bool = Field(default=True)
    tls_ca_bundle: Optional[str] = Field(default=None, description="CA bundle path, overrides tls_verify")
    tls_cert: Optional[str] = Field(default=None, description="Client certificate path")
    tls_key: Optional[str] = Field(default=None, description="Client key path")

    # Proxy
    proxy_url: Optional[str] = Field(default=None, description="host:port")
    proxy_scheme: Literal["http", "https"] = Field(default="http")
    proxy_username: str = Field(default="")
    proxy_password: SecretStr = Field(default=SecretStr(""))

    # Logging
    log_enabled: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="text")
    log_enable_console: bool = Field(default=True)
    log_file_path: Optional[str] = None

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lower-case level names."""
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode='after')
    def validate_tls_key(self) -> 'RequestorSettings':
        """A client key makes no sense without a certificate."""
        if self.tls_key and not self.tls_cert:
            raise ValueError("tls_key requires tls_cert")
        return self
