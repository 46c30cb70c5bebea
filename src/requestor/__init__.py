"""requestor - HTTP client with per-verb methods, body encoding and fixed-delay retries."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core.client import Client, new
from .core.config import (
    ClientConfig,
    RetryConfig,
    TransportConfig,
    TLSConfig,
    ProxyConfig,
)
from .core.encoding import Encoding
from .core.transport import Transport
from .core.exceptions import (
    RequestorException,
    TransportError,
    TimeoutError,
    ConnectionError,
    ProxyError,
    SSLError,
    FatalError,
    InvalidURLError,
    InvalidHeaderError,
    DataShapeError,
    EncodingError,
    ConfigurationError,
    NoResponseError,
)
from .core.logging import LoggingConfig
from .core.env_config import load_from_env, load_from_file

# Users can configure logging themselves using logging.getLogger('requestor')
logging.getLogger('requestor').addHandler(logging.NullHandler())

try:
    __version__ = version("requestor")
except PackageNotFoundError:
    # Package is not installed (development mode)
    __version__ = "0.0.0-dev"

__all__ = [
    # Core
    "Client",
    "new",
    "Transport",
    "Encoding",

    # Config
    "ClientConfig",
    "RetryConfig",
    "TransportConfig",
    "TLSConfig",
    "ProxyConfig",
    "LoggingConfig",
    "load_from_env",
    "load_from_file",

    # Exceptions
    "RequestorException",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "ProxyError",
    "SSLError",
    "FatalError",
    "InvalidURLError",
    "InvalidHeaderError",
    "DataShapeError",
    "EncodingError",
    "ConfigurationError",
    "NoResponseError",

    # Version
    "__version__",
]
