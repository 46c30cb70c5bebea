"""Core requestor модули."""

from .config import (
    RetryConfig,
    TLSConfig,
    ProxyConfig,
    TransportConfig,
    ClientConfig,
)
from .encoding import (
    Encoding,
    EncodedBody,
    JSONEncoder,
    FormEncoder,
    canonical_header_key,
    select_encoding,
    encoder_for,
    encode_payload,
)
from .request_builder import OutgoingRequest, build_request, merge_query, validate_url
from .retry_engine import RetryEngine, RetryState
from .transport import Transport
from .dispatcher import Dispatcher, LogicalCall
from .client import Client, new
from .exceptions import (
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
    classify_requests_exception,
)

__all__ = [
    # Config
    "RetryConfig",
    "TLSConfig",
    "ProxyConfig",
    "TransportConfig",
    "ClientConfig",
    # Encoding
    "Encoding",
    "EncodedBody",
    "JSONEncoder",
    "FormEncoder",
    "canonical_header_key",
    "select_encoding",
    "encoder_for",
    "encode_payload",
    # Request building
    "OutgoingRequest",
    "build_request",
    "merge_query",
    "validate_url",
    # Retry / dispatch
    "RetryEngine",
    "RetryState",
    "Transport",
    "Dispatcher",
    "LogicalCall",
    # Client
    "Client",
    "new",
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
    "classify_requests_exception",
]
