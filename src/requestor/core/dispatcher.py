# src/requestor/core/dispatcher.py
"""
Dispatch engine: turns one logical call into one or more transport attempts.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from .config import RetryConfig
from .encoding import MultiValueMapping, encode_payload
from .exceptions import (
    FatalError,
    NoResponseError,
    RequestorException,
    classify_requests_exception,
)
from .logging.filters import clear_correlation_id, set_correlation_id
from .request_builder import build_request
from .retry_engine import RetryEngine, RetryState
from .transport import Transport
from ..utils.sanitizer import mask_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogicalCall:
    """
    What the caller asked for. Built once per verb invocation.

    Attributes:
        method: HTTP method
        url: Target URL
        headers: name -> values
        query: name -> values
        data: Payload (None = no body)
    """
    method: str
    url: str
    headers: Optional[MultiValueMapping] = None
    query: Optional[MultiValueMapping] = None
    data: Any = None


class Dispatcher:
    """
    Runs the retry state machine for a logical call.

    Structural errors (bad URL, bad payload shape, unserializable payload)
    are raised before any network attempt. Transport errors are retried
    with a fixed delay until the attempt budget runs out; then the last
    error is raised as is.

    Example:
        >>> dispatcher = Dispatcher(Transport())
        >>> response = dispatcher.dispatch(
        ...     LogicalCall("GET", "https://api.example.com/users"),
        ...     RetryConfig(max_retries=3, delay=0.5),
        ...     timeout=10,
        ... )
    """

    def __init__(
        self,
        transport: Transport,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[Any] = None,
    ):
        """
        Args:
            transport: Transport used for every attempt
            sleep: Called with the delay between attempts
            logger: RequestorLogger for structured call logs (optional)
        """
        self._transport = transport
        self._sleep = sleep
        self._logger = logger

    def _attempt(self, call: LogicalCall, timeout: Optional[float]) -> requests.Response:
        # Body is rebuilt on every attempt
        encoded = encode_payload(call.headers, call.data)
        request = build_request(call.method, call.url, call.headers, call.query, encoded)
        return self._transport.send(request, timeout=timeout)

    def dispatch(
        self,
        call: LogicalCall,
        retry: RetryConfig,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """
        Execute a logical call.

        Args:
            call: Request description
            retry: Retry budget and delay
            timeout: Per-attempt timeout (None = unlimited)

        Returns:
            First usable response (any HTTP status)

        Raises:
            InvalidURLError, InvalidHeaderError, DataShapeError, EncodingError:
                immediately, without retry
            TransportError: last attempt's error once retries are exhausted
            NoResponseError: loop ended without response or error
        """
        correlation_id = str(uuid.uuid4())
        set_correlation_id(correlation_id)
        try:
            return self._run(call, retry, timeout, correlation_id)
        finally:
            clear_correlation_id()

    def _run(
        self,
        call: LogicalCall,
        retry: RetryConfig,
        timeout: Optional[float],
        correlation_id: str,
    ) -> requests.Response:
        engine = RetryEngine(retry)
        safe_url = mask_url(call.url)
        start_time = time.time()

        response: Optional[requests.Response] = None
        last_error: Optional[RequestorException] = None

        self._log(
            "info", "Request started",
            method=call.method,
            url=safe_url,
            correlation_id=correlation_id,
            timeout=timeout,
            max_attempts=retry.max_attempts,
        )

        while not engine.is_finished:
            try:
                response = self._attempt(call, timeout)
            except FatalError as e:
                self._log(
                    "error", "Request rejected",
                    method=call.method,
                    url=safe_url,
                    correlation_id=correlation_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise
            except requests.exceptions.RequestException as e:
                last_error = classify_requests_exception(e, call.url, timeout)
                # Original traceback stays reachable from the classified error
                last_error.__cause__ = e
            else:
                engine.mark_succeeded()
                last_error = None
                break

            if engine.should_retry(last_error):
                engine.mark_retrying()
                wait_time = engine.get_wait_time()
                self._log(
                    "warning", "Request error (will retry)",
                    method=call.method,
                    url=safe_url,
                    correlation_id=correlation_id,
                    error=str(last_error),
                    error_type=type(last_error).__name__,
                    attempt=engine.attempt + 1,
                    max_attempts=retry.max_attempts,
                    wait_time_s=wait_time,
                )
                self._sleep(wait_time)
                engine.increment()
            else:
                engine.mark_exhausted()

        duration_ms = round((time.time() - start_time) * 1000, 2)

        if engine.state is RetryState.SUCCEEDED and response is not None:
            self._log(
                "info", "Request completed",
                method=call.method,
                url=safe_url,
                correlation_id=correlation_id,
                status_code=response.status_code,
                attempt=engine.attempt + 1,
                duration_ms=duration_ms,
            )
            return response

        if last_error is not None:
            self._log(
                "error", "Request failed",
                method=call.method,
                url=safe_url,
                correlation_id=correlation_id,
                error=str(last_error),
                error_type=type(last_error).__name__,
                attempt=engine.attempt + 1,
                max_attempts=retry.max_attempts,
                duration_ms=duration_ms,
            )
            raise last_error

        raise NoResponseError(call.url, engine.attempt + 1)

    def _log(self, level: str, message: str, **fields: Any) -> None:
        if self._logger is not None:
            getattr(self._logger, level)(message, **fields)
        else:
            logger.debug("%s %s", message, fields)
