# src/requestor/core/transport.py
"""
Connection transport shared by all calls of a Client.

Each thread gets its own requests.Session, so the transport can be used
concurrently. Sessions are built from a TransportConfig and rebuilt when
refresh() receives a different config.
"""
import logging
import socket
import threading
import time
import weakref
from typing import Optional, Set

import requests
from requests.adapters import HTTPAdapter

from .config import TransportConfig
from .request_builder import OutgoingRequest

logger = logging.getLogger(__name__)

# Body chunk size when reading under a deadline
_CHUNK_SIZE = 8192


class _Deadline:
    """Monotonic deadline shared by all phases of one attempt."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self.expires_at = time.monotonic() + timeout

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def remaining(self) -> float:
        """
        Seconds left.

        Raises:
            requests.exceptions.Timeout: Deadline already passed
        """
        left = self.expires_at - time.monotonic()
        if left <= 0:
            raise requests.exceptions.Timeout(f"Attempt deadline of {self.timeout}s exceeded")
        return left


def _shutdown_socket(response: requests.Response) -> None:
    """Unblock a body read stuck on a slow server."""
    connection = getattr(response.raw, 'connection', None)
    sock = getattr(connection, 'sock', None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        # Already closed by the other side
        logger.debug("Socket shutdown after deadline failed: %s", e)


def _read_body(response: requests.Response, deadline: Optional[_Deadline]) -> None:
    """
    Load the body of a streamed response.

    Under a deadline the body is read in chunks; a watchdog shuts the
    socket down when the deadline passes so a blocked read returns.
    """
    if deadline is None:
        response.content  # loads the body
        return

    watchdog = threading.Timer(max(deadline.expires_at - time.monotonic(), 0), _shutdown_socket, (response,))
    watchdog.daemon = True
    watchdog.start()

    chunks = []
    try:
        for chunk in response.iter_content(_CHUNK_SIZE):
            chunks.append(chunk)
            deadline.remaining()
        deadline.remaining()
    except requests.exceptions.RequestException as e:
        response.close()
        if deadline.expired:
            raise requests.exceptions.ReadTimeout(
                f"Response body not read within {deadline.timeout}s"
            ) from e
        raise
    finally:
        watchdog.cancel()

    response._content = b"".join(chunks)


class Transport:
    """
    Thread-safe pooled transport.

    Features:
        - Thread-local session isolation
        - Lazy initialization
        - Explicit, idempotent refresh() when the config changes
        - Idle-connection eviction
        - Automatic cleanup of all sessions

    Example:
        >>> transport = Transport(TransportConfig(max_connections_per_host=4))
        >>> response = transport.send(request, timeout=10)
        >>> transport.close()
    """

    def __init__(self, config: Optional[TransportConfig] = None):
        """
        Args:
            config: Transport configuration (defaults if None)
        """
        self._config = config or TransportConfig()
        self._local = threading.local()

        # Bumped on every effective refresh; stale thread-local sessions get rebuilt
        self._generation = 0

        # Track all created sessions for cleanup (using weak references)
        self._all_sessions: Set[weakref.ref] = set()
        self._sessions_lock = threading.Lock()

    @property
    def config(self) -> TransportConfig:
        """Current transport configuration."""
        return self._config

    def refresh(self, config: TransportConfig) -> bool:
        """
        Apply a transport configuration.

        Idempotent: an equal config changes nothing. A different config
        closes every pooled session; new ones are built on next use.

        Args:
            config: New configuration

        Returns:
            True if the configuration changed
        """
        with self._sessions_lock:
            if config == self._config:
                return False
            self._config = config
            self._generation += 1

        logger.debug("Transport configuration changed, dropping pooled sessions")
        self.close()
        return True

    def _create_session(self) -> requests.Session:
        """Create a session configured from the current config."""
        config = self._config
        session = requests.Session()

        # Connection pool adapter
        adapter = HTTPAdapter(
            pool_connections=config.pool_connections,
            pool_maxsize=config.pool_maxsize,
            pool_block=config.pool_block,
            max_retries=0  # Ретраи через RetryEngine
        )
        session.mount('http://', adapter)
        session.mount('https://', adapter)

        # Only caller headers go on the wire, no requests defaults
        session.headers.clear()

        # Proxy applies to both schemes
        if config.proxy is not None:
            proxy_url = config.proxy.as_url()
            session.proxies.update({'http': proxy_url, 'https': proxy_url})

        # Ignore HTTP(S)_PROXY etc. so that only explicit config applies
        session.trust_env = False

        return session

    def get_session(self) -> requests.Session:
        """
        Get thread-local session, creating it lazily if needed.

        Returns:
            requests.Session instance for current thread
        """
        session = getattr(self._local, 'session', None)
        if session is None or getattr(self._local, 'generation', -1) != self._generation:
            if session is not None:
                session.close()

            session = self._create_session()
            self._local.session = session
            self._local.generation = self._generation
            self._local.last_used = time.monotonic()

            with self._sessions_lock:
                ref = weakref.ref(session, self._cleanup_weak_ref)
                self._all_sessions.add(ref)

        return session

    def _cleanup_weak_ref(self, ref: weakref.ref):
        """Remove dead weak reference from tracking set."""
        with self._sessions_lock:
            self._all_sessions.discard(ref)

    def _evict_idle(self, session: requests.Session) -> None:
        """Drop pooled connections that sat idle longer than the timeout."""
        idle_timeout = self._config.idle_connection_timeout
        if not idle_timeout:
            return

        last_used = getattr(self._local, 'last_used', None)
        if last_used is not None and time.monotonic() - last_used > idle_timeout:
            logger.debug("Evicting connections idle for more than %ss", idle_timeout)
            # Pools stay usable after close(), they are just emptied
            for adapter in session.adapters.values():
                adapter.close()

    def send(self, request: OutgoingRequest, timeout: Optional[float] = None) -> requests.Response:
        """
        Execute one request.

        The timeout is one deadline for the whole attempt: connect, every
        redirect hop and reading the response body. The body is read
        before returning.

        Args:
            request: Built request
            timeout: Attempt deadline in seconds (None = unlimited)

        Returns:
            requests.Response with its body loaded

        Raises:
            requests.exceptions.Timeout: Deadline passed
            requests.exceptions.RequestException: Any other transport failure
        """
        config = self._config
        session = self.get_session()
        self._evict_idle(session)
        deadline = _Deadline(timeout) if timeout else None

        headers = request.wire_headers()
        if config.disable_keep_alives:
            headers['Connection'] = 'close'

        prepared = session.prepare_request(
            requests.Request(
                method=request.method,
                url=request.url,
                headers=headers,
                data=request.body or None,
            )
        )

        send_kwargs = {'stream': True}
        if config.tls is not None:
            send_kwargs['verify'] = config.tls.verify
            if config.tls.cert is not None:
                send_kwargs['cert'] = config.tls.cert
        if config.proxy is not None:
            send_kwargs['proxies'] = dict(session.proxies)

        try:
            response = session.send(
                prepared,
                timeout=deadline.remaining() if deadline else None,
                allow_redirects=False,
                **send_kwargs
            )
            response = self._follow_redirects(session, response, deadline, send_kwargs)
            _read_body(response, deadline)
            return response
        finally:
            self._local.last_used = time.monotonic()

    @staticmethod
    def _follow_redirects(
        session: requests.Session,
        response: requests.Response,
        deadline: Optional['_Deadline'],
        send_kwargs: dict,
    ) -> requests.Response:
        """Follow redirects one hop at a time so each hop gets the time that is left."""
        history = []
        while session.get_redirect_target(response):
            if len(history) >= session.max_redirects:
                response.close()
                raise requests.exceptions.TooManyRedirects(
                    f"Exceeded {session.max_redirects} redirects.", response=response
                )
            history.append(response)
            hop = session.resolve_redirects(
                response,
                response.request,
                timeout=deadline.remaining() if deadline else None,
                **send_kwargs
            )
            response = next(hop)
            hop.close()

        if history:
            response.history = history
        return response

    def close_current_session(self):
        """Close session for current thread only."""
        session = getattr(self._local, 'session', None)
        if session is not None:
            try:
                session.close()
            finally:
                self._local.session = None

    def close(self):
        """
        Close all sessions from all threads.

        Safe to call multiple times.
        """
        self.close_current_session()

        with self._sessions_lock:
            sessions_copy = list(self._all_sessions)
            self._all_sessions.clear()

        for session_ref in sessions_copy:
            session = session_ref()
            if session is not None:
                session.close()

    def get_active_sessions_count(self) -> int:
        """Number of live sessions across all threads."""
        with self._sessions_lock:
            return sum(1 for ref in self._all_sessions if ref() is not None)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
