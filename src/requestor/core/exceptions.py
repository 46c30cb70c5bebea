"""
Иерархия исключений requestor.

Классификация:
- TransportError (retryable=True) - сетевые сбои, ретраятся движком
- FatalError (fatal=True) - структурные ошибки запроса, НЕ ретраить никогда
"""

from typing import Optional
import requests

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class RequestorException(Exception):
    """Базовое исключение requestor."""

    retryable: bool = False
    fatal: bool = False

    def __init__(self, message: str, **kwargs):
        self.message = message
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ТРАНСПОРТНЫЕ ОШИБКИ (retryable=True)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TransportError(RequestorException):
    """
    Ошибка транспорта - можно ретраить.

    Примеры: таймауты, connection refused, обрыв соединения.

    Args:
        message: Сообщение об ошибке
        url: URL запроса
        cause: Исходное исключение транспорта
    """
    retryable = True

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        cause: Optional[BaseException] = None
    ):
        self.url = url
        self.cause = cause
        full_message = message
        if url:
            full_message += f" (url: {url})"
        super().__init__(full_message)

class TimeoutError(TransportError):
    """Таймаут запроса (connect, redirect или чтение тела)."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        cause: Optional[BaseException] = None
    ):
        self.timeout = timeout
        msg = message
        if timeout:
            msg += f" (timeout: {timeout}s)"
        super().__init__(msg, url, cause)

class ConnectionError(TransportError):
    """
    Ошибка подключения.

    Примеры:
    - Connection refused
    - Connection reset
    - Network unreachable
    """
    pass

class ProxyError(ConnectionError):
    """Ошибка прокси."""
    pass

class SSLError(ConnectionError):
    """Ошибка TLS handshake или проверки сертификата."""
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ФАТАЛЬНЫЕ ОШИБКИ (fatal=True)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class FatalError(RequestorException):
    """
    Фатальная ошибка - НЕ ретраить.

    Повторится идентично на каждой попытке, поэтому всплывает сразу.
    """
    fatal = True

class InvalidURLError(FatalError):
    """
    Невалидный URL (битый host, недопустимые символы, плохой порт).

    Args:
        url: URL, который не удалось разобрать
        reason: Что именно не так
    """

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason

        msg = f"Invalid URL {url!r}"
        if reason:
            msg += f": {reason}"

        super().__init__(msg)

class DataShapeError(FatalError):
    """
    Payload не подходит под контракт выбранного encoder.

    Form encoding принимает только mapping str -> list[str].
    """

    def __init__(
        self,
        message: str = "payload must be a string-to-string-list mapping",
        payload_type: Optional[type] = None
    ):
        self.payload_type = payload_type
        msg = message
        if payload_type is not None:
            msg += f" (got {payload_type.__name__})"
        super().__init__(msg)

class EncodingError(FatalError):
    """
    Payload не сериализуется в JSON.

    Примеры: циклические ссылки, неподдерживаемые типы, NaN.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)

class InvalidHeaderError(FatalError):
    """
    Невалидный заголовок (CR/LF в имени или значении, пустое имя).

    Args:
        name: Имя заголовка
    """

    def __init__(self, name: str, reason: str = "illegal characters"):
        self.name = name
        super().__init__(f"Invalid header {name!r}: {reason}")

class ConfigurationError(FatalError):
    """Ошибка конфигурации."""
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# СПЕЦИАЛЬНЫЕ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class NoResponseError(RequestorException):
    """
    Цикл попыток завершился без ответа и без ошибки.

    При корректном транспорте не возникает.
    """

    def __init__(self, url: Optional[str] = None, attempts: int = 0):
        self.url = url
        self.attempts = attempts

        msg = "No response received"
        if url:
            msg += f" for {url}"
        if attempts:
            msg += f" after {attempts} attempt(s)"

        super().__init__(msg)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def classify_requests_exception(
    exc: Exception,
    url: str,
    timeout: Optional[float] = None
) -> RequestorException:
    """
    Конвертировать requests.exceptions в наши исключения.

    Args:
        exc: Исключение из requests
        url: URL запроса
        timeout: Таймаут попытки (для сообщения)

    Returns:
        Наше исключение с правильной классификацией

    Examples:
        >>> exc = requests.exceptions.ConnectTimeout()
        >>> our_exc = classify_requests_exception(exc, "https://example.com")
        >>> assert isinstance(our_exc, TimeoutError)
        >>> assert our_exc.retryable == True
    """

    # URL-ошибки, которые requests находит только при отправке
    if isinstance(exc, (
        requests.exceptions.InvalidSchema,
        requests.exceptions.MissingSchema,
        requests.exceptions.InvalidURL,
    )):
        return InvalidURLError(url, str(exc))

    elif isinstance(exc, requests.exceptions.InvalidHeader):
        return InvalidHeaderError(str(exc.args[0]) if exc.args else "", "rejected by transport")

    elif isinstance(exc, requests.exceptions.Timeout):
        return TimeoutError("Request timeout", url, timeout, cause=exc)

    elif isinstance(exc, requests.exceptions.ProxyError):
        return ProxyError("Proxy error", url, cause=exc)

    elif isinstance(exc, requests.exceptions.SSLError):
        return SSLError("TLS error", url, cause=exc)

    elif isinstance(exc, requests.exceptions.ConnectionError):
        return ConnectionError("Connection error", url, cause=exc)

    elif isinstance(exc, (
        requests.exceptions.ChunkedEncodingError,
        requests.exceptions.ContentDecodingError,
    )):
        # Обрыв при чтении тела - тоже транспорт
        return TransportError(f"Body read failed: {exc}", url, cause=exc)

    elif isinstance(exc, requests.exceptions.RequestException):
        return TransportError(f"Request failed: {exc}", url, cause=exc)

    else:
        # Неизвестная ошибка - оборачиваем
        return RequestorException(str(exc))
