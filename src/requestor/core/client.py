# src/requestor/core/client.py
from dataclasses import replace
from typing import Any, Callable, Optional
import itertools
import threading
import time

import requests

from .config import ClientConfig, ProxyConfig, TLSConfig
from .dispatcher import Dispatcher, LogicalCall
from .encoding import MultiValueMapping
from .logging import RequestorLogger
from .transport import Transport

# Suffix of the per-client logger name
_client_ids = itertools.count(1)


class Client:
    """
    HTTP клиент с методами на каждый HTTP глагол и повторными попытками.

    Features:
        - Connection pooling (общий потокобезопасный Transport)
        - Выбор кодирования тела по Content-Type (JSON или form)
        - Фиксированная задержка между повторами транспортных ошибок
        - Setter-методы подменяют immutable конфиг; изменения применяются
          перед следующим вызовом
        - Контекстный менеджер для освобождения соединений

    Конфиг нельзя менять, пока идут запросы из других потоков.

    Клиенты с общим Transport должны использовать один TransportConfig:
    перед каждым вызовом транспорт приводится к конфигу клиента, и разные
    конфиги пересоздают сессии всех потоков. Без явного config клиент
    берёт конфиг переданного транспорта.

    Example:
        >>> client = Client()
        >>> client.set_max_retries(3, 0.5)
        >>> response = client.post(
        ...     "https://api.example.com/users",
        ...     headers={"Content-Type": ["application/json"]},
        ...     data={"name": "John"},
        ... )
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Args:
            config: ClientConfig (defaults if None)
            transport: Transport to share between clients (own one if None)
            sleep: Delay function between attempts (time.sleep if None)
        """
        if config is None:
            config = ClientConfig()
            if transport is not None:
                config = replace(config, transport=transport.config)
        self._config = config
        self._owns_transport = transport is None
        self._transport = transport or Transport(self._config.transport)
        self._sleep = sleep or time.sleep
        self._config_lock = threading.Lock()

        self._logger_name = f"requestor.client.{next(_client_ids)}"
        self._logger: Optional[RequestorLogger] = None
        if self._config.logging is not None:
            self._logger = RequestorLogger(self._config.logging, name=self._logger_name)

    # ==================== Жизненный цикл ====================

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self):
        """Закрывает соединения (если транспорт свой) и хендлеры логгера."""
        if self._logger is not None:
            self._logger.close()
        if self._owns_transport:
            self._transport.close()

    # ==================== Конфигурация ====================

    def _replace_config(self, config: ClientConfig):
        with self._config_lock:
            if config.logging != self._config.logging:
                if self._logger is not None:
                    self._logger.close()
                self._logger = (
                    RequestorLogger(config.logging, name=self._logger_name) if config.logging else None
                )
            self._config = config

    def _replace_transport(self, **changes):
        self._replace_config(self._config.with_transport(**changes))

    def set_tls_client_config(self, tls: Optional[TLSConfig]):
        """
        Устанавливает TLS настройки.

        Args:
            tls: TLSConfig или None для настроек по умолчанию
        """
        self._replace_transport(tls=tls)

    def disable_keep_alive(self, disable: bool):
        """Отключает (True) или включает (False) keep-alive."""
        self._replace_transport(disable_keep_alives=disable)

    def set_max_connections_per_host(self, count: int):
        """Лимит соединений на хост (0 = без лимита)."""
        self._replace_transport(max_connections_per_host=count)

    def set_max_idle_connections_per_host(self, count: int):
        """Сколько idle соединений держать на хост."""
        self._replace_transport(max_idle_connections_per_host=count)

    def set_max_idle_connections(self, count: int):
        """Сколько хостовых пулов держать всего."""
        self._replace_transport(max_idle_connections=count)

    def set_idle_connection_timeout(self, seconds: float):
        """Таймаут простоя соединения (0 = не сбрасывать)."""
        self._replace_transport(idle_connection_timeout=seconds)

    def set_timeout(self, seconds: float):
        """Таймаут одной попытки: connect, редиректы и чтение тела (0 = без ограничения)."""
        self._replace_config(self._config.with_timeout(seconds))

    def set_max_retries(self, retries: int, delay: float):
        """
        Устанавливает количество попыток и задержку между ними.

        Args:
            retries: Максимум попыток (0 и 1 = без повторов)
            delay: Задержка в секундах (0 заменяется на 1)
        """
        self._replace_config(self._config.with_retries(retries, delay))

    def set_http_proxy(self, proxy_url: str, username: str = "", password: str = ""):
        """
        Устанавливает HTTP прокси.

        Args:
            proxy_url: IP:PORT или HOSTNAME:PORT
            username: Логин (опционально)
            password: Пароль (опционально)
        """
        self._replace_transport(proxy=ProxyConfig(proxy_url, "http", username, password))

    def set_https_proxy(self, proxy_url: str, username: str = "", password: str = ""):
        """Устанавливает HTTPS прокси. Аргументы как у set_http_proxy."""
        self._replace_transport(proxy=ProxyConfig(proxy_url, "https", username, password))

    def clear_proxy(self):
        """Убирает прокси."""
        self._replace_transport(proxy=None)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def max_retries_on_error(self) -> int:
        return self._config.retry.max_retries

    @property
    def retry_delay(self) -> float:
        return self._config.retry.delay

    @property
    def timeout(self) -> float:
        return self._config.timeout

    @property
    def disable_keep_alives(self) -> bool:
        return self._config.transport.disable_keep_alives

    @property
    def max_connections_per_host(self) -> int:
        return self._config.transport.max_connections_per_host

    @property
    def max_idle_connections_per_host(self) -> int:
        return self._config.transport.max_idle_connections_per_host

    @property
    def max_idle_connections(self) -> int:
        return self._config.transport.max_idle_connections

    @property
    def idle_connection_timeout(self) -> float:
        return self._config.transport.idle_connection_timeout

    @property
    def tls(self) -> Optional[TLSConfig]:
        return self._config.transport.tls

    @property
    def proxy(self) -> Optional[ProxyConfig]:
        return self._config.transport.proxy

    # ==================== Запросы ====================

    def _request(
        self,
        method: str,
        url: str,
        headers: Optional[MultiValueMapping] = None,
        query: Optional[MultiValueMapping] = None,
        data: Any = None,
    ) -> requests.Response:
        config = self._config
        logger = self._logger

        # Изменения конфига вступают в силу до первой попытки
        self._transport.refresh(config.transport)

        dispatcher = Dispatcher(self._transport, sleep=self._sleep, logger=logger)
        return dispatcher.dispatch(
            LogicalCall(method, url, headers, query, data),
            config.retry,
            timeout=config.request_timeout,
        )

    def get(self, url: str, headers: Optional[MultiValueMapping] = None,
            query: Optional[MultiValueMapping] = None) -> requests.Response:
        """Выполняет GET запрос."""
        return self._request("GET", url, headers, query)

    def head(self, url: str, headers: Optional[MultiValueMapping] = None,
             query: Optional[MultiValueMapping] = None) -> requests.Response:
        """Выполняет HEAD запрос."""
        return self._request("HEAD", url, headers, query)

    def post(self, url: str, headers: Optional[MultiValueMapping] = None,
             query: Optional[MultiValueMapping] = None, data: Any = None) -> requests.Response:
        """
        Выполняет POST запрос.

        Args:
            url: Полный URL
            headers: Заголовки, имя -> список значений
            query: Query параметры, имя -> список значений
            data: Payload; кодируется по Content-Type (JSON по умолчанию)

        Returns:
            Объект Response (любой HTTP статус)
        """
        return self._request("POST", url, headers, query, data)

    def put(self, url: str, headers: Optional[MultiValueMapping] = None,
            query: Optional[MultiValueMapping] = None, data: Any = None) -> requests.Response:
        """Выполняет PUT запрос. Аргументы как у post."""
        return self._request("PUT", url, headers, query, data)

    def patch(self, url: str, headers: Optional[MultiValueMapping] = None,
              query: Optional[MultiValueMapping] = None, data: Any = None) -> requests.Response:
        """Выполняет PATCH запрос. Аргументы как у post."""
        return self._request("PATCH", url, headers, query, data)

    def delete(self, url: str, headers: Optional[MultiValueMapping] = None,
               query: Optional[MultiValueMapping] = None, data: Any = None) -> requests.Response:
        """Выполняет DELETE запрос. Аргументы как у post."""
        return self._request("DELETE", url, headers, query, data)

    def connect(self, url: str, headers: Optional[MultiValueMapping] = None,
                query: Optional[MultiValueMapping] = None) -> requests.Response:
        """Выполняет CONNECT запрос."""
        return self._request("CONNECT", url, headers, query)

    def options(self, url: str, headers: Optional[MultiValueMapping] = None,
                query: Optional[MultiValueMapping] = None) -> requests.Response:
        """Выполняет OPTIONS запрос."""
        return self._request("OPTIONS", url, headers, query)

    def trace(self, url: str, headers: Optional[MultiValueMapping] = None,
              query: Optional[MultiValueMapping] = None) -> requests.Response:
        """Выполняет TRACE запрос."""
        return self._request("TRACE", url, headers, query)

    def custom(self, url: str, method: str, headers: Optional[MultiValueMapping] = None,
               query: Optional[MultiValueMapping] = None, data: Any = None) -> requests.Response:
        """
        Выполняет запрос с произвольным методом, который принимает сервер.

        Args:
            url: Полный URL
            method: HTTP метод (например "PURGE")
            headers: Заголовки
            query: Query параметры
            data: Payload

        Returns:
            Объект Response
        """
        return self._request(method, url, headers, query, data)


def new(
    config: Optional[ClientConfig] = None,
    transport: Optional[Transport] = None,
    **kwargs
) -> Client:
    """
    Создать клиент с настройками по умолчанию.

    Defaults: timeout 0 (без ограничения), keep-alive выключен,
    одна попытка, задержка 1с.

    Args:
        config: Готовый ClientConfig (kwargs игнорируются)
        transport: Общий Transport
        **kwargs: Параметры ClientConfig.create()

    Example:
        >>> client = new(timeout=10, max_retries=3)
    """
    if config is None:
        config = ClientConfig.create(**kwargs)
    return Client(config=config, transport=transport)
