"""
Retry engine для повторных попыток с фиксированной задержкой.

Включает:
- Явную state machine (ATTEMPTING / SUCCEEDED / RETRYING / EXHAUSTED)
- Классификацию ошибок по атрибутам retryable/fatal
- Постоянную задержку между попытками
"""

import logging
from enum import Enum

from .config import RetryConfig

logger = logging.getLogger(__name__)


class RetryState(str, Enum):
    """Состояния одного логического вызова."""
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    RETRYING = "retrying"
    EXHAUSTED = "exhausted"


class RetryEngine:
    """
    Счётчик попыток и переходы состояний для одного логического вызова.

    Не потокобезопасен: на каждый вызов создаётся свой экземпляр.

    Examples:
        >>> engine = RetryEngine(RetryConfig(max_retries=3, delay=0.5))
        >>> if engine.should_retry(error):
        >>>     engine.mark_retrying()
        >>>     time.sleep(engine.get_wait_time())
        >>>     engine.increment()
    """

    def __init__(self, config: RetryConfig):
        """
        Args:
            config: Конфигурация retry
        """
        self.config = config
        self._attempt = 0
        self._state = RetryState.ATTEMPTING

    def should_retry(self, error: Exception) -> bool:
        """
        Решить нужен ли retry.

        Args:
            error: Исключение последней попытки

        Returns:
            True если ошибка временная и бюджет попыток не исчерпан
        """
        # Фатальные ошибки НЕ ретраим
        if getattr(error, 'fatal', False):
            return False

        # Только временные ошибки
        if not getattr(error, 'retryable', False):
            return False

        # Проверка лимита попыток (не превысит ли следующая попытка лимит)
        return self._attempt + 1 < self.config.max_attempts

    def get_wait_time(self) -> float:
        """Секунды до следующей попытки (фиксированная задержка)."""
        return self.config.delay

    def mark_succeeded(self):
        """ATTEMPTING -> SUCCEEDED."""
        self._transition(RetryState.SUCCEEDED)

    def mark_retrying(self):
        """ATTEMPTING -> RETRYING."""
        self._transition(RetryState.RETRYING)

    def mark_exhausted(self):
        """ATTEMPTING -> EXHAUSTED."""
        self._transition(RetryState.EXHAUSTED)

    def increment(self):
        """RETRYING -> ATTEMPTING, счётчик попыток +1."""
        if self._state is not RetryState.RETRYING:
            raise RuntimeError(f"cannot start next attempt from state {self._state.value}")
        self._attempt += 1
        self._state = RetryState.ATTEMPTING

    def reset(self):
        """Сбросить счётчик и состояние."""
        self._attempt = 0
        self._state = RetryState.ATTEMPTING

    def _transition(self, target: RetryState):
        if self._state is not RetryState.ATTEMPTING:
            raise RuntimeError(
                f"invalid transition {self._state.value} -> {target.value}"
            )
        logger.debug("Attempt %d: %s", self._attempt + 1, target.value)
        self._state = target

    @property
    def attempt(self) -> int:
        """Текущая попытка (с нуля)."""
        return self._attempt

    @property
    def state(self) -> RetryState:
        """Текущее состояние."""
        return self._state

    @property
    def is_finished(self) -> bool:
        """Вызов завершён (успехом или исчерпанием)."""
        return self._state in (RetryState.SUCCEEDED, RetryState.EXHAUSTED)
