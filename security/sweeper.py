# apps/security/sweeper.py
"""
Фоновая очистка таблиц в памяти процесса.

Таблицы rate limiter-а и in-memory checkout-токенов живут в памяти
конкретного процесса, поэтому Celery-воркер их не видит. Очистка
идёт в отдельном daemon-потоке с фиксированным интервалом и не
блокирует обработку запросов.
"""

import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """
    Daemon-поток, вызывающий зарегистрированные функции очистки.

    Ошибка одной функции логируется и не останавливает остальные.
    """

    def __init__(self, interval: float = 60.0) -> None:
        self.interval = interval
        self._callbacks: List[Callable[[], int]] = []
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def register(self, callback: Callable[[], int]) -> None:
        self._callbacks.append(callback)

    def run_once(self) -> int:
        """Один проход очистки. Returns: сколько записей удалено всего."""
        removed = 0
        for callback in list(self._callbacks):
            try:
                removed += callback() or 0
            except Exception:
                logger.exception(f"Ошибка очистки в {callback!r}")
        return removed

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name='security-sweeper',
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Фоновая очистка запущена (интервал {self.interval:.0f} сек)")

    def stop(self, timeout: float = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.run_once()
