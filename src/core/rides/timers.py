# src/core/rides/timers.py
"""
Отменяемая периодическая задача поверх asyncio.
Привязывается к жизни одного экземпляра поездки: после stop() ни один
колбэк больше не вызывается, а запущенные асинхронные колбэки отменяются.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Set, Union

from src.common.logger import get_logger, log_error

TimerCallback = Callable[[], Union[None, Awaitable[Any]]]


class RepeatingTimer:
    """
    Вызывает колбэк каждые `interval` секунд до остановки.

    Если `overlap=True`, асинхронный колбэк запускается отдельной задачей:
    медленный вызов не задерживает следующий тик, и несколько вызовов
    могут быть в полёте одновременно. Иначе тик ждёт завершения колбэка.
    """

    def __init__(
        self,
        interval: float,
        callback: TimerCallback,
        *,
        name: str = "timer",
        overlap: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Интервал таймера должен быть положительным: {interval}")
        self.interval = interval
        self.name = name
        self.overlap = overlap
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._stopping: Set[asyncio.Task] = set()
        self._running = False
        self.fired = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def start(self) -> None:
        """Запускает таймер. Повторный запуск работающего таймера игнорируется."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run(), name=self.name)

    def stop(self) -> None:
        """
        Останавливает таймер и отменяет вызовы в полёте.
        Безопасно вызывать из самого колбэка: текущая задача не отменяется.
        Отменённые задачи дожидаются в wait_stopped().
        """
        self._running = False
        current = asyncio.current_task()

        for task in (self._task, *self._in_flight):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            self._stopping.add(task)
        self._task = None
        self._in_flight.clear()

    async def wait_stopped(self) -> None:
        """Дожидается завершения задач, отменённых в stop()."""
        current = asyncio.current_task()
        while self._stopping:
            tasks = [t for t in self._stopping if t is not current]
            self._stopping.clear()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            if not self._running:
                break
            await self._fire()

    async def _fire(self) -> None:
        self.fired += 1
        try:
            result = self._callback()
        except Exception as e:
            await log_error(f"Ошибка в таймере {self.name}: {e}", exc_info=True)
            return

        if not inspect.isawaitable(result):
            return

        if self.overlap:
            task = asyncio.ensure_future(result)
            self._in_flight.add(task)
            task.add_done_callback(self._on_done)
            return

        try:
            await result
        except Exception as e:
            await log_error(f"Ошибка в таймере {self.name}: {e}", exc_info=True)

    def _on_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # Колбэк завершения синхронный, поэтому пишем в логгер напрямую
            get_logger().error(f"Ошибка в задаче таймера {self.name}: {exc}")
