# src/core/rides/countdown.py
"""
Секвенсор двух обратных отсчётов: прибытие водителя, затем длительность поездки.

Один таймер с периодом в 1 секунду; что именно уменьшается на тике,
определяет фаза (ARRIVING или IN_PROGRESS). Передача от прибытия к поездке выполняется
явным переходом ARRIVING → IN_PROGRESS, поэтому два отсчёта никогда
не тикают одновременно.
"""

from __future__ import annotations

from typing import Callable, Optional

from src.common.logger import log_debug
from src.config import settings
from src.core.rides.state import CountdownState
from src.core.rides.state_machine import RidePhaseMachine
from src.core.rides.time_math import Clock, clamp_remaining, now_ms
from src.core.rides.timers import RepeatingTimer
from src.shared.models.enums import RidePhase


class CountdownSequencer:
    def __init__(
        self,
        machine: RidePhaseMachine,
        on_finished: Callable[[], None],
        clock: Clock = now_ms,
        interval: Optional[float] = None,
    ) -> None:
        self.machine = machine
        self.on_finished = on_finished
        self.clock = clock
        self.interval = interval if interval is not None else settings.timers.COUNTDOWN_TICK_INTERVAL
        self._timer = RepeatingTimer(self.interval, self.tick, name="ride_countdown")
        self._started = False
        self._duration_started = False
        self._finished = False
        self._stopped = False

    @property
    def countdown(self) -> CountdownState:
        return self.machine.state.countdown

    @property
    def is_running(self) -> bool:
        return self._timer.is_running

    @property
    def duration_started(self) -> bool:
        return self._duration_started

    def start(self, arrival_target_ms: int, duration_target_ms: int) -> None:
        """
        Засевает отсчёт прибытия из целевого момента и запускает тики.
        Значение засева считается локально, поле «seconds» от сервера не используется.
        Повторный вызов не перезапускает отсчёт.
        """
        if self._started or self._stopped:
            return
        self._started = True

        countdown = self.countdown
        countdown.arrival_target_ms = arrival_target_ms
        countdown.duration_target_ms = duration_target_ms
        # Цель в прошлом сразу даёт 0, отрицательное значение не хранится
        countdown.arrival_remaining = clamp_remaining(arrival_target_ms, self.clock())
        countdown.duration_remaining = None

        self._timer.start()

    def stop(self) -> None:
        """После остановки ни один тик не меняет состояние."""
        self._stopped = True
        self._timer.stop()

    async def wait_stopped(self) -> None:
        await self._timer.wait_stopped()

    async def tick(self) -> None:
        if self._stopped or not self._started:
            return

        phase = self.machine.phase
        if phase == RidePhase.ARRIVING:
            await self._tick_arrival()
        elif phase == RidePhase.IN_PROGRESS:
            await self._tick_duration()
        else:
            # Поездка ушла из фаз отсчёта другим путём
            self.stop()

    async def _tick_arrival(self) -> None:
        countdown = self.countdown
        remaining = countdown.arrival_remaining or 0
        if remaining > 0:
            remaining -= 1
        countdown.arrival_remaining = remaining
        if remaining == 0:
            await self._hand_off()

    async def _hand_off(self) -> None:
        if self._duration_started:
            return
        self._duration_started = True

        countdown = self.countdown
        if not await self.machine.advance(RidePhase.IN_PROGRESS):
            return
        countdown.duration_remaining = clamp_remaining(countdown.duration_target_ms, self.clock())
        await log_debug(
            f"Прибытие завершено, отсчёт поездки: {countdown.duration_remaining} с",
            extra={"duration_remaining": countdown.duration_remaining},
        )

    async def _tick_duration(self) -> None:
        countdown = self.countdown
        remaining = countdown.duration_remaining or 0
        if remaining > 0:
            remaining -= 1
            countdown.duration_remaining = remaining
            if remaining > 0:
                return
        countdown.duration_remaining = 0
        self._finish()

    def _finish(self) -> None:
        """Однократный триггер финализатора; останавливает все тики."""
        if self._finished:
            return
        self._finished = True
        self.stop()
        self.on_finished()
