# src/core/rides/poller.py
"""
Поллер статуса поездки.
Без server-push определяет момент, когда ожидающей поездке назначен водитель.
"""

from __future__ import annotations

from typing import Callable, Optional

import httpx

from src.common.logger import log_debug, log_warning
from src.config import settings
from src.core.rides.state_machine import RidePhaseMachine
from src.core.rides.timers import RepeatingTimer
from src.shared.models.enums import RidePhase, RideStatus
from src.shared.models.ride_dto import Ride, RideKey
from src.web_client.infra.api_clients import RideClient

AcceptedCallback = Callable[[Ride], None]


class StatusPoller:
    """
    Запрашивает статус поездки с фиксированным периодом, пока фаза равна
    AWAITING_ACCEPTANCE. Ошибка отдельного запроса проглатывается
    (с предупреждением в логе) и повторяется на следующем тике без backoff
    и без лимита попыток. Останавливается только при переходе в ARRIVING
    или по stop() со стороны владельца.
    """

    def __init__(
        self,
        ride_client: RideClient,
        machine: RidePhaseMachine,
        on_accepted: AcceptedCallback,
        interval: Optional[float] = None,
    ) -> None:
        self.ride_client = ride_client
        self.machine = machine
        self.on_accepted = on_accepted
        self.interval = interval if interval is not None else settings.timers.STATUS_POLL_INTERVAL
        self.key: Optional[RideKey] = None
        self.failures = 0
        self._stopped = False
        self._timer = RepeatingTimer(self.interval, self.poll_once, name="ride_status_poller", overlap=True)

    @property
    def is_running(self) -> bool:
        return self._timer.is_running

    def start(self, key: RideKey) -> None:
        if self._stopped:
            return
        self.key = key
        self._timer.start()

    def stop(self) -> None:
        """Останавливает поллинг; ответы запросов в полёте после этого игнорируются."""
        self._stopped = True
        self._timer.stop()

    async def wait_stopped(self) -> None:
        await self._timer.wait_stopped()

    async def poll_once(self) -> bool:
        """
        Один запрос статуса. Возвращает True, если этот вызов выполнил переход в ARRIVING.
        """
        if self._stopped or self.key is None or self.machine.phase != RidePhase.AWAITING_ACCEPTANCE:
            return False

        try:
            ride = await self.ride_client.get_status(self.key.client_email, self.key.created_at_timestamp)
        except (httpx.HTTPError, ValueError) as e:
            self.failures += 1
            await log_warning(
                f"Не удалось получить статус поездки, повтор через {self.interval} с: {e}",
                extra={"client_email": self.key.client_email, "failures": self.failures},
            )
            return False

        # Ответ мог прийти после отмены или после перехода по другому ответу
        if self._stopped or self.machine.phase != RidePhase.AWAITING_ACCEPTANCE:
            await log_debug("Устаревший ответ статуса проигнорирован")
            return False

        if ride.status != RideStatus.ACCEPTED:
            await log_debug(f"Поездка всё ещё в статусе {ride.status}")
            return False

        if not ride.has_target_timestamps:
            await log_warning(
                "Статус ACCEPTED без целевых моментов прибытия/окончания, переход отложен",
                extra={"client_email": ride.client_email},
            )
            return False

        if not await self.machine.advance(RidePhase.ARRIVING):
            return False

        self.machine.state.ride = ride
        self.stop()
        self.on_accepted(ride)
        return True
