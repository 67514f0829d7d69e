# src/core/rides/finalizer.py
"""
Финализатор поездки: однократная обработка IN_PROGRESS → COMPLETED
и сбор оценки водителя.

Уведомление сервиса о завершении и сбор оценки независимы: ошибка
уведомления показывается пользователю, но не мешает открыть оценку
и не повторяется автоматически.
"""

from __future__ import annotations

from typing import Optional

import httpx

from src.common.localization import get_text
from src.common.logger import log_debug, log_error, log_info, log_warning
from src.core.rides.state_machine import RidePhaseMachine
from src.shared.models.enums import RidePhase, RideStatus
from src.web_client.infra.api_clients import DriverClient, RideClient


class RideFinalizer:
    def __init__(
        self,
        machine: RidePhaseMachine,
        ride_client: RideClient,
        driver_client: Optional[DriverClient] = None,
        *,
        notify_backend: bool = True,
        collect_rating: bool = True,
        lang: str = "en",
    ) -> None:
        self.machine = machine
        self.ride_client = ride_client
        self.driver_client = driver_client
        self.notify_backend = notify_backend
        self.collect_rating = collect_rating
        self.lang = lang
        self.completion_sent = False
        self._fired = False
        self._submitting = False

    @property
    def state(self):
        return self.machine.state

    async def complete(self) -> bool:
        """
        Срабатывает не более одного раза на поездку.
        Возвращает True, если именно этот вызов завершил поездку.
        """
        if self._fired:
            await log_debug("Повторный вызов финализатора проигнорирован")
            return False
        if not await self.machine.advance(RidePhase.COMPLETED):
            return False
        self._fired = True

        # Окно оценки не ждёт ответа на уведомление о завершении
        if self.collect_rating:
            await self.machine.advance(RidePhase.RATING)
            self.state.rating_open = True
        else:
            self.state.rating_draft = None
            await self.machine.advance(RidePhase.CLOSED)

        if self.notify_backend:
            await self._notify_completed()
        return True

    async def _notify_completed(self) -> None:
        ride = self.state.ride
        if ride is None:
            return
        if not ride.status.can_advance_to(RideStatus.COMPLETED):
            await log_warning(
                f"Статус {ride.status} нельзя перевести в COMPLETED, уведомление не отправлено",
                extra={"client_email": ride.client_email},
            )
            return
        try:
            updated = await self.ride_client.update_status(
                ride.client_email, ride.created_at_timestamp, RideStatus.COMPLETED
            )
        except (httpx.HTTPError, ValueError) as e:
            self.state.error_message = get_text("RIDE_COMPLETION_FAILED", self.lang)
            await log_error(
                f"Не удалось отметить поездку завершённой: {e}",
                extra={"client_email": ride.client_email, "created_at": ride.created_at_timestamp},
            )
            return

        self.completion_sent = True
        self.state.ride = updated
        await log_info("Поездка отмечена завершённой", extra={"client_email": ride.client_email})

    async def submit_rating(self, value: int) -> bool:
        """
        Отправляет оценку 1..5. При ошибке окно оценки остаётся открытым,
        и пользователь может повторить отправку.
        """
        draft = self.state.rating_draft
        if not self.state.rating_open or draft is None or self.driver_client is None:
            return False
        rated = draft.rated(value)
        if self._submitting:
            return False

        self._submitting = True
        try:
            await self.driver_client.rate(rated)
        except (httpx.HTTPError, ValueError) as e:
            self.state.error_message = get_text("RATING_SUBMIT_FAILED", self.lang)
            await log_error(f"Не удалось отправить оценку: {e}", extra={"value": value})
            return False
        finally:
            self._submitting = False

        self.state.error_message = None
        await self._close_rating()
        await log_info("Оценка водителя отправлена", extra={"value": value})
        return True

    async def dismiss_rating(self) -> bool:
        if not self.state.rating_open:
            return False
        await self._close_rating()
        return True

    async def _close_rating(self) -> None:
        self.state.rating_open = False
        self.state.rating_draft = None
        await self.machine.advance(RidePhase.CLOSED)
