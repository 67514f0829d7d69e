# src/core/rides/orchestrator.py
"""
Оркестраторы жизненного цикла поездки для пассажира и водителя.

Каждый экземпляр владеет одной записью RideState и всеми таймерами поездки.
close() отменяет таймеры и запросы в полёте; после этого ни один переход
фазы и ни один сетевой вызов от экземпляра не происходит.
"""

from __future__ import annotations

import asyncio
from abc import ABC
from typing import Any, Coroutine, List, Optional, Set

import httpx

from src.common.localization import get_text, resolve_language
from src.common.logger import log_error, log_info, log_warning
from src.config import settings
from src.core.rides.countdown import CountdownSequencer
from src.core.rides.finalizer import RideFinalizer
from src.core.rides.poller import StatusPoller
from src.core.rides.state import RideSnapshot, RideState
from src.core.rides.state_machine import RidePhaseMachine
from src.core.rides.time_math import Clock, format_countdown, now_ms
from src.shared.models.enums import DriverStatus, RidePhase, RideStatus
from src.shared.models.ride_dto import CreateRideRequest, DriverRatingDraft, Ride, RideEstimate
from src.web_client.infra.api_clients import DriverClient, RideClient


class BaseRideOrchestrator(ABC):
    """Общая часть: состояние, отсчёт, финализатор и учёт фоновых задач."""

    def __init__(
        self,
        state: RideState,
        machine: RidePhaseMachine,
        ride_client: RideClient,
        driver_client: Optional[DriverClient],
        clock: Clock,
        lang: Optional[str],
        tick_interval: Optional[float],
        finalizer: RideFinalizer,
    ) -> None:
        self.state = state
        self.machine = machine
        self.ride_client = ride_client
        self.driver_client = driver_client
        self.clock = clock
        self.lang = resolve_language(lang or settings.domain.DEFAULT_LANGUAGE, settings.domain.SUPPORTED_LANGUAGES)
        self.finalizer = finalizer
        self.finalizer.lang = self.lang
        self.countdown = CountdownSequencer(machine, self._on_countdown_finished, clock, tick_interval)
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def phase(self) -> RidePhase:
        return self.state.phase

    @property
    def is_closed(self) -> bool:
        return self._closed

    def snapshot(self) -> RideSnapshot:
        return self.state.snapshot()

    def format_arrival(self) -> str:
        return format_countdown(self.state.countdown.arrival_remaining or 0, self.lang)

    def format_duration(self) -> str:
        return format_countdown(self.state.countdown.duration_remaining or 0, self.lang)

    def clear_error(self) -> None:
        self.state.error_message = None

    def _fail(self, key: str, **kwargs: Any) -> None:
        self.state.error_message = get_text(key, self.lang, **kwargs)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        if self._closed:
            coro.close()
            return
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_countdown_finished(self) -> None:
        self._spawn(self.finalizer.complete())

    def _start_countdown(self, ride: Ride) -> None:
        self.countdown.start(ride.estimated_driver_arrival, ride.estimated_ride_end)

    async def _stop_components(self) -> None:
        self.countdown.stop()
        await self.countdown.wait_stopped()

    async def close(self) -> None:
        """Останавливает все таймеры и делает ответы запросов в полёте no-op."""
        if self._closed:
            return
        self._closed = True

        await self._stop_components()

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        await log_info("Оркестратор поездки остановлен", extra={"phase": str(self.state.phase)})

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class PassengerRideOrchestrator(BaseRideOrchestrator):
    """
    Сторона пассажира: оценка → создание поездки → поллинг принятия →
    отсчёт прибытия и поездки → завершение → оценка водителя.
    """

    def __init__(
        self,
        ride_client: RideClient,
        driver_client: DriverClient,
        *,
        clock: Clock = now_ms,
        lang: Optional[str] = None,
        poll_interval: Optional[float] = None,
        tick_interval: Optional[float] = None,
    ) -> None:
        state = RideState(phase=RidePhase.ESTIMATING)
        machine = RidePhaseMachine.for_passenger(state, clock)
        finalizer = RideFinalizer(machine, ride_client, driver_client)
        super().__init__(state, machine, ride_client, driver_client, clock, lang, tick_interval, finalizer)
        self.poller = StatusPoller(ride_client, machine, self._on_ride_accepted, poll_interval)
        self._quote_addresses: Optional[tuple[str, str]] = None
        self._creating = False

    async def request_estimate(self, start_address: str, end_address: str) -> Optional[RideEstimate]:
        """Запрос цены и ожидаемого времени прибытия. Доступен только до создания поездки."""
        if self._closed or self.phase != RidePhase.ESTIMATING or self._creating:
            return None

        self.clear_error()
        try:
            estimate = await self.ride_client.estimate(start_address, end_address)
        except (httpx.HTTPError, ValueError) as e:
            self._fail("RIDE_ESTIMATE_FAILED")
            await log_warning(f"Ошибка оценки поездки: {e}")
            return None

        if self._closed or self.phase != RidePhase.ESTIMATING:
            return None

        self.state.estimate = estimate
        self._quote_addresses = (start_address, end_address)
        return estimate

    async def accept_quote(self) -> bool:
        """Пользователь принял оценку: создаём поездку и начинаем ждать водителя."""
        estimate = self.state.estimate
        if self._closed or self.phase != RidePhase.ESTIMATING or self._creating:
            return False
        if estimate is None or self._quote_addresses is None:
            return False

        start_address, end_address = self._quote_addresses
        request = CreateRideRequest(
            start_address=start_address,
            end_address=end_address,
            price=estimate.price_estimate,
            estimated_driver_arrival_seconds=estimate.estimated_driver_arrival_seconds,
        )

        self._creating = True
        self.clear_error()
        try:
            ride = await self.ride_client.create(request)
        except (httpx.HTTPError, ValueError) as e:
            self._fail("RIDE_CREATE_FAILED")
            await log_error(f"Ошибка создания поездки: {e}")
            return False
        finally:
            self._creating = False

        if self._closed:
            return False
        if not await self.machine.advance(RidePhase.AWAITING_ACCEPTANCE):
            return False

        self.state.ride = ride
        self.poller.start(ride.key)
        await log_info(
            "Поездка создана, ожидаем водителя",
            extra={"client_email": ride.client_email, "created_at": ride.created_at_timestamp},
        )
        return True

    def _on_ride_accepted(self, ride: Ride) -> None:
        if self._closed:
            return
        self.state.rating_draft = DriverRatingDraft.for_ride(ride)
        self._start_countdown(ride)

    async def submit_rating(self, value: int) -> bool:
        if self._closed:
            return False
        return await self.finalizer.submit_rating(value)

    async def dismiss_rating(self) -> bool:
        if self._closed:
            return False
        return await self.finalizer.dismiss_rating()

    async def load_previous_rides(self) -> List[Ride]:
        if self._closed:
            return []
        try:
            return await self.ride_client.list_for_user()
        except (httpx.HTTPError, ValueError) as e:
            self._fail("RIDES_LOAD_FAILED")
            await log_warning(f"Не удалось загрузить историю поездок: {e}")
            return []

    async def _stop_components(self) -> None:
        self.poller.stop()
        await self.poller.wait_stopped()
        await super()._stop_components()


class DriverRideOrchestrator(BaseRideOrchestrator):
    """
    Сторона водителя: выбор новой поездки и принятие.
    Ответ на принятие сразу содержит оба целевых момента, фаза
    AWAITING_ACCEPTANCE пропускается. Завершение локальное: сервис
    уведомляет сторона пассажира, оценку водитель не выставляет.
    """

    def __init__(
        self,
        driver_email: str,
        ride_client: RideClient,
        driver_client: DriverClient,
        *,
        clock: Clock = now_ms,
        lang: Optional[str] = None,
        tick_interval: Optional[float] = None,
    ) -> None:
        state = RideState(phase=RidePhase.SELECTING)
        machine = RidePhaseMachine.for_driver(state, clock)
        finalizer = RideFinalizer(machine, ride_client, notify_backend=False, collect_rating=False)
        super().__init__(state, machine, ride_client, driver_client, clock, lang, tick_interval, finalizer)
        self.driver_email = driver_email
        self.driver_status: Optional[DriverStatus] = None
        self.new_rides: List[Ride] = []
        self._accepting = False

    @property
    def can_accept(self) -> bool:
        """Запрещено только для BANNED и NOT_VERIFIED; неизвестный статус не блокирует."""
        return self.driver_status is None or self.driver_status.can_accept_rides

    async def load_driver_status(self) -> Optional[DriverStatus]:
        if self._closed:
            return self.driver_status
        try:
            self.driver_status = await self.driver_client.get_status(self.driver_email)
        except (httpx.HTTPError, ValueError) as e:
            await log_warning(f"Не удалось получить статус водителя: {e}", extra={"driver": self.driver_email})
        return self.driver_status

    async def refresh_new_rides(self) -> List[Ride]:
        if self._closed:
            return self.new_rides
        try:
            rides = await self.ride_client.list_new()
        except (httpx.HTTPError, ValueError) as e:
            await log_warning(f"Не удалось загрузить новые поездки: {e}")
            return self.new_rides
        if not self._closed:
            self.new_rides = rides
        return self.new_rides

    async def accept_ride(self, client_email: str, created_at_timestamp: int) -> bool:
        if self._closed or self.phase != RidePhase.SELECTING or self._accepting:
            return False
        if not self.can_accept:
            self._fail("DRIVER_NOT_ALLOWED", status=self.driver_status)
            return False

        self._accepting = True
        self.clear_error()
        try:
            ride = await self.ride_client.update_status(client_email, created_at_timestamp, RideStatus.ACCEPTED)
        except (httpx.HTTPError, ValueError) as e:
            self._fail("RIDE_ACCEPT_FAILED")
            await log_error(f"Ошибка принятия поездки: {e}", extra={"client_email": client_email})
            return False
        finally:
            self._accepting = False

        if self._closed:
            return False
        if not ride.has_target_timestamps:
            # Неполные данные: фазу не двигаем
            self._fail("RIDE_ACCEPT_INCOMPLETE")
            await log_warning("Ответ на принятие без целевых моментов", extra={"client_email": client_email})
            return False
        if not await self.machine.advance(RidePhase.ARRIVING):
            return False

        self.state.ride = ride
        self._start_countdown(ride)
        await self.refresh_new_rides()
        return True
