#!/usr/bin/env python3
# main.py
"""
Консольный запуск сессии поездки.
Режимы: passenger (заказ и сопровождение поездки) и driver (принятие новой поездки).
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg
from src.core.rides import DriverRideOrchestrator, PassengerRideOrchestrator
from src.core.rides.orchestrator import BaseRideOrchestrator
from src.shared.models.enums import RidePhase
from src.web_client.infra.api_clients import DriverClient, RideClient


# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


def _should_stop() -> bool:
    return _shutdown_event is not None and _shutdown_event.is_set()


async def watch_ride(orchestrator: BaseRideOrchestrator, until: RidePhase) -> None:
    """Раз в тик выводит фазу и обратный отсчёт, пока не будет достигнута фаза `until`."""
    last_error = None
    while not _should_stop() and not orchestrator.machine.has_reached(until):
        snapshot = orchestrator.snapshot()
        if snapshot.phase == RidePhase.ARRIVING:
            await log_info(f"Водитель прибудет через: {orchestrator.format_arrival()}")
        elif snapshot.phase == RidePhase.IN_PROGRESS:
            await log_info(f"До конца поездки: {orchestrator.format_duration()}")
        if snapshot.error_message and snapshot.error_message != last_error:
            last_error = snapshot.error_message
            await log_info(snapshot.error_message, type_msg=TypeMsg.WARNING)
        await asyncio.sleep(settings.timers.COUNTDOWN_TICK_INTERVAL)


async def run_passenger(start_address: str, end_address: str) -> None:
    async with RideClient() as ride_client, DriverClient() as driver_client:
        async with PassengerRideOrchestrator(ride_client, driver_client) as orchestrator:
            estimate = await orchestrator.request_estimate(start_address, end_address)
            if estimate is None:
                await log_error(orchestrator.snapshot().error_message or "Оценка недоступна")
                return
            await log_info(
                f"Цена: {estimate.price_estimate}, водитель через "
                f"{estimate.estimated_driver_arrival_seconds} с"
            )

            if not await orchestrator.accept_quote():
                await log_error(orchestrator.snapshot().error_message or "Поездка не создана")
                return

            await watch_ride(orchestrator, RidePhase.RATING)
            if _should_stop():
                return

            while orchestrator.snapshot().rating_open:
                answer = await asyncio.to_thread(input, "Оценка водителя 1-5 (пусто — пропустить): ")
                if not answer.strip():
                    await orchestrator.dismiss_rating()
                    break
                try:
                    value = int(answer)
                    await orchestrator.submit_rating(value)
                except ValueError as e:
                    await log_info(str(e), type_msg=TypeMsg.WARNING)
                    continue
                error = orchestrator.snapshot().error_message
                if error:
                    await log_info(error, type_msg=TypeMsg.WARNING)


async def run_driver() -> None:
    driver_email = settings.session.DRIVER_EMAIL
    async with RideClient() as ride_client, DriverClient() as driver_client:
        async with DriverRideOrchestrator(driver_email, ride_client, driver_client) as orchestrator:
            status = await orchestrator.load_driver_status()
            await log_info(f"Статус водителя: {status}")

            rides = await orchestrator.refresh_new_rides()
            if not rides:
                await log_info("Новых поездок нет")
                return

            for index, ride in enumerate(rides):
                print(f"[{index}] {ride.start_address} → {ride.end_address} | {ride.price} | {ride.client_email}")

            answer = await asyncio.to_thread(input, "Номер поездки для принятия: ")
            try:
                ride = rides[int(answer)]
            except (ValueError, IndexError):
                await log_error(f"Неверный номер поездки: {answer!r}")
                return

            if not await orchestrator.accept_ride(ride.client_email, ride.created_at_timestamp):
                await log_error(orchestrator.snapshot().error_message or "Поездка не принята")
                return

            await watch_ride(orchestrator, RidePhase.CLOSED)


def print_usage() -> None:
    print("""
Использование:
    python main.py passenger "<откуда>" "<куда>"   # Заказ поездки
    python main.py driver                          # Принятие новой поездки (DRIVER_EMAIL из конфига)
    """)


async def main(argv: list[str]) -> int:
    setup_logging()
    setup_signal_handlers()

    mode = argv[0].lower() if argv else ""
    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION} — запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    if mode == "passenger" and len(argv) == 3:
        await run_passenger(argv[1], argv[2])
    elif mode == "driver":
        await run_driver()
    else:
        print_usage()
        return 1
    return 0


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1].lower() in ("--help", "-h"):
        print_usage()
        sys.exit(0)

    try:
        sys.exit(asyncio.run(main(sys.argv[1:])))
    except KeyboardInterrupt:
        pass
