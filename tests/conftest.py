# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DRIVER_EMAIL", "driver@test.com")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from src.shared.models.enums import DriverStatus, RideStatus
from src.shared.models.ride_dto import Ride, RideEstimate


# Базовый момент для фиктивных часов (мс с эпохи)
T0 = 1_700_000_000_000

# Период таймеров в unit-тестах: тики вызываются вручную, реальный таймер не должен успеть сработать
MANUAL_INTERVAL = 3600.0


class FakeClock:
    """Фиктивные часы в миллисекундах."""

    def __init__(self, start_ms: int = T0) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float = 1.0) -> None:
        self.now += int(seconds * 1000)


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Системные настройки",
        "PROJECT_NAME": "ride_client_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "json",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_MAX_BYTES": 1024,
        "LOG_BACKUP_COUNT": 2,
        "DEFAULT_LANGUAGE": "ru",
        "SUPPORTED_LANGUAGES": ["en", "ru"],
        "RIDE_SERVICE_URL": "http://rides.test/api/v1/",
        "DRIVER_SERVICE_URL": "http://drivers.test/api/v1",
        "HTTP_TIMEOUT": 3.0,
        "STATUS_POLL_INTERVAL": 5.0,
        "COUNTDOWN_TICK_INTERVAL": 1.0,
        "DRIVER_EMAIL": "driver@test.com",
    }


# =============================================================================
# ФИКСТУРЫ ВРЕМЕНИ И КЛИЕНТОВ (МОКИ)
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_ride_client() -> AsyncMock:
    """Мок клиента сервиса поездок."""
    client = AsyncMock()
    client.estimate = AsyncMock(return_value=RideEstimate(price_estimate=12.5, estimated_driver_arrival_seconds=120))
    client.create = AsyncMock()
    client.get_status = AsyncMock()
    client.update_status = AsyncMock()
    client.list_new = AsyncMock(return_value=[])
    client.list_for_user = AsyncMock(return_value=[])
    return client


@pytest.fixture
def mock_driver_client() -> AsyncMock:
    """Мок клиента сервиса водителей."""
    client = AsyncMock()
    client.get_status = AsyncMock(return_value=DriverStatus.VERIFIED)
    client.rate = AsyncMock(return_value={"ok": True})
    return client


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_ride_data() -> dict[str, Any]:
    """Пример ответа сервиса для ожидающей поездки (camelCase)."""
    return {
        "clientEmail": "client@test.com",
        "createdAtTimestamp": T0 - 60_000,
        "startAddress": "Main St 1",
        "endAddress": "Airport",
        "price": 12.5,
        "driverEmail": None,
        "status": "PENDING",
    }


@pytest.fixture
def make_ride(sample_ride_data: dict[str, Any]) -> Callable[..., Ride]:
    """Фабрика поездок с нужным статусом и целевыми моментами."""

    def _make(
        status: RideStatus = RideStatus.PENDING,
        arrival_ms: int | None = None,
        end_ms: int | None = None,
        driver_email: str | None = None,
    ) -> Ride:
        data = dict(sample_ride_data)
        data["status"] = status.value
        data["estimatedDriverArrival"] = arrival_ms
        data["estimatedRideEnd"] = end_ms
        if status != RideStatus.PENDING:
            data["driverEmail"] = driver_email or "driver@test.com"
        return Ride.model_validate(data)

    return _make
