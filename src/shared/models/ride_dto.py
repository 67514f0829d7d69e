# src/shared/models/ride_dto.py
"""
DTO поездок для обмена с сервисом поездок и сервисом водителей.
Запросы сериализуются в PascalCase, ответы приходят в camelCase.
Все временные метки: абсолютные моменты в миллисекундах с эпохи.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from src.common.constants import MAX_RATING_VALUE, MIN_RATING_VALUE, UNRATED_VALUE
from src.shared.models.enums import RideStatus


def to_epoch_ms(value: Any) -> Any:
    """Приводит ISO-строку или datetime к миллисекундам с эпохи."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, str) and not value.lstrip("-").isdigit():
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return to_epoch_ms(parsed)
    return value


class RideKey(BaseModel):
    """Идентификатор поездки: email клиента + момент создания."""

    client_email: str
    created_at_timestamp: int

    class Config:
        frozen = True


class EstimateRideRequest(BaseModel):
    start_address: str = Field(..., alias="StartAddress", min_length=1)
    end_address: str = Field(..., alias="EndAddress", min_length=1)

    class Config:
        populate_by_name = True


class RideEstimate(BaseModel):
    """Оценка поездки. Живёт только в фазе ESTIMATING."""

    price_estimate: float = Field(..., alias="priceEstimate")
    estimated_driver_arrival_seconds: int = Field(..., alias="estimatedDriverArrivalSeconds")

    class Config:
        populate_by_name = True


class CreateRideRequest(BaseModel):
    start_address: str = Field(..., alias="StartAddress")
    end_address: str = Field(..., alias="EndAddress")
    price: float = Field(..., alias="Price")
    estimated_driver_arrival_seconds: int = Field(..., alias="EstimatedDriverArrivalSeconds")

    class Config:
        populate_by_name = True


class Ride(BaseModel):
    """Проекция поездки, которую держит клиент."""

    client_email: str = Field(..., alias="clientEmail")
    created_at_timestamp: int = Field(..., alias="createdAtTimestamp")
    start_address: Optional[str] = Field(default=None, alias="startAddress")
    end_address: Optional[str] = Field(default=None, alias="endAddress")
    price: Optional[float] = None
    driver_email: Optional[str] = Field(default=None, alias="driverEmail")
    status: RideStatus = RideStatus.PENDING
    estimated_driver_arrival: Optional[int] = Field(default=None, alias="estimatedDriverArrival")
    estimated_ride_end: Optional[int] = Field(default=None, alias="estimatedRideEnd")

    class Config:
        populate_by_name = True

    @field_validator("created_at_timestamp", "estimated_driver_arrival", "estimated_ride_end", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        return to_epoch_ms(v)

    @property
    def key(self) -> RideKey:
        return RideKey(client_email=self.client_email, created_at_timestamp=self.created_at_timestamp)

    @property
    def has_target_timestamps(self) -> bool:
        """Есть ли оба целевых момента (прибытие водителя и конец поездки)."""
        return self.estimated_driver_arrival is not None and self.estimated_ride_end is not None


class RideStatusQuery(BaseModel):
    client_email: str = Field(..., alias="ClientEmail")
    ride_created_at_timestamp: int = Field(..., alias="RideCreatedAtTimestamp")

    class Config:
        populate_by_name = True


class UpdateRideRequest(BaseModel):
    client_email: str = Field(..., alias="ClientEmail")
    ride_created_at_timestamp: int = Field(..., alias="RideCreatedAtTimestamp")
    status: RideStatus = Field(..., alias="Status")

    class Config:
        populate_by_name = True


class DriverRatingDraft(BaseModel):
    """
    Черновик оценки водителя.
    Создаётся при переходе поездки в ACCEPTED со значением 0 (без оценки),
    заполняется один раз перед отправкой.
    """

    client_email: str = Field(..., alias="ClientEmail")
    ride_timestamp: int = Field(..., alias="RideTimestamp")
    driver_email: Optional[str] = Field(default=None, alias="DriverEmail")
    value: int = Field(default=UNRATED_VALUE, alias="Value", ge=UNRATED_VALUE, le=MAX_RATING_VALUE)

    class Config:
        populate_by_name = True
        frozen = True

    @classmethod
    def for_ride(cls, ride: Ride) -> "DriverRatingDraft":
        return cls(
            client_email=ride.client_email,
            ride_timestamp=ride.created_at_timestamp,
            driver_email=ride.driver_email,
        )

    @property
    def is_rated(self) -> bool:
        return self.value != UNRATED_VALUE

    def rated(self, value: int) -> "DriverRatingDraft":
        """Возвращает копию черновика с выставленной оценкой 1..5."""
        if not isinstance(value, int) or not MIN_RATING_VALUE <= value <= MAX_RATING_VALUE:
            raise ValueError(
                f"Оценка должна быть от {MIN_RATING_VALUE} до {MAX_RATING_VALUE}, получено: {value!r}"
            )
        if self.is_rated:
            raise ValueError("Оценка уже выставлена")
        return self.model_copy(update={"value": value})
