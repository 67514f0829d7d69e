# src/core/rides/state.py
"""
Единая запись состояния одной поездки.
Принадлежит одному экземпляру оркестратора и передаётся по ссылке
поллеру, секвенсору обратного отсчёта и финализатору.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from src.shared.models.enums import RidePhase
from src.shared.models.ride_dto import DriverRatingDraft, Ride, RideEstimate


@dataclass
class CountdownState:
    """
    Пара остатков (прибытие, поездка) в секундах.
    Значения никогда не бывают отрицательными; None означает, что отсчёт ещё не засеян.
    """

    arrival_remaining: Optional[int] = None
    duration_remaining: Optional[int] = None
    arrival_target_ms: Optional[int] = None
    duration_target_ms: Optional[int] = None

    def reset(self) -> None:
        self.arrival_remaining = None
        self.duration_remaining = None
        self.arrival_target_ms = None
        self.duration_target_ms = None


@dataclass
class RideState:
    phase: RidePhase
    estimate: Optional[RideEstimate] = None
    ride: Optional[Ride] = None
    countdown: CountdownState = field(default_factory=CountdownState)
    rating_draft: Optional[DriverRatingDraft] = None
    rating_open: bool = False
    error_message: Optional[str] = None

    def snapshot(self) -> "RideSnapshot":
        return RideSnapshot(
            phase=self.phase,
            arrival_remaining=self.countdown.arrival_remaining,
            duration_remaining=self.countdown.duration_remaining,
            price=self.ride.price if self.ride and self.ride.price is not None
            else (self.estimate.price_estimate if self.estimate else None),
            driver_email=self.ride.driver_email if self.ride else None,
            rating_open=self.rating_open,
            error_message=self.error_message,
        )


@dataclass(frozen=True)
class RideSnapshot:
    """Неизменяемый срез состояния для отображения."""

    phase: RidePhase
    arrival_remaining: Optional[int]
    duration_remaining: Optional[int]
    price: Optional[float]
    driver_email: Optional[str]
    rating_open: bool
    error_message: Optional[str]
