"""
Общие DTO и Pydantic-модели для обмена с сервисами поездок и водителей.
"""

from src.shared.models.enums import DriverStatus, RidePhase, RideStatus
from src.shared.models.ride_dto import (
    CreateRideRequest,
    DriverRatingDraft,
    EstimateRideRequest,
    Ride,
    RideEstimate,
    RideKey,
    RideStatusQuery,
    UpdateRideRequest,
)

__all__ = [
    "DriverStatus",
    "RidePhase",
    "RideStatus",
    "CreateRideRequest",
    "DriverRatingDraft",
    "EstimateRideRequest",
    "Ride",
    "RideEstimate",
    "RideKey",
    "RideStatusQuery",
    "UpdateRideRequest",
]
