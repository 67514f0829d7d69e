from __future__ import annotations

from enum import Enum


class RideStatus(str, Enum):
    """Статус поездки на стороне сервиса. Движется только вперёд."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    COMPLETED = "COMPLETED"

    def __str__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return list(RideStatus).index(self)

    def can_advance_to(self, new_status: RideStatus) -> bool:
        """Разрешён только шаг вперёд по PENDING → ACCEPTED → COMPLETED."""
        return new_status.rank == self.rank + 1


class RidePhase(str, Enum):
    """Фазы жизненного цикла поездки на клиенте."""
    ESTIMATING = "estimating"
    AWAITING_ACCEPTANCE = "awaiting_acceptance"
    SELECTING = "selecting"  # водитель выбирает поездку из списка новых
    ARRIVING = "arriving"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    RATING = "rating"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value


class DriverStatus(str, Enum):
    """Статусы верификации водителя."""
    NOT_VERIFIED = "NOT_VERIFIED"
    VERIFIED = "VERIFIED"
    BANNED = "BANNED"

    def __str__(self) -> str:
        return self.value

    @property
    def can_accept_rides(self) -> bool:
        return self is DriverStatus.VERIFIED
