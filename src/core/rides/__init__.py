"""
Оркестрация жизненного цикла поездки: поллинг, обратный отсчёт, фазы, финализация.
"""

from src.core.rides.countdown import CountdownSequencer
from src.core.rides.finalizer import RideFinalizer
from src.core.rides.orchestrator import DriverRideOrchestrator, PassengerRideOrchestrator
from src.core.rides.poller import StatusPoller
from src.core.rides.state import CountdownState, RideSnapshot, RideState
from src.core.rides.state_machine import RidePhaseMachine
from src.core.rides.time_math import format_countdown, now_ms, remaining_seconds
from src.core.rides.timers import RepeatingTimer

__all__ = [
    "CountdownSequencer",
    "RideFinalizer",
    "DriverRideOrchestrator",
    "PassengerRideOrchestrator",
    "StatusPoller",
    "CountdownState",
    "RideSnapshot",
    "RideState",
    "RidePhaseMachine",
    "format_countdown",
    "now_ms",
    "remaining_seconds",
    "RepeatingTimer",
]
