# src/core/rides/state_machine.py
"""
Машина фаз поездки.
Авторитетный источник текущей фазы; все компоненты двигают её только через advance().
"""

from __future__ import annotations

from typing import Callable, Dict, List, Tuple

from src.common.logger import log_debug, log_info
from src.core.rides.state import RideState
from src.core.rides.time_math import Clock, now_ms
from src.shared.models.enums import RidePhase

PhaseListener = Callable[[RidePhase, RidePhase], None]


class RidePhaseMachine:
    PASSENGER_TRANSITIONS: Dict[RidePhase, List[RidePhase]] = {
        RidePhase.ESTIMATING: [RidePhase.AWAITING_ACCEPTANCE],
        RidePhase.AWAITING_ACCEPTANCE: [RidePhase.ARRIVING],
        RidePhase.ARRIVING: [RidePhase.IN_PROGRESS],
        RidePhase.IN_PROGRESS: [RidePhase.COMPLETED],
        RidePhase.COMPLETED: [RidePhase.RATING],
        RidePhase.RATING: [RidePhase.CLOSED],
        RidePhase.CLOSED: [],
    }

    # Водитель начинает с выбора поездки и сразу получает оба целевых момента
    DRIVER_TRANSITIONS: Dict[RidePhase, List[RidePhase]] = {
        RidePhase.SELECTING: [RidePhase.ARRIVING],
        RidePhase.ARRIVING: [RidePhase.IN_PROGRESS],
        RidePhase.IN_PROGRESS: [RidePhase.COMPLETED],
        RidePhase.COMPLETED: [RidePhase.CLOSED],
        RidePhase.CLOSED: [],
    }

    def __init__(
        self,
        state: RideState,
        transitions: Dict[RidePhase, List[RidePhase]],
        clock: Clock = now_ms,
    ) -> None:
        if state.phase not in transitions:
            raise ValueError(f"Фаза {state.phase} не входит в таблицу переходов")
        self.state = state
        self.transitions = transitions
        self.clock = clock
        self.history: List[Tuple[RidePhase, RidePhase, int]] = []
        self._listeners: List[PhaseListener] = []

    @classmethod
    def for_passenger(cls, state: RideState, clock: Clock = now_ms) -> "RidePhaseMachine":
        return cls(state, cls.PASSENGER_TRANSITIONS, clock)

    @classmethod
    def for_driver(cls, state: RideState, clock: Clock = now_ms) -> "RidePhaseMachine":
        return cls(state, cls.DRIVER_TRANSITIONS, clock)

    @property
    def phase(self) -> RidePhase:
        return self.state.phase

    @property
    def is_terminal(self) -> bool:
        return not self.transitions.get(self.state.phase)

    def can_transition(self, new_phase: RidePhase) -> bool:
        return new_phase in self.transitions.get(self.state.phase, [])

    def has_reached(self, phase: RidePhase) -> bool:
        """Была ли фаза уже достигнута (или пройдена) в этой поездке."""
        return phase == self.state.phase or any(to == phase for _, to, _ in self.history)

    def subscribe(self, listener: PhaseListener) -> None:
        self._listeners.append(listener)

    async def advance(self, new_phase: RidePhase) -> bool:
        """
        Переводит поездку в new_phase, если переход разрешён из текущей фазы.

        Повторные и запоздавшие события (например, второй ACCEPTED в фазе
        ARRIVING) не считаются ошибкой: возвращается False, состояние не меняется.
        Проверка и смена фазы выполняются до первой точки await, поэтому
        переход происходит не более одного раза.
        """
        old_phase = self.state.phase
        if not self.can_transition(new_phase):
            await log_debug(
                f"Переход {old_phase} → {new_phase} проигнорирован",
                extra={"phase": str(old_phase), "requested": str(new_phase)},
            )
            return False

        self.state.phase = new_phase
        self.history.append((old_phase, new_phase, self.clock()))

        for listener in list(self._listeners):
            listener(old_phase, new_phase)

        await log_info(
            f"Фаза поездки: {old_phase} → {new_phase}",
            extra={"from": str(old_phase), "to": str(new_phase)},
        )
        return True
