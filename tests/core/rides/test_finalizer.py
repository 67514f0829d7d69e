# tests/core/rides/test_finalizer.py
"""
Тесты финализатора поездки и сбора оценки водителя.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from src.core.rides.finalizer import RideFinalizer
from src.core.rides.state import RideState
from src.core.rides.state_machine import RidePhaseMachine
from src.shared.models.enums import RidePhase, RideStatus
from src.shared.models.ride_dto import DriverRatingDraft
from tests.conftest import T0


@pytest.fixture
def accepted_ride(make_ride):
    return make_ride(RideStatus.ACCEPTED, arrival_ms=T0 + 10_000, end_ms=T0 + 70_000)


@pytest.fixture
def machine(clock, accepted_ride) -> RidePhaseMachine:
    state = RideState(phase=RidePhase.IN_PROGRESS, ride=accepted_ride)
    state.rating_draft = DriverRatingDraft.for_ride(accepted_ride)
    return RidePhaseMachine.for_passenger(state, clock)


@pytest.fixture
def finalizer(machine, mock_ride_client, mock_driver_client) -> RideFinalizer:
    return RideFinalizer(machine, mock_ride_client, mock_driver_client)


class TestComplete:

    @pytest.mark.asyncio
    async def test_notifies_backend_and_opens_rating(
        self, finalizer, machine, mock_ride_client, make_ride, accepted_ride
    ) -> None:
        completed = make_ride(RideStatus.COMPLETED, arrival_ms=T0 + 10_000, end_ms=T0 + 70_000)
        mock_ride_client.update_status.return_value = completed

        assert await finalizer.complete() is True

        mock_ride_client.update_status.assert_awaited_once_with(
            accepted_ride.client_email, accepted_ride.created_at_timestamp, RideStatus.COMPLETED
        )
        assert finalizer.completion_sent is True
        assert machine.phase == RidePhase.RATING
        assert machine.state.rating_open is True
        assert machine.state.ride.status == RideStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_second_call_sends_nothing(self, finalizer, mock_ride_client) -> None:
        await finalizer.complete()

        assert await finalizer.complete() is False
        assert mock_ride_client.update_status.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_calls_send_one_request(self, finalizer, mock_ride_client) -> None:
        results = await asyncio.gather(finalizer.complete(), finalizer.complete())

        assert sorted(results) == [False, True]
        assert mock_ride_client.update_status.await_count == 1

    @pytest.mark.asyncio
    async def test_notify_failure_still_opens_rating(self, finalizer, machine, mock_ride_client) -> None:
        mock_ride_client.update_status.side_effect = httpx.ConnectError("refused")

        assert await finalizer.complete() is True

        assert finalizer.completion_sent is False
        assert machine.phase == RidePhase.RATING
        assert machine.state.rating_open is True
        assert machine.state.error_message == "Failed to mark the ride as completed."
        assert mock_ride_client.update_status.await_count == 1

    @pytest.mark.asyncio
    async def test_rating_opens_while_notice_pending(
        self, finalizer, machine, mock_ride_client, mock_driver_client
    ) -> None:
        release = asyncio.Event()

        async def slow_update(*args):
            await release.wait()

        mock_ride_client.update_status.side_effect = slow_update
        completing = asyncio.create_task(finalizer.complete())
        await asyncio.sleep(0.01)

        assert not completing.done()
        assert machine.phase == RidePhase.RATING
        assert machine.state.rating_open is True
        assert await finalizer.submit_rating(5) is True
        mock_driver_client.rate.assert_awaited_once()

        release.set()
        assert await completing is True
        assert finalizer.completion_sent is True

    @pytest.mark.asyncio
    async def test_already_completed_ride_not_sent_again(
        self, finalizer, machine, mock_ride_client, make_ride
    ) -> None:
        machine.state.ride = make_ride(RideStatus.COMPLETED, arrival_ms=T0 + 10_000, end_ms=T0 + 70_000)

        assert await finalizer.complete() is True

        mock_ride_client.update_status.assert_not_awaited()
        assert finalizer.completion_sent is False
        assert machine.state.rating_open is True

    @pytest.mark.asyncio
    async def test_not_in_progress_is_ignored(self, clock, mock_ride_client, mock_driver_client) -> None:
        machine = RidePhaseMachine.for_passenger(RideState(phase=RidePhase.ARRIVING), clock)
        finalizer = RideFinalizer(machine, mock_ride_client, mock_driver_client)

        assert await finalizer.complete() is False
        mock_ride_client.update_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_local_completion_closes_without_rating(self, clock, accepted_ride, mock_ride_client) -> None:
        state = RideState(phase=RidePhase.IN_PROGRESS, ride=accepted_ride)
        machine = RidePhaseMachine.for_driver(state, clock)
        finalizer = RideFinalizer(machine, mock_ride_client, notify_backend=False, collect_rating=False)

        assert await finalizer.complete() is True

        mock_ride_client.update_status.assert_not_awaited()
        assert machine.phase == RidePhase.CLOSED
        assert state.rating_open is False


class TestRating:

    @pytest.mark.asyncio
    async def test_submit_closes_prompt(self, finalizer, machine, mock_driver_client, accepted_ride) -> None:
        await finalizer.complete()

        assert await finalizer.submit_rating(4) is True

        sent = mock_driver_client.rate.await_args.args[0]
        assert sent.value == 4
        assert sent.driver_email == accepted_ride.driver_email
        assert sent.ride_timestamp == accepted_ride.created_at_timestamp
        assert machine.phase == RidePhase.CLOSED
        assert machine.state.rating_open is False
        assert machine.state.rating_draft is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, 6, -1])
    async def test_out_of_range_rejected(self, finalizer, mock_driver_client, value) -> None:
        await finalizer.complete()

        with pytest.raises(ValueError):
            await finalizer.submit_rating(value)
        mock_driver_client.rate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_keeps_prompt_open(self, finalizer, machine, mock_driver_client) -> None:
        await finalizer.complete()
        mock_driver_client.rate.side_effect = [httpx.ConnectError("refused"), {"ok": True}]

        assert await finalizer.submit_rating(5) is False
        assert machine.state.rating_open is True
        assert machine.state.error_message == "Failed to submit the rating. Please try again."

        assert await finalizer.submit_rating(5) is True
        assert machine.state.error_message is None
        assert machine.phase == RidePhase.CLOSED

    @pytest.mark.asyncio
    async def test_submit_before_completion_ignored(self, finalizer, mock_driver_client) -> None:
        assert await finalizer.submit_rating(5) is False
        mock_driver_client.rate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dismiss_closes_without_request(self, finalizer, machine, mock_driver_client) -> None:
        await finalizer.complete()

        assert await finalizer.dismiss_rating() is True

        mock_driver_client.rate.assert_not_awaited()
        assert machine.phase == RidePhase.CLOSED
        assert await finalizer.dismiss_rating() is False
