"""Tests for the schedule session and its stale-result guard."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from doctor_booking.errors import FetchError, InvalidTransition, SlotNotFound
from doctor_booking.schedule import FetchTicket, ScheduleSession, ScheduleState
from tests.utils.fakes import make_day, settle

DAYS_A = [make_day("2024-01-15", ("09:00", True, "a1"))]
DAYS_B = [make_day("2024-01-16", ("10:00", True, "b1"))]


class TestOpen:

    @pytest.mark.asyncio
    async def test_open_loads_days(self, client, schedule_days):
        session = ScheduleSession(client)

        await session.open(7)

        client.get_schedule.assert_awaited_once_with(7)
        assert session.state == ScheduleState.READY
        assert session.doctor_id == 7
        assert session.days == tuple(schedule_days)

    @pytest.mark.asyncio
    async def test_empty_schedule_is_ready(self):
        client = AsyncMock()
        client.get_schedule.return_value = []
        session = ScheduleSession(client)

        await session.open(7)

        assert session.state == ScheduleState.READY
        assert session.days == ()

    @pytest.mark.asyncio
    async def test_failure_keeps_episode_open(self):
        client = AsyncMock()
        client.get_schedule.side_effect = FetchError("Failed to fetch schedule")
        session = ScheduleSession(client)

        await session.open(7)

        assert session.state == ScheduleState.FAILED
        assert session.is_open
        assert session.doctor_id == 7
        assert session.error.message == "Failed to fetch schedule"

    @pytest.mark.asyncio
    async def test_previous_doctor_dropped_immediately(self, gated_client):
        """Opening B shows loading at once, never A's data."""
        session = ScheduleSession(gated_client)
        first = asyncio.create_task(session.open(1))
        await settle()
        gated_client.release_schedule(0, DAYS_A)
        await first
        assert session.days == tuple(DAYS_A)

        second = asyncio.create_task(session.open(2))
        await settle()

        assert session.state == ScheduleState.LOADING
        assert session.doctor_id == 2
        assert session.days == ()

        gated_client.release_schedule(1, DAYS_B)
        await second


class TestStaleResults:

    @pytest.mark.asyncio
    async def test_late_result_for_previous_doctor_discarded(self, gated_client):
        session = ScheduleSession(gated_client)

        open_a = asyncio.create_task(session.open(1))
        await settle()
        open_b = asyncio.create_task(session.open(2))
        await settle()

        gated_client.release_schedule(1, DAYS_B)
        await open_b
        gated_client.release_schedule(0, DAYS_A)
        await open_a

        assert session.doctor_id == 2
        assert session.days == tuple(DAYS_B)

    @pytest.mark.asyncio
    async def test_early_result_for_previous_doctor_discarded(self, gated_client):
        """A resolves while B is still loading: B's session stays loading."""
        session = ScheduleSession(gated_client)

        open_a = asyncio.create_task(session.open(1))
        await settle()
        open_b = asyncio.create_task(session.open(2))
        await settle()

        gated_client.release_schedule(0, DAYS_A)
        await open_a

        assert session.state == ScheduleState.LOADING
        assert session.days == ()

        gated_client.release_schedule(1, DAYS_B)
        await open_b
        assert session.days == tuple(DAYS_B)

    @pytest.mark.asyncio
    async def test_stale_failure_discarded(self, gated_client):
        session = ScheduleSession(gated_client)

        open_a = asyncio.create_task(session.open(1))
        await settle()
        open_b = asyncio.create_task(session.open(2))
        await settle()

        gated_client.release_schedule(1, DAYS_B)
        await open_b
        gated_client.release_schedule(0, error=FetchError("boom"))
        await open_a

        assert session.state == ScheduleState.READY
        assert session.error is None

    @pytest.mark.asyncio
    async def test_same_doctor_reopen_discards_first_fetch(self, gated_client):
        session = ScheduleSession(gated_client)

        first = asyncio.create_task(session.open(7))
        await settle()
        second = asyncio.create_task(session.open(7))
        await settle()

        gated_client.release_schedule(1, DAYS_B)
        await second
        gated_client.release_schedule(0, DAYS_A)
        await first

        assert session.days == tuple(DAYS_B)

    @pytest.mark.asyncio
    async def test_result_after_close_discarded(self, gated_client):
        session = ScheduleSession(gated_client)

        task = asyncio.create_task(session.open(1))
        await settle()
        session.close()
        gated_client.release_schedule(0, DAYS_A)
        await task

        assert session.state == ScheduleState.IDLE
        assert session.days == ()

    def test_on_fetched_rejects_foreign_ticket(self, client):
        session = ScheduleSession(client)

        applied = session.on_fetched(FetchTicket(episode=9, request=9, doctor_id=1), DAYS_A)

        assert applied is False
        assert session.state == ScheduleState.IDLE


class TestCloseAndRefresh:

    @pytest.mark.asyncio
    async def test_close_discards_everything(self, client):
        session = ScheduleSession(client)
        await session.open(7)

        session.close()

        assert session.state == ScheduleState.IDLE
        assert session.doctor_id is None
        assert session.days == ()
        assert session.ticket is None

    @pytest.mark.asyncio
    async def test_reopen_same_doctor_refetches(self, client):
        session = ScheduleSession(client)
        await session.open(7)
        session.close()

        await session.open(7)

        assert client.get_schedule.await_count == 2

    @pytest.mark.asyncio
    async def test_refresh_refetches_same_doctor_same_episode(self, client):
        session = ScheduleSession(client)
        await session.open(7)
        episode = session.ticket.episode

        await session.refresh()

        assert client.get_schedule.await_count == 2
        assert client.get_schedule.await_args.args == (7,)
        assert session.ticket.episode == episode
        assert session.state == ScheduleState.READY

    @pytest.mark.asyncio
    async def test_refresh_replaces_days_wholesale(self):
        client = AsyncMock()
        client.get_schedule.side_effect = [
            [make_day("2024-01-15", ("09:00", True, "s1"))],
            [make_day("2024-01-15", ("09:00", False, "s1"))],
        ]
        session = ScheduleSession(client)
        await session.open(7)

        await session.refresh()

        assert session.slot("2024-01-15", "s1").available is False

    @pytest.mark.asyncio
    async def test_older_refresh_cannot_overwrite_newer(self, gated_client):
        session = ScheduleSession(gated_client)
        opening = asyncio.create_task(session.open(7))
        await settle()
        gated_client.release_schedule(0, DAYS_A)
        await opening

        older = asyncio.create_task(session.refresh())
        await settle()
        newer = asyncio.create_task(session.refresh())
        await settle()
        gated_client.release_schedule(2, DAYS_B)
        await newer
        gated_client.release_schedule(1, DAYS_A)
        await older

        assert session.days == tuple(DAYS_B)

    @pytest.mark.asyncio
    async def test_refresh_requires_open_episode(self, client):
        session = ScheduleSession(client)

        with pytest.raises(InvalidTransition):
            await session.refresh()


class TestSlotLookup:

    @pytest.mark.asyncio
    async def test_finds_slot(self, client):
        session = ScheduleSession(client)
        await session.open(7)

        slot = session.slot("2024-01-15", "s2")

        assert slot.time == "10:00"
        assert slot.available is False

    @pytest.mark.asyncio
    async def test_unknown_slot(self, client):
        session = ScheduleSession(client)
        await session.open(7)

        with pytest.raises(SlotNotFound):
            session.slot("2024-01-15", "s3")
        with pytest.raises(SlotNotFound):
            session.slot("2099-01-01", "s1")
