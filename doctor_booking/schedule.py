"""Schedule session: one doctor's schedule while the schedule view is open.

State machine:
    IDLE -> LOADING -> {READY, FAILED}
    READY/FAILED -> LOADING (refresh)
    any -> IDLE (close)

Every fetch carries a FetchTicket naming the episode (one open-to-close
lifetime) and the request within it. A result is applied only if its
ticket is still the latest one, so a slow answer for doctor A can never
land in a session that has since moved on to doctor B, and an old refresh
cannot overwrite a newer one.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Sequence

from doctor_booking.errors import FetchError, InvalidTransition, SlotNotFound
from doctor_booking.logging_config import get_logger
from doctor_booking.models import ScheduleDay, TimeSlot

logger = get_logger(__name__)


class ScheduleState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchTicket:
    """Tag attached to one in-flight schedule fetch."""
    episode: int
    request: int
    doctor_id: int


class ScheduleSession:
    """Loads and holds the schedule of at most one doctor."""

    def __init__(self, client):
        """
        Args:
            client: Object with ``async get_schedule(doctor_id) -> list[ScheduleDay]``
        """
        self._client = client
        self._state = ScheduleState.IDLE
        self._doctor_id: Optional[int] = None
        self._days: Tuple[ScheduleDay, ...] = ()
        self._error: Optional[FetchError] = None
        self._episode = 0
        self._request = 0
        self._ticket: Optional[FetchTicket] = None

    @property
    def state(self) -> ScheduleState:
        return self._state

    @property
    def doctor_id(self) -> Optional[int]:
        return self._doctor_id

    @property
    def days(self) -> Tuple[ScheduleDay, ...]:
        return self._days

    @property
    def error(self) -> Optional[FetchError]:
        return self._error

    @property
    def ticket(self) -> Optional[FetchTicket]:
        """Ticket of the latest fetch issued for the open episode."""
        return self._ticket

    @property
    def is_open(self) -> bool:
        return self._state != ScheduleState.IDLE

    async def open(self, doctor_id: int) -> None:
        """Start a new episode for doctor_id and fetch its schedule.

        Data from any previous doctor is dropped before the fetch starts.
        Reopening the same doctor always refetches.
        """
        self._episode += 1
        self._doctor_id = doctor_id
        logger.info("schedule_opened", episode=self._episode, doctor_id=doctor_id)
        await self._fetch(self._issue())

    async def refresh(self) -> None:
        """Refetch the open doctor's schedule within the same episode.

        Raises:
            InvalidTransition: If no schedule is open
        """
        if not self.is_open:
            raise InvalidTransition("schedule", self._state.value, "refresh")
        logger.info("schedule_refresh", episode=self._episode, doctor_id=self._doctor_id)
        await self._fetch(self._issue())

    def close(self) -> None:
        """Discard the schedule. Results still in flight will be ignored."""
        if self.is_open:
            logger.info("schedule_closed", episode=self._episode, doctor_id=self._doctor_id)
        self._state = ScheduleState.IDLE
        self._doctor_id = None
        self._days = ()
        self._error = None
        self._ticket = None

    def on_fetched(self, ticket: FetchTicket, days: Sequence[ScheduleDay]) -> bool:
        """Apply a fetch result. Returns False if the ticket is stale."""
        if not self._is_current(ticket):
            logger.info("stale_schedule_discarded", episode=ticket.episode,
                        request=ticket.request, doctor_id=ticket.doctor_id)
            return False
        self._days = tuple(days)
        self._error = None
        self._state = ScheduleState.READY
        logger.debug("schedule_ready", episode=ticket.episode, days=len(self._days))
        return True

    def on_fetch_failed(self, ticket: FetchTicket, error: FetchError) -> bool:
        """Record a fetch failure. The episode stays open. Returns False if stale."""
        if not self._is_current(ticket):
            logger.info("stale_schedule_error_discarded", episode=ticket.episode,
                        request=ticket.request, doctor_id=ticket.doctor_id)
            return False
        self._days = ()
        self._error = error
        self._state = ScheduleState.FAILED
        logger.warning("schedule_load_failed", episode=ticket.episode,
                       doctor_id=ticket.doctor_id, message=error.message)
        return True

    def slot(self, date: str, slot_id: str) -> TimeSlot:
        """
        Look up a slot in the loaded schedule.

        Raises:
            SlotNotFound: If the date or slot is not in the schedule
        """
        for day in self._days:
            if day.date == date:
                found = day.find_slot(slot_id)
                if found is not None:
                    return found
                break
        raise SlotNotFound(date, slot_id)

    def _issue(self) -> FetchTicket:
        self._request += 1
        self._ticket = FetchTicket(self._episode, self._request, self._doctor_id)
        self._state = ScheduleState.LOADING
        self._days = ()
        self._error = None
        return self._ticket

    def _is_current(self, ticket: FetchTicket) -> bool:
        return self._ticket is not None and ticket == self._ticket

    async def _fetch(self, ticket: FetchTicket) -> None:
        try:
            days = await self._client.get_schedule(ticket.doctor_id)
        except FetchError as e:
            self.on_fetch_failed(ticket, e)
            return
        self.on_fetched(ticket, days)
