"""Booking workflow: routes user intents to the components.

The presentation layer calls the intent methods and renders ``view()``.
Nothing here draws anything; everything here decides what can be drawn.

    select_category -> category filter
    view_schedule   -> ScheduleSession.open(doctor.id)
    pick_slot       -> BookingTransaction.draft (available slots only)
    submit_booking  -> validate + submit; on success acknowledge, close, refresh
    cancel_booking / close_schedule -> discard transient state
"""
import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from doctor_booking import config
from doctor_booking.booking import BookingState, BookingTransaction
from doctor_booking.category_filter import filter_doctors, empty_message, is_known_category
from doctor_booking.directory import DirectoryCache, DirectoryState
from doctor_booking.errors import (
    BookingError,
    FetchError,
    InvalidTransition,
    SlotNotFound,
    ValidationError,
)
from doctor_booking.formatting import booking_summary
from doctor_booking.logging_config import get_logger
from doctor_booking.models import BookingOutcome, Doctor, ScheduleDay, TimeSlot
from doctor_booking.schedule import ScheduleSession, ScheduleState

logger = get_logger(__name__)


@dataclass(frozen=True)
class BookingView:
    state: BookingState
    summary: Dict[str, str]
    fields: Dict[str, Optional[str]]
    error: Optional[str] = None
    confirmed: bool = False


@dataclass(frozen=True)
class WorkflowView:
    """Snapshot of everything the presentation layer needs."""
    directory_state: DirectoryState
    directory_error: Optional[str]
    categories: List[str]
    selected_category: str
    doctors: List[Doctor]
    empty_message: Optional[str]
    schedule_state: ScheduleState
    schedule_doctor: Optional[Doctor]
    schedule_days: Tuple[ScheduleDay, ...] = ()
    schedule_error: Optional[str] = None
    booking: Optional[BookingView] = None


class BookingWorkflow:
    """Owns the directory, the open schedule episode and the current booking."""

    def __init__(
        self,
        client,
        confirmation_seconds: float = config.BOOKING_CONFIRMATION_SECONDS
    ):
        """
        Args:
            client: Async clinic client (see AsyncClinicClient)
            confirmation_seconds: How long a confirmed booking stays on screen
        """
        self._client = client
        self.directory = DirectoryCache(client)
        self.schedule = ScheduleSession(client)
        self.selected_category = config.ALL_CATEGORIES
        self.selected_doctor: Optional[Doctor] = None
        self.booking: Optional[BookingTransaction] = None
        self.confirmation_seconds = confirmation_seconds
        self._confirming = False

    # Directory

    async def start(self) -> None:
        """Initial directory load. A failure is kept in the directory state."""
        try:
            await self.directory.load()
        except FetchError as e:
            logger.info("directory_unavailable", message=e.message)

    async def retry_directory(self) -> None:
        """Manual retry from the failed directory screen."""
        try:
            await self.directory.retry()
        except (FetchError, InvalidTransition) as e:
            logger.info("directory_retry_unsuccessful", error=str(e))

    def select_category(self, category: str) -> List[Doctor]:
        if not is_known_category(category):
            logger.warning("unknown_category", category=category)
        self.selected_category = category
        logger.debug("category_selected", category=category)
        return self.filtered_doctors

    @property
    def filtered_doctors(self) -> List[Doctor]:
        return filter_doctors(self.directory.doctors, self.selected_category)

    # Schedule

    async def view_schedule(self, doctor: Doctor) -> None:
        """Open the schedule for doctor, replacing any open schedule and draft."""
        self._discard_booking()
        self.selected_doctor = doctor
        await self.schedule.open(doctor.id)

    def close_schedule(self) -> None:
        self._discard_booking()
        self.schedule.close()
        self.selected_doctor = None

    # Booking

    def pick_slot(self, date: str, slot: TimeSlot) -> Optional[BookingTransaction]:
        """
        Start a draft for an available slot of the open schedule.

        The slot is looked up again in the session; an unknown or unavailable
        slot, a booking still in flight, or a confirmation still showing
        makes this a no-op.
        """
        if self.schedule.state != ScheduleState.READY:
            logger.info("pick_ignored", reason="schedule_not_ready")
            return None
        if self._confirming:
            logger.info("pick_ignored", reason="confirmation_showing")
            return None
        if self.booking is not None and self.booking.state in (
                BookingState.SUBMITTING, BookingState.SUCCEEDED):
            logger.info("pick_ignored", reason="booking_in_flight")
            return None
        try:
            current = self.schedule.slot(date, slot.slot_id)
        except SlotNotFound:
            logger.info("pick_ignored", reason="slot_not_found", slot_id=slot.slot_id)
            return None
        if not current.available:
            logger.info("pick_ignored", reason="slot_unavailable", slot_id=slot.slot_id)
            return None

        self.booking = BookingTransaction.draft(
            self._client,
            doctor_id=self.schedule.doctor_id,
            date=date,
            time=current.time,
            slot_id=current.slot_id,
            price=current.price,
        )
        return self.booking

    def update_booking(self, field_name: str, value: str) -> None:
        if self.booking is None:
            raise InvalidTransition("workflow", "no_booking", "edit")
        self.booking.update(field_name, value)

    async def submit_booking(self) -> BookingOutcome:
        """
        Validate and submit the current draft, or resubmit a failed one.

        Validation and service errors stay on the transaction for display.
        On success the confirmation is shown for ``confirmation_seconds``,
        then the booking view closes and the schedule is refetched so the
        server decides what is still available.

        Raises:
            InvalidTransition: No draft, or a submission already in flight
        """
        txn = self.booking
        if txn is None:
            raise InvalidTransition("workflow", "no_booking", "submit")

        try:
            outcome = await txn.submit()
        except (ValidationError, BookingError):
            return txn.outcome

        if txn.state == BookingState.SUCCEEDED:
            await self._acknowledge(txn)
        return outcome

    def cancel_booking(self) -> None:
        self._discard_booking()

    async def _acknowledge(self, txn: BookingTransaction) -> None:
        self._confirming = True
        try:
            await asyncio.sleep(self.confirmation_seconds)
        finally:
            self._confirming = False

        self._discard_booking()
        if self.schedule.is_open and self.schedule.doctor_id == txn.doctor_id:
            await self.schedule.refresh()

    def _discard_booking(self) -> None:
        if self.booking is not None and not self.booking.is_terminal:
            self.booking.cancel()
        self.booking = None

    # View

    def view(self) -> WorkflowView:
        directory_error = self.directory.error.message if self.directory.error else None
        doctors = self.filtered_doctors
        show_empty = self.directory.state == DirectoryState.LOADED and not doctors
        return WorkflowView(
            directory_state=self.directory.state,
            directory_error=directory_error,
            categories=list(config.CATEGORIES),
            selected_category=self.selected_category,
            doctors=doctors,
            empty_message=empty_message(self.selected_category) if show_empty else None,
            schedule_state=self.schedule.state,
            schedule_doctor=self.selected_doctor if self.schedule.is_open else None,
            schedule_days=self.schedule.days,
            schedule_error=self.schedule.error.message if self.schedule.error else None,
            booking=self._booking_view(),
        )

    def _booking_view(self) -> Optional[BookingView]:
        txn = self.booking
        if txn is None:
            return None

        error = None
        if isinstance(txn.error, ValidationError):
            error = config.MISSING_PATIENT_DATA
        elif isinstance(txn.error, BookingError):
            error = txn.error.message

        slot = TimeSlot(time=txn.time, available=True, price=txn.price or "", slot_id=txn.slot_id)
        return BookingView(
            state=txn.state,
            summary=booking_summary(self.selected_doctor, txn.date, slot),
            fields=txn.fields,
            error=error,
            confirmed=self._confirming and txn.state == BookingState.SUCCEEDED,
        )
