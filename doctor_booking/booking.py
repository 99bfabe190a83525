"""Booking transaction: one attempt to reserve one slot.

State machine:
    DRAFTING -> VALIDATING -> SUBMITTING -> {SUCCEEDED, FAILED}
    VALIDATING -> DRAFTING (missing patient field)
    FAILED -> DRAFTING (edit) | VALIDATING (retry with the same draft)
    DRAFTING/VALIDATING/SUBMITTING/FAILED -> CANCELLED

SUCCEEDED and CANCELLED are terminal. While SUBMITTING a second submit is
rejected without touching the network.
"""
from enum import Enum
from typing import Dict, Optional

from doctor_booking.errors import (
    BookingError,
    InvalidTransition,
    MissingField,
    ValidationError,
)
from doctor_booking.logging_config import get_logger
from doctor_booking.models import BookingRequest, BookingOutcome

logger = get_logger(__name__)


class BookingState(str, Enum):
    DRAFTING = "drafting"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Checked in this order; the first empty one is reported.
REQUIRED_FIELDS = ("patient_name", "patient_phone", "patient_email")
EDITABLE_FIELDS = REQUIRED_FIELDS + ("notes",)

# Wire names accepted by update()
FIELD_ALIASES = {
    "patientName": "patient_name",
    "patientPhone": "patient_phone",
    "patientEmail": "patient_email",
}
WIRE_NAMES = {name: wire for wire, name in FIELD_ALIASES.items()}

_SUBMITTABLE = (BookingState.DRAFTING, BookingState.FAILED)
_TERMINAL = (BookingState.SUCCEEDED, BookingState.CANCELLED)


class BookingTransaction:
    """Owns one draft and the outcome of submitting it."""

    def __init__(
        self,
        client,
        doctor_id: int,
        date: str,
        time: str,
        slot_id: str,
        price: Optional[str] = None
    ):
        """
        Args:
            client: Object with ``async create_booking(BookingRequest)``
            doctor_id, date, time, slot_id: The selected slot. ``date`` is the
                schedule's own string and is sent back unchanged.
            price: Slot price, for display only
        """
        self._client = client
        self.doctor_id = doctor_id
        self.date = date
        self.time = time
        self.slot_id = slot_id
        self.price = price
        self._fields: Dict[str, str] = {name: "" for name in REQUIRED_FIELDS}
        self._notes: Optional[str] = None
        self._state = BookingState.DRAFTING
        self._error: Optional[Exception] = None
        self.attempts = 0

    @classmethod
    def draft(cls, client, doctor_id: int, date: str, time: str, slot_id: str,
              price: Optional[str] = None) -> "BookingTransaction":
        """Seed a new draft for the chosen slot; patient fields start empty."""
        logger.info("booking_drafted", doctor_id=doctor_id, date=date, slot_id=slot_id)
        return cls(client, doctor_id, date, time, slot_id, price)

    @property
    def state(self) -> BookingState:
        return self._state

    @property
    def error(self) -> Optional[Exception]:
        """Last ValidationError or BookingError, cleared on edit and on success."""
        return self._error

    @property
    def fields(self) -> Dict[str, Optional[str]]:
        """Current patient fields and notes."""
        return {**self._fields, "notes": self._notes}

    @property
    def outcome(self) -> BookingOutcome:
        if self._state == BookingState.SUCCEEDED:
            return BookingOutcome.succeeded()
        if self._state == BookingState.FAILED and isinstance(self._error, BookingError):
            return BookingOutcome.failed(self._error.message, self._error.retryable)
        return BookingOutcome.pending()

    @property
    def is_terminal(self) -> bool:
        return self._state in _TERMINAL

    def update(self, field: str, value: str) -> None:
        """
        Set one patient field or the notes.

        Editing a failed draft puts it back into DRAFTING.

        Raises:
            KeyError: Unknown field
            InvalidTransition: Draft is submitting, confirmed or cancelled
        """
        name = FIELD_ALIASES.get(field, field)
        if name not in EDITABLE_FIELDS:
            raise KeyError(field)
        if self._state not in _SUBMITTABLE:
            raise InvalidTransition("booking", self._state.value, "edit")

        if name == "notes":
            self._notes = value or None
        else:
            self._fields[name] = value
        self._state = BookingState.DRAFTING
        self._error = None

    def validate(self) -> BookingRequest:
        """
        Check the draft and build the request.

        Pure with respect to the draft: calling it twice without edits gives
        the same answer.

        Raises:
            MissingField: First required patient field that is blank, named
                as the booking service names it (``patientName``)
        """
        for name in REQUIRED_FIELDS:
            if not self._fields[name].strip():
                raise MissingField(WIRE_NAMES[name])

        return BookingRequest(
            doctor_id=self.doctor_id,
            date=self.date,
            time=self.time,
            slot_id=self.slot_id,
            notes=self._notes,
            **self._fields
        )

    async def submit(self) -> BookingOutcome:
        """
        Validate and send the draft to the booking service.

        Returns:
            The SUCCEEDED outcome (or PENDING if cancelled meanwhile)

        Raises:
            InvalidTransition: Already submitting, or terminal
            MissingField: Draft incomplete; nothing was sent
            BookingError: Service rejected the booking or was unreachable
        """
        if self._state not in _SUBMITTABLE:
            raise InvalidTransition("booking", self._state.value, "submit")

        self._state = BookingState.VALIDATING
        try:
            request = self.validate()
        except ValidationError as e:
            self._state = BookingState.DRAFTING
            self._error = e
            logger.info("booking_invalid", error=str(e))
            raise

        self._state = BookingState.SUBMITTING
        self._error = None
        self.attempts += 1
        logger.info("booking_submitting", doctor_id=self.doctor_id,
                    slot_id=self.slot_id, attempt=self.attempts)
        try:
            await self._client.create_booking(request)
        except BookingError as e:
            if self._state == BookingState.CANCELLED:
                logger.info("booking_result_ignored", slot_id=self.slot_id)
                return self.outcome
            self._state = BookingState.FAILED
            self._error = e
            logger.warning("booking_failed", slot_id=self.slot_id, message=e.message)
            raise

        if self._state == BookingState.CANCELLED:
            logger.info("booking_result_ignored", slot_id=self.slot_id)
            return self.outcome

        self._state = BookingState.SUCCEEDED
        logger.info("booking_succeeded", doctor_id=self.doctor_id, slot_id=self.slot_id)
        return self.outcome

    async def retry(self) -> BookingOutcome:
        """Resubmit a failed draft.

        Raises:
            InvalidTransition: Not in a retryable failed state
        """
        if not (self._state == BookingState.FAILED
                and isinstance(self._error, BookingError)
                and self._error.retryable):
            raise InvalidTransition("booking", self._state.value, "retry")
        return await self.submit()

    def cancel(self) -> None:
        """Abandon the draft. No request is sent; a pending response is ignored.

        Raises:
            InvalidTransition: Booking already succeeded
        """
        if self._state == BookingState.SUCCEEDED:
            raise InvalidTransition("booking", self._state.value, "cancel")
        if self._state != BookingState.CANCELLED:
            logger.info("booking_cancelled", slot_id=self.slot_id, state=self._state.value)
        self._state = BookingState.CANCELLED
