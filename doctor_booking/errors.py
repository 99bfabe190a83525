"""Error taxonomy for the booking workflow.

- FetchError: directory or schedule load failed (transport or envelope).
- ValidationError / MissingField: client-side draft check, never sent.
- BookingError: the booking service rejected the request or was unreachable.
- InvalidTransition: an intent that the component's current state forbids.
"""
from typing import Optional


class ClinicError(Exception):
    """Base class for errors surfaced by the clinic services."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FetchError(ClinicError):
    """Raised when the doctor list or a schedule cannot be loaded."""
    pass


class BookingError(ClinicError):
    """Raised when a booking submission fails.

    Every failure is presented as correctable, so ``retryable`` is True
    unless a caller explicitly decides otherwise.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = True
    ):
        super().__init__(message, status_code)
        self.retryable = retryable


class ValidationError(Exception):
    """Raised when a booking draft is not ready for submission."""
    pass


class MissingField(ValidationError):
    """A required patient field is empty or whitespace-only."""

    def __init__(self, field_name: str):
        super().__init__(f"Missing required field: {field_name}")
        self.field_name = field_name

    def __eq__(self, other):
        return isinstance(other, MissingField) and other.field_name == self.field_name

    def __hash__(self):
        return hash(("MissingField", self.field_name))


class SlotNotFound(LookupError):
    """No slot with this id on this date in the loaded schedule."""

    def __init__(self, date: str, slot_id: str):
        super().__init__(f"Slot {slot_id!r} not found on {date}")
        self.date = date
        self.slot_id = slot_id


class InvalidTransition(Exception):
    """Raised when an action is not allowed in the current state."""

    def __init__(self, component: str, state: str, action: str):
        super().__init__(f"{component}: cannot {action} while {state}")
        self.component = component
        self.state = state
        self.action = action
