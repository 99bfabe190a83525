"""Pydantic models for the clinic service payloads.

Field names are snake_case in Python and camelCase on the wire
(``slotId``, ``timeSlots``, ``patientName``). Models parse either form
and always serialize with the wire aliases.
"""
from enum import Enum
from typing import List, Optional, Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DoctorCategory(str, Enum):
    """Doctor specialties offered by the clinic."""
    UMUM = "UMUM"
    GIGI = "GIGI"
    MATA = "MATA"
    KULIT = "KULIT"
    JANTUNG = "JANTUNG"
    ANAK = "ANAK"


class Doctor(BaseModel):
    """A doctor as listed by the directory service. Immutable once fetched."""
    id: int
    name: str
    category: DoctorCategory
    location: str
    schedule: str = Field(..., description="Human-readable practice hours")
    rating: float
    price: str
    image: Optional[str] = None
    specialty: Optional[str] = None
    experience: Optional[int] = Field(None, description="Years of practice")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "dr. Andi Wijaya",
                "category": "UMUM",
                "location": "Klinik Sehat, Jakarta Selatan",
                "schedule": "Senin - Jumat, 08:00 - 15:00",
                "rating": 4.8,
                "price": "Rp 150.000",
                "experience": 8
            }
        }
    )


class TimeSlot(BaseModel):
    """A bookable slot; ``slot_id`` is unique within its doctor and date."""
    time: str
    available: bool
    price: str
    slot_id: str = Field(..., alias="slotId")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ScheduleDay(BaseModel):
    """One date of a doctor's schedule with its ordered slots.

    ``date`` is kept exactly as the server sent it so it can be echoed
    back in a booking request unchanged.
    """
    date: str
    time_slots: List[TimeSlot] = Field(default_factory=list, alias="timeSlots")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def find_slot(self, slot_id: str) -> Optional[TimeSlot]:
        return next((s for s in self.time_slots if s.slot_id == slot_id), None)


class BookingRequest(BaseModel):
    """Body of POST /bookings."""
    doctor_id: int = Field(..., alias="doctorId")
    date: str
    time: str
    slot_id: str = Field(..., alias="slotId")
    patient_name: str = Field(..., alias="patientName")
    patient_phone: str = Field(..., alias="patientPhone")
    patient_email: str = Field(..., alias="patientEmail")
    notes: Optional[str] = None

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "doctorId": 7,
                "date": "2024-01-15",
                "time": "09:00",
                "slotId": "s1",
                "patientName": "Budi Santoso",
                "patientPhone": "081234567890",
                "patientEmail": "budi@example.com",
                "notes": "Kontrol rutin"
            }
        }
    )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the wire (camelCase, optional notes omitted when unset)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class EnvelopeError(BaseModel):
    message: Optional[str] = None
    code: Optional[str] = None


class Envelope(BaseModel):
    """The ``{success, data, error}`` wrapper around every service response."""
    success: bool = False
    data: Any = None
    error: Optional[EnvelopeError] = None

    @field_validator("error", mode="before")
    @classmethod
    def accept_bare_message(cls, v):
        """Older services send ``error`` as a plain string."""
        if isinstance(v, str):
            return {"message": v}
        return v


class OutcomeStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class BookingOutcome(BaseModel):
    """Result of the current booking attempt as seen by the UI."""
    status: OutcomeStatus
    reason: Optional[str] = None
    retryable: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def pending(cls) -> "BookingOutcome":
        return cls(status=OutcomeStatus.PENDING)

    @classmethod
    def succeeded(cls) -> "BookingOutcome":
        return cls(status=OutcomeStatus.SUCCEEDED)

    @classmethod
    def failed(cls, reason: str, retryable: bool = True) -> "BookingOutcome":
        return cls(status=OutcomeStatus.FAILED, reason=reason, retryable=retryable)
