"""Display formatting in Indonesian (id-ID).

Only for display: booking requests always echo the server's date string.
"""
from datetime import date
from typing import Dict, Optional

from doctor_booking.models import Doctor, TimeSlot

WEEKDAYS = ["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]

MONTHS = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def format_date(date_string: str) -> str:
    """
    Format an ISO date as a long Indonesian date.

    Example:
        >>> format_date("2024-01-15")
        'Senin, 15 Januari 2024'

    Strings that are not ISO dates are returned unchanged.
    """
    try:
        day = date.fromisoformat(date_string[:10])
    except ValueError:
        return date_string
    return f"{WEEKDAYS[day.weekday()]}, {day.day} {MONTHS[day.month - 1]} {day.year}"


def booking_summary(
    doctor: Optional[Doctor],
    date_string: str,
    slot: TimeSlot
) -> Dict[str, str]:
    """Booking detail lines shown above the patient form."""
    return {
        "Dokter": doctor.name if doctor else "",
        "Tanggal": format_date(date_string),
        "Waktu": slot.time,
        "Biaya": slot.price,
    }
