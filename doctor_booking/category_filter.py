"""Filter the doctor list by category.

"Semua" (all) passes the list through; any other value keeps the doctors
of that category in their original order. Unknown categories simply
match nothing.
"""
from typing import Iterable, List, Union

from doctor_booking.config import ALL_CATEGORIES, CATEGORIES, EMPTY_CATEGORY
from doctor_booking.models import Doctor, DoctorCategory


def filter_doctors(
    doctors: Iterable[Doctor],
    category: Union[str, DoctorCategory]
) -> List[Doctor]:
    """
    Filter doctors by category.

    Args:
        doctors: Doctor list, in display order
        category: "Semua" or one of the DoctorCategory values

    Returns:
        New list; same order as the input

    Example:
        >>> [d.id for d in filter_doctors(doctors, "GIGI")]
        [2]
    """
    if category == ALL_CATEGORIES:
        return list(doctors)

    return [doctor for doctor in doctors if doctor.category == category]


def is_known_category(category: str) -> bool:
    return category in CATEGORIES


def empty_message(category: str) -> str:
    """Message shown when a category has no doctors."""
    return EMPTY_CATEGORY.format(category=category)
