"""Shared test fixtures."""
from unittest.mock import AsyncMock

import pytest
import structlog

from tests.utils.fakes import GatedClient, make_day, make_doctor


@pytest.fixture(autouse=True)
def _isolate_structlog_contextvars():
    """Keep context bound by one test (e.g. WSGI middleware) out of the next."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def doctors():
    """Doctors across several categories, in display order."""
    return [
        make_doctor(1, "UMUM"),
        make_doctor(2, "GIGI"),
        make_doctor(3, "UMUM"),
        make_doctor(4, "ANAK"),
        make_doctor(5, "GIGI"),
    ]


@pytest.fixture
def schedule_days():
    return [
        make_day("2024-01-15", ("09:00", True, "s1"), ("10:00", False, "s2")),
        make_day("2024-01-16", ("09:00", True, "s3")),
    ]


@pytest.fixture
def client(doctors, schedule_days):
    """Async clinic client double that answers immediately."""
    mock = AsyncMock()
    mock.list_doctors.return_value = doctors
    mock.get_schedule.return_value = schedule_days
    mock.create_booking.return_value = None
    return mock


@pytest.fixture
def gated_client():
    return GatedClient()
