"""Client for the directory, schedule and booking services.

Every response is an envelope ``{success, data, error}``. A non-2xx status
or ``success != true`` is a failure regardless of the body; the user-facing
message is ``error.message`` when present, else a per-call fallback.
"""
import asyncio
from typing import List, Optional, Type

import requests
from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from structlog.contextvars import bound_contextvars

from doctor_booking import config
from doctor_booking.circuit_breaker import CircuitBreaker, ServiceUnavailable
from doctor_booking.errors import ClinicError, FetchError, BookingError
from doctor_booking.http_client import create_http_session
from doctor_booking.logging_config import REQUEST_ID_HEADER, get_logger, generate_request_id
from doctor_booking.models import Doctor, ScheduleDay, BookingRequest, Envelope

logger = get_logger(__name__)

_doctor_list = TypeAdapter(List[Doctor])
_schedule_days = TypeAdapter(List[ScheduleDay])


class ClinicApiClient:
    """Blocking client. One session and one circuit breaker per instance."""

    def __init__(
        self,
        base_url: str = config.CLINIC_API_BASE_URL,
        session: Optional[requests.Session] = None,
        breaker: Optional[CircuitBreaker] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or create_http_session()
        self.breaker = breaker or CircuitBreaker(
            name="clinic-api",
            failure_threshold=config.CIRCUIT_FAILURE_THRESHOLD,
            timeout=config.CIRCUIT_TIMEOUT
        )

    def list_doctors(self) -> List[Doctor]:
        """GET /doctors.

        Raises:
            FetchError: transport failure, non-2xx, or success=false
        """
        fallback = config.DOCTORS_FETCH_FAILED
        envelope = self._send("GET", "/doctors", FetchError, fallback)
        return self._parse(_doctor_list, envelope.data, fallback)

    def get_schedule(self, doctor_id: int) -> List[ScheduleDay]:
        """GET /doctors/{id}/schedule. An empty list is a valid answer.

        Raises:
            FetchError: transport failure, non-2xx, or success=false
        """
        fallback = config.SCHEDULE_FETCH_FAILED
        envelope = self._send("GET", f"/doctors/{doctor_id}/schedule", FetchError, fallback)
        return self._parse(_schedule_days, envelope.data, fallback)

    def create_booking(self, request: BookingRequest) -> None:
        """POST /bookings. Sent exactly once per call.

        Raises:
            BookingError: transport failure, non-2xx, or success=false
        """
        self._send(
            "POST",
            "/bookings",
            BookingError,
            config.BOOKING_FAILED,
            json=request.to_payload()
        )

    def _send(
        self,
        method: str,
        path: str,
        error_cls: Type[ClinicError],
        fallback: str,
        **kwargs
    ) -> Envelope:
        request_id = generate_request_id()
        send = self.session.get if method == "GET" else self.session.post

        with bound_contextvars(request_id=request_id, method=method, path=path):
            try:
                response = self.breaker.call(
                    send,
                    f"{self.base_url}{path}",
                    headers={REQUEST_ID_HEADER: request_id},
                    **kwargs
                )
            except ServiceUnavailable as e:
                logger.warning("request_short_circuited", retry_after=e.retry_after)
                raise error_cls(fallback) from e
            except requests.exceptions.RequestException as e:
                logger.warning("request_failed", error=str(e))
                raise error_cls(fallback) from e

            envelope = self._read_envelope(response)
            if not response.ok or envelope is None or not envelope.success:
                message = fallback
                if envelope is not None and envelope.error and envelope.error.message:
                    message = envelope.error.message
                logger.warning("request_rejected", status=response.status_code, message=message)
                raise error_cls(message, status_code=response.status_code)

            logger.info("request_succeeded", status=response.status_code)
            return envelope

    @staticmethod
    def _read_envelope(response: requests.Response) -> Optional[Envelope]:
        try:
            body = response.json()
        except ValueError:
            return None
        if not isinstance(body, dict):
            return None
        try:
            return Envelope.model_validate(body)
        except PydanticValidationError:
            return None

    @staticmethod
    def _parse(adapter: TypeAdapter, data, fallback: str):
        if data is None:
            return []
        try:
            return adapter.validate_python(data)
        except PydanticValidationError as e:
            logger.warning("malformed_payload", errors=e.error_count())
            raise FetchError(fallback) from e


class AsyncClinicClient:
    """Awaitable facade over ClinicApiClient.

    Each call runs in a worker thread so the event loop keeps serving other
    intents while the request is outstanding.
    """

    def __init__(self, client: Optional[ClinicApiClient] = None):
        self.client = client or ClinicApiClient()

    async def list_doctors(self) -> List[Doctor]:
        return await asyncio.to_thread(self.client.list_doctors)

    async def get_schedule(self, doctor_id: int) -> List[ScheduleDay]:
        return await asyncio.to_thread(self.client.get_schedule, doctor_id)

    async def create_booking(self, request: BookingRequest) -> None:
        await asyncio.to_thread(self.client.create_booking, request)
