"""Directory cache: the doctor list, loaded once.

State machine:
    IDLE -> LOADING -> {LOADED, FAILED}
    FAILED -> LOADING (retry)

Only this class writes the doctor list; everyone else reads an immutable
tuple. A failed load keeps whatever was there before.
"""
import asyncio
from enum import Enum
from typing import Optional, Tuple

from doctor_booking import config
from doctor_booking.errors import FetchError, InvalidTransition
from doctor_booking.logging_config import get_logger
from doctor_booking.models import Doctor

logger = get_logger(__name__)


class DirectoryState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class DirectoryCache:
    """Holds the fetched doctor list for the whole app."""

    def __init__(self, client):
        """
        Args:
            client: Object with ``async list_doctors() -> list[Doctor]``
        """
        self._client = client
        self._state = DirectoryState.IDLE
        self._doctors: Tuple[Doctor, ...] = ()
        self._error: Optional[FetchError] = None
        self._inflight: Optional[asyncio.Future] = None

    @property
    def state(self) -> DirectoryState:
        return self._state

    @property
    def doctors(self) -> Tuple[Doctor, ...]:
        return self._doctors

    @property
    def error(self) -> Optional[FetchError]:
        return self._error

    async def load(self) -> Tuple[Doctor, ...]:
        """
        Load the doctor list.

        A call made while a load is in flight joins that load instead of
        issuing a second request. Once loaded, the cached list is returned.

        Raises:
            FetchError: If the directory service call failed
        """
        if self._inflight is not None:
            logger.debug("directory_load_coalesced")
            return await asyncio.shield(self._inflight)

        if self._state == DirectoryState.LOADED:
            return self._doctors

        self._state = DirectoryState.LOADING
        self._error = None
        self._inflight = asyncio.ensure_future(self._fetch())
        # Cleared when the fetch itself settles, not when a caller stops waiting
        self._inflight.add_done_callback(self._clear_inflight)
        return await asyncio.shield(self._inflight)

    async def retry(self) -> Tuple[Doctor, ...]:
        """Reload after a failure.

        Raises:
            InvalidTransition: If the last load did not fail
            FetchError: If the retry failed too
        """
        if self._state != DirectoryState.FAILED:
            raise InvalidTransition("directory", self._state.value, "retry")
        return await self.load()

    def _clear_inflight(self, future: asyncio.Future) -> None:
        if self._inflight is future:
            self._inflight = None

    async def _fetch(self) -> Tuple[Doctor, ...]:
        logger.info("directory_loading")
        try:
            doctors = await self._client.list_doctors()
        except FetchError as e:
            self._state = DirectoryState.FAILED
            self._error = e
            logger.warning("directory_load_failed", message=e.message)
            raise
        except Exception as e:
            self._state = DirectoryState.FAILED
            self._error = FetchError(config.DOCTORS_FETCH_FAILED)
            logger.error("directory_load_crashed", error=repr(e))
            raise self._error from e

        self._doctors = tuple(doctors)
        self._state = DirectoryState.LOADED
        logger.info("directory_loaded", count=len(self._doctors))
        return self._doctors
