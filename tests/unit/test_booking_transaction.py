"""Tests for the booking transaction state machine."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from doctor_booking.booking import BookingState, BookingTransaction
from doctor_booking.errors import BookingError, InvalidTransition, MissingField
from doctor_booking.models import OutcomeStatus
from tests.utils.fakes import settle


@pytest.fixture
def booking_client():
    client = AsyncMock()
    client.create_booking.return_value = None
    return client


def new_draft(client):
    return BookingTransaction.draft(client, doctor_id=7, date="2024-01-15",
                                    time="09:00", slot_id="s1", price="Rp 150.000")


def fill(txn, name="Budi Santoso", phone="081234567890", email="budi@example.com"):
    txn.update("patient_name", name)
    txn.update("patient_phone", phone)
    txn.update("patient_email", email)


class TestDraft:

    def test_seeds_slot_and_empty_patient_fields(self, booking_client):
        txn = new_draft(booking_client)

        assert txn.state == BookingState.DRAFTING
        assert (txn.doctor_id, txn.date, txn.time, txn.slot_id) == (7, "2024-01-15", "09:00", "s1")
        assert txn.fields == {"patient_name": "", "patient_phone": "",
                              "patient_email": "", "notes": None}
        assert txn.outcome.status == OutcomeStatus.PENDING

    def test_update_accepts_wire_names(self, booking_client):
        txn = new_draft(booking_client)

        txn.update("patientName", "Budi")
        txn.update("notes", "Kontrol rutin")

        assert txn.fields["patient_name"] == "Budi"
        assert txn.fields["notes"] == "Kontrol rutin"

    def test_update_rejects_slot_fields(self, booking_client):
        txn = new_draft(booking_client)

        with pytest.raises(KeyError):
            txn.update("slot_id", "s9")


class TestValidate:

    def test_missing_name(self, booking_client):
        txn = new_draft(booking_client)
        fill(txn, name="")

        with pytest.raises(MissingField) as exc_info:
            txn.validate()

        assert exc_info.value.field_name == "patientName"

    @pytest.mark.parametrize("field, wire_name", [
        ("patient_phone", "patientPhone"),
        ("patient_email", "patientEmail"),
    ])
    def test_whitespace_only_is_missing(self, booking_client, field, wire_name):
        txn = new_draft(booking_client)
        fill(txn)
        txn.update(field, "   ")

        with pytest.raises(MissingField) as exc_info:
            txn.validate()

        assert exc_info.value.field_name == wire_name

    def test_validate_is_idempotent(self, booking_client):
        txn = new_draft(booking_client)
        fill(txn, email="")

        errors = []
        for _ in range(2):
            with pytest.raises(MissingField) as exc_info:
                txn.validate()
            errors.append(exc_info.value)

        assert errors[0] == errors[1]
        assert txn.state == BookingState.DRAFTING

        fill(txn)
        assert txn.validate() == txn.validate()

    def test_valid_draft_builds_request(self, booking_client):
        txn = new_draft(booking_client)
        fill(txn)

        request = txn.validate()

        assert request.to_payload() == {
            "doctorId": 7, "date": "2024-01-15", "time": "09:00", "slotId": "s1",
            "patientName": "Budi Santoso", "patientPhone": "081234567890",
            "patientEmail": "budi@example.com",
        }


class TestSubmit:

    @pytest.mark.asyncio
    async def test_success(self, booking_client):
        txn = new_draft(booking_client)
        fill(txn)

        outcome = await txn.submit()

        assert outcome.status == OutcomeStatus.SUCCEEDED
        assert txn.state == BookingState.SUCCEEDED
        booking_client.create_booking.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_field_never_reaches_service(self, booking_client):
        txn = new_draft(booking_client)
        fill(txn, name="")

        with pytest.raises(MissingField):
            await txn.submit()

        booking_client.create_booking.assert_not_awaited()
        assert txn.state == BookingState.DRAFTING
        assert txn.error == MissingField("patientName")

    @pytest.mark.asyncio
    async def test_rejection_keeps_draft(self, booking_client):
        booking_client.create_booking.side_effect = BookingError("Slot taken", status_code=409)
        txn = new_draft(booking_client)
        fill(txn)

        with pytest.raises(BookingError):
            await txn.submit()

        assert txn.state == BookingState.FAILED
        assert txn.outcome.status == OutcomeStatus.FAILED
        assert txn.outcome.reason == "Slot taken"
        assert txn.outcome.retryable is True
        assert txn.fields["patient_name"] == "Budi Santoso"
        assert txn.fields["patient_email"] == "budi@example.com"

    @pytest.mark.asyncio
    async def test_second_submit_while_submitting_rejected(self, gated_client):
        txn = new_draft(gated_client)
        fill(txn)

        first = asyncio.create_task(txn.submit())
        await settle()
        assert txn.state == BookingState.SUBMITTING

        with pytest.raises(InvalidTransition):
            await txn.submit()

        assert len(gated_client.booking_calls) == 1
        gated_client.booking_calls[0][1].set_result(None)
        await first
        assert txn.state == BookingState.SUCCEEDED

    @pytest.mark.asyncio
    async def test_cannot_edit_while_submitting(self, gated_client):
        txn = new_draft(gated_client)
        fill(txn)

        task = asyncio.create_task(txn.submit())
        await settle()

        with pytest.raises(InvalidTransition):
            txn.update("notes", "late edit")

        gated_client.booking_calls[0][1].set_result(None)
        await task

    @pytest.mark.asyncio
    async def test_submit_after_success_rejected(self, booking_client):
        txn = new_draft(booking_client)
        fill(txn)
        await txn.submit()

        with pytest.raises(InvalidTransition):
            await txn.submit()

        booking_client.create_booking.assert_awaited_once()


class TestRetry:

    @pytest.mark.asyncio
    async def test_retry_resubmits_same_draft(self, booking_client):
        booking_client.create_booking.side_effect = [BookingError("Failed to create booking"), None]
        txn = new_draft(booking_client)
        fill(txn)

        with pytest.raises(BookingError):
            await txn.submit()
        outcome = await txn.retry()

        assert outcome.status == OutcomeStatus.SUCCEEDED
        assert txn.attempts == 2
        first, second = booking_client.create_booking.await_args_list
        assert first.args[0] == second.args[0]

    @pytest.mark.asyncio
    async def test_edit_after_failure_returns_to_drafting(self, booking_client):
        booking_client.create_booking.side_effect = [BookingError("Invalid email"), None]
        txn = new_draft(booking_client)
        fill(txn, email="budi@")

        with pytest.raises(BookingError):
            await txn.submit()
        txn.update("patient_email", "budi@example.com")

        assert txn.state == BookingState.DRAFTING
        assert txn.error is None
        await txn.submit()
        assert booking_client.create_booking.await_args.args[0].patient_email == "budi@example.com"

    @pytest.mark.asyncio
    async def test_retry_revalidates(self, booking_client):
        booking_client.create_booking.side_effect = BookingError("Slot taken")
        txn = new_draft(booking_client)
        fill(txn)
        with pytest.raises(BookingError):
            await txn.submit()

        # Failed drafts stay editable; blanking a field makes the retry fail locally
        txn.update("patient_phone", "")
        with pytest.raises(InvalidTransition):
            await txn.retry()
        with pytest.raises(MissingField):
            await txn.submit()

        booking_client.create_booking.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retry_requires_failure(self, booking_client):
        txn = new_draft(booking_client)

        with pytest.raises(InvalidTransition):
            await txn.retry()


class TestCancel:

    def test_cancel_draft(self, booking_client):
        txn = new_draft(booking_client)

        txn.cancel()

        assert txn.state == BookingState.CANCELLED
        assert txn.is_terminal
        with pytest.raises(InvalidTransition):
            txn.update("notes", "x")

    @pytest.mark.asyncio
    async def test_response_after_cancel_ignored(self, gated_client):
        txn = new_draft(gated_client)
        fill(txn)

        task = asyncio.create_task(txn.submit())
        await settle()
        txn.cancel()
        gated_client.booking_calls[0][1].set_result(None)
        outcome = await task

        assert txn.state == BookingState.CANCELLED
        assert outcome.status == OutcomeStatus.PENDING

    @pytest.mark.asyncio
    async def test_cannot_cancel_success(self, booking_client):
        txn = new_draft(booking_client)
        fill(txn)
        await txn.submit()

        with pytest.raises(InvalidTransition):
            txn.cancel()
