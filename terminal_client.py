#!/usr/bin/env python3
"""Terminal client for browsing doctors and booking a slot.

Usage:
    python mock_api.py          # in another terminal
    python terminal_client.py

Renders the workflow view after every intent. Slot availability always
comes from the server; nothing is marked booked locally.
"""
import asyncio
import sys

from doctor_booking import config
from doctor_booking.api_client import AsyncClinicClient, ClinicApiClient
from doctor_booking.booking import REQUIRED_FIELDS
from doctor_booking.directory import DirectoryState
from doctor_booking.formatting import format_date
from doctor_booking.logging_config import setup_structured_logging
from doctor_booking.schedule import ScheduleState
from doctor_booking.workflow import BookingWorkflow


# ANSI color codes
class Colors:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    GREY = '\033[90m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


PROMPTS = {
    "patient_name": "Nama Lengkap *",
    "patient_phone": "Nomor Telepon *",
    "patient_email": "Email *",
    "notes": "Catatan (Opsional)",
}


def print_colored(text: str, color: str = Colors.RESET):
    print(f"{color}{text}{Colors.RESET}")


async def ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, f"{prompt}: ")).strip()


def render_doctors(workflow: BookingWorkflow):
    view = workflow.view()
    print_colored(f"\n== Dokter {view.selected_category} ==", Colors.BOLD)
    if view.empty_message:
        print_colored(view.empty_message, Colors.GREY)
    for doctor in view.doctors:
        extra = f" - {doctor.specialty}" if doctor.specialty else ""
        print(f"[{doctor.id}] {doctor.name}{extra} ({doctor.category.value}) "
              f"* {doctor.rating} | {doctor.location} | {doctor.schedule} | {doctor.price}")


def render_schedule(workflow: BookingWorkflow) -> list:
    """Print the schedule and return selectable (date, slot) pairs by number."""
    view = workflow.view()
    choices = []
    print_colored(f"\n== Jadwal Praktik: {view.schedule_doctor.name} ==", Colors.BOLD)
    if view.schedule_state == ScheduleState.FAILED:
        print_colored(view.schedule_error, Colors.RED)
        return choices
    if not view.schedule_days:
        print_colored("Tidak ada jadwal tersedia", Colors.GREY)
    for day in view.schedule_days:
        print_colored(format_date(day.date), Colors.BLUE)
        for slot in day.time_slots:
            choices.append((day.date, slot))
            color = Colors.GREEN if slot.available else Colors.GREY
            print_colored(f"  ({len(choices)}) {slot.time}", color)
    return choices


async def booking_form(workflow: BookingWorkflow):
    while workflow.booking is not None:
        booking = workflow.view().booking
        print_colored("\n== Booking Konsultasi ==", Colors.BOLD)
        for label, value in booking.summary.items():
            print(f"{label}: {value}")
        if booking.error:
            print_colored(booking.error, Colors.RED)

        for name in REQUIRED_FIELDS + ("notes",):
            current = booking.fields.get(name) or ""
            value = await ask(f"{PROMPTS[name]} [{current}]")
            if value:
                workflow.update_booking(name, value)

        if (await ask("Konfirmasi booking? (y/n)")).lower() != "y":
            workflow.cancel_booking()
            return

        print_colored("Mengirim booking...", Colors.GREY)
        submission = asyncio.create_task(workflow.submit_booking())
        while not submission.done():
            booking = workflow.view().booking
            if booking and booking.confirmed:
                print_colored("Booking Berhasil! Booking Anda telah dikonfirmasi.", Colors.GREEN)
                break
            await asyncio.sleep(0.1)
        # Failed or incomplete drafts loop back to the form with the error shown
        await submission


async def schedule_loop(workflow: BookingWorkflow):
    while workflow.schedule.is_open:
        choices = render_schedule(workflow)
        choice = await ask("Pilih nomor slot, 'r' muat ulang, 'x' tutup")
        if choice == "x":
            workflow.close_schedule()
        elif choice == "r":
            await workflow.schedule.refresh()
        elif choice.isdigit() and 0 < int(choice) <= len(choices):
            date, slot = choices[int(choice) - 1]
            if workflow.pick_slot(date, slot) is None:
                print_colored("Slot tidak tersedia", Colors.YELLOW)
                continue
            await booking_form(workflow)


async def main():
    setup_structured_logging(config.LOG_LEVEL, json_logs=False)
    workflow = BookingWorkflow(AsyncClinicClient(ClinicApiClient()))

    print_colored("Memuat data dokter...", Colors.GREY)
    await workflow.start()

    while workflow.directory.state == DirectoryState.FAILED:
        print_colored(f"Error: {workflow.view().directory_error}", Colors.RED)
        if (await ask("Coba Lagi? (y/n)")).lower() != "y":
            return
        await workflow.retry_directory()

    while True:
        render_doctors(workflow)
        choice = await ask("Nomor dokter untuk lihat jadwal, 'k' kategori, 'q' keluar")
        if choice == "q":
            return
        if choice == "k":
            print(", ".join(config.CATEGORIES))
            workflow.select_category(await ask("Kategori"))
            continue
        doctor = next((d for d in workflow.filtered_doctors if str(d.id) == choice), None)
        if doctor is None:
            continue
        print_colored("Memuat jadwal...", Colors.GREY)
        await workflow.view_schedule(doctor)
        await schedule_loop(workflow)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, EOFError):
        sys.exit(0)
