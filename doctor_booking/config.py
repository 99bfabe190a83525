"""Configuration for the doctor booking client.

Defaults live here; every value can be overridden from the environment
(or a local .env file) without touching code.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# API Configuration
CLINIC_API_BASE_URL = os.getenv("CLINIC_API_BASE_URL", "http://localhost:5000/v1")
CLINIC_API_TIMEOUT = float(os.getenv("CLINIC_API_TIMEOUT", "15"))
CLINIC_API_MAX_RETRIES = int(os.getenv("CLINIC_API_MAX_RETRIES", "3"))
CLINIC_API_BACKOFF = float(os.getenv("CLINIC_API_BACKOFF", "1.0"))

# Circuit breaker around the clinic services
CIRCUIT_FAILURE_THRESHOLD = int(os.getenv("CIRCUIT_FAILURE_THRESHOLD", "5"))
CIRCUIT_TIMEOUT = int(os.getenv("CIRCUIT_TIMEOUT", "60"))

# How long the "booking confirmed" acknowledgment stays up before the
# booking view closes and the schedule is refetched.
BOOKING_CONFIRMATION_SECONDS = float(os.getenv("BOOKING_CONFIRMATION_SECONDS", "2.0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Category filter
ALL_CATEGORIES = "Semua"
CATEGORIES = [ALL_CATEGORIES, "UMUM", "GIGI", "MATA", "KULIT", "JANTUNG", "ANAK"]

# User-facing messages
DOCTORS_FETCH_FAILED = "Failed to fetch doctors"
SCHEDULE_FETCH_FAILED = "Failed to fetch schedule"
BOOKING_FAILED = "Failed to create booking"
MISSING_PATIENT_DATA = "Mohon lengkapi semua data yang diperlukan"
EMPTY_CATEGORY = "Tidak ada dokter untuk kategori {category}"
