"""Mock clinic API for local development and tests.

Flask server with the three endpoints the client talks to:
- GET  /v1/doctors
- GET  /v1/doctors/<id>/schedule
- POST /v1/bookings

Every response uses the {success, data, error} envelope. Booked slots
come back with available=false on the next schedule fetch.

Run with: python mock_api.py
"""
import re
from datetime import date, timedelta

from flask import Flask, request, jsonify
from flask_cors import CORS

from doctor_booking.logging_config import RequestIDMiddleware, get_logger

logger = get_logger(__name__)

app = Flask(__name__)
CORS(app)
app.wsgi_app = RequestIDMiddleware(app.wsgi_app)

DOCTORS = [
    {"id": 1, "name": "dr. Andi Wijaya", "category": "UMUM",
     "location": "Klinik Sehat, Jakarta Selatan", "schedule": "Senin - Jumat, 08:00 - 15:00",
     "rating": 4.8, "price": "Rp 150.000", "experience": 8},
    {"id": 2, "name": "drg. Sari Lestari", "category": "GIGI",
     "location": "Klinik Gigi Ceria, Bandung", "schedule": "Senin - Sabtu, 09:00 - 17:00",
     "rating": 4.9, "price": "Rp 200.000", "specialty": "Ortodonti", "experience": 11},
    {"id": 3, "name": "dr. Budi Hartono, Sp.M", "category": "MATA",
     "location": "RS Mata Nusantara, Surabaya", "schedule": "Selasa & Kamis, 10:00 - 14:00",
     "rating": 4.7, "price": "Rp 300.000", "specialty": "Retina"},
    {"id": 4, "name": "dr. Maya Putri, Sp.KK", "category": "KULIT",
     "location": "Klinik Kulit Prima, Jakarta Barat", "schedule": "Rabu - Sabtu, 13:00 - 19:00",
     "rating": 4.6, "price": "Rp 275.000", "experience": 6},
    {"id": 5, "name": "dr. Rudi Santoso, Sp.JP", "category": "JANTUNG",
     "location": "RS Jantung Harapan, Jakarta Pusat", "schedule": "Senin & Rabu, 08:00 - 12:00",
     "rating": 4.9, "price": "Rp 450.000", "specialty": "Kardiologi Intervensi", "experience": 15},
    {"id": 7, "name": "dr. Dewi Anggraini, Sp.A", "category": "ANAK",
     "location": "Klinik Tumbuh Kembang, Yogyakarta", "schedule": "Senin - Jumat, 09:00 - 13:00",
     "rating": 4.8, "price": "Rp 250.000", "experience": 9},
]

SLOT_TIMES = ["09:00", "10:00", "11:00", "13:00", "14:00"]
SCHEDULE_DAYS = 5

# In-memory storage
bookings = []
booked_slots = set()

REQUIRED_FIELDS = ("doctorId", "date", "time", "slotId",
                   "patientName", "patientPhone", "patientEmail")


def envelope_error(message, status):
    return jsonify({"success": False, "error": {"message": message}}), status


def find_doctor(doctor_id):
    return next((d for d in DOCTORS if d["id"] == doctor_id), None)


def slot_id_for(doctor_id, day, time):
    return f"{doctor_id}-{day}-{time.replace(':', '')}"


def generate_schedule(doctor, start=None):
    """Build the next SCHEDULE_DAYS days of slots for a doctor (weekdays only)."""
    start = start or date.today()
    days = []
    current = start
    while len(days) < SCHEDULE_DAYS:
        current += timedelta(days=1)
        if current.weekday() >= 5:
            continue
        day = current.isoformat()
        days.append({
            "date": day,
            "timeSlots": [
                {
                    "time": time,
                    "available": (doctor["id"], day, slot_id_for(doctor["id"], day, time)) not in booked_slots,
                    "price": doctor["price"],
                    "slotId": slot_id_for(doctor["id"], day, time),
                }
                for time in SLOT_TIMES
            ],
        })
    return days


def validate_email(email):
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


@app.route('/v1/doctors', methods=['GET'])
def list_doctors():
    """GET /v1/doctors - Full doctor list, no pagination."""
    return jsonify({"success": True, "data": DOCTORS})


@app.route('/v1/doctors/<int:doctor_id>/schedule', methods=['GET'])
def get_schedule(doctor_id):
    """GET /v1/doctors/<id>/schedule - Upcoming days with slot availability."""
    doctor = find_doctor(doctor_id)
    if not doctor:
        return envelope_error(f"Doctor {doctor_id} not found", 404)
    return jsonify({"success": True, "data": generate_schedule(doctor)})


@app.route('/v1/bookings', methods=['POST'])
def create_booking():
    """POST /v1/bookings - Reserve one slot.

    Expected JSON body:
    {
        "doctorId": 7,
        "date": "2024-01-15",
        "time": "09:00",
        "slotId": "7-2024-01-15-0900",
        "patientName": "Budi Santoso",
        "patientPhone": "081234567890",
        "patientEmail": "budi@example.com",
        "notes": "optional"
    }
    """
    payload = request.get_json(silent=True) or {}

    missing = [name for name in REQUIRED_FIELDS if not str(payload.get(name, "")).strip()]
    if missing:
        return envelope_error(f"Missing required fields: {', '.join(missing)}", 400)

    if not validate_email(payload["patientEmail"]):
        return envelope_error("Invalid email format", 400)

    doctor = find_doctor(payload["doctorId"])
    if not doctor:
        return envelope_error(f"Doctor {payload['doctorId']} not found", 404)

    key = (doctor["id"], payload["date"], payload["slotId"])
    if key in booked_slots:
        return envelope_error("Slot taken", 409)

    booked_slots.add(key)
    booking = {"id": f"BK-{len(bookings) + 1:05d}", **payload}
    bookings.append(booking)
    logger.info("booking_created", booking_id=booking["id"],
                request_id=request.environ.get("REQUEST_ID"))

    return jsonify({"success": True, "data": {"bookingId": booking["id"]}}), 201


def reset():
    """Clear all bookings (tests)."""
    bookings.clear()
    booked_slots.clear()


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000, debug=True)
