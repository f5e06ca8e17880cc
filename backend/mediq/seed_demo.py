"""
Demo data seeder for MedIQ.

Adds five sample patients, two clinical notes and three calendar events
(two today, one tomorrow) so the dashboard has something to show on a fresh
start.

Only runs when ENABLE_SAMPLE_DATA is set, and only against an empty store, so
it is safe to call on every startup.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .core.config import settings
from .models.records import CreatePatientRequest, EventCreate, NoteCreate, Patient
from .services.repository import ClinicalRepository, utc_now_iso

logger = logging.getLogger(__name__)

DEMO_PATIENTS = [
    CreatePatientRequest(name="John Doe", age=45, sex="M", phone="555-0001", city="New York"),
    CreatePatientRequest(name="Sarah Johnson", age=38, sex="F", phone="555-0002", city="Boston"),
    CreatePatientRequest(name="Michael Chen", age=52, sex="M", phone="555-0003", city="San Francisco"),
    CreatePatientRequest(name="Emily Davis", age=29, sex="F", phone="555-0004", city="Austin"),
    CreatePatientRequest(name="Robert Wilson", age=67, sex="M", phone="555-0005", city="Chicago"),
]


def seed_demo_data(repository: ClinicalRepository, enabled: Optional[bool] = None) -> bool:
    """Seed sample records. Returns True when anything was written."""
    enabled = settings.ENABLE_SAMPLE_DATA if enabled is None else enabled
    if not enabled:
        logger.info("Sample data initialization skipped (ENABLE_SAMPLE_DATA not set)")
        return False

    if repository.list_patients():
        logger.info("Storage already initialized")
        return False

    patients = [repository.create_patient(p) for p in DEMO_PATIENTS]
    _seed_notes(repository, patients)
    _seed_events(repository, patients)

    repository.refresh_metadata()
    logger.info("Sample data initialized: %d patients", len(patients))
    return True


# ── helpers ──────────────────────────────────────────────────────────────────

def _seed_notes(repository: ClinicalRepository, patients: List[Patient]) -> None:
    now = utc_now_iso()
    repository.create_note(NoteCreate(
        patient_id=patients[0].id,
        date=now,
        type="text",
        content="Patient showing improvement in blood pressure control",
        insights=["Good compliance with medication", "Continue current regimen"],
        actions=["Schedule follow-up in 1 month"],
    ))
    repository.create_note(NoteCreate(
        patient_id=patients[1].id,
        date=now,
        type="voice",
        content="Routine checkup, vitals stable",
        transcript="Routine checkup, vitals stable",
        insights=["All values within normal range"],
        actions=["Continue annual preventive care"],
    ))


def _seed_events(repository: ClinicalRepository, patients: List[Patient]) -> None:
    today = datetime.now(timezone.utc)
    today_str = today.strftime("%Y-%m-%d")
    tomorrow_str = (today + timedelta(days=1)).strftime("%Y-%m-%d")

    schedule = [
        (today_str, "09:00", patients[0], "Follow-up Consultation", "completed"),
        (today_str, "14:00", patients[1], "Annual Physical", "scheduled"),
        (tomorrow_str, "10:00", patients[2], "Lab Results Review", "scheduled"),
    ]
    for date_str, time_str, patient, title, status in schedule:
        repository.create_event(EventCreate(
            date=date_str,
            time=time_str,
            patient_id=patient.id,
            patient_name=patient.name,
            type="appointment",
            title=title,
            status=status,
        ))
