"""
Clinical records repository.

CRUD for patients, clinical notes, calendar events and per-patient vitals and
medications on top of the persistence store. Every call reads the whole
collection, changes a copy and writes the whole collection back; metadata is
recomputed after every mutation.
"""
import json
import logging
import random
import string
import time
from functools import lru_cache
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.config import settings
from ..core.exceptions import ImportFormatError, NotFoundError
from ..models.records import (
    CalendarEvent,
    ClinicalNote,
    CreatePatientRequest,
    EditPatientRequest,
    EventCreate,
    EventUpdate,
    MedicationCreate,
    NoteCreate,
    NoteUpdate,
    Patient,
    PatientMedication,
    PatientVital,
    StorageMetadata,
    StorageStats,
    VitalCreate,
)
from .persistence import PersistenceStore
from .storage_backend import create_storage_backend

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_TOKEN_ALPHABET = string.ascii_lowercase + string.digits


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def _millis() -> int:
    return int(time.time() * 1000)


def _token(length: int = 6) -> str:
    return "".join(random.choices(_TOKEN_ALPHABET, k=length))


def generate_record_id(prefix: str) -> str:
    """``<prefix>-<epoch ms>-<random>``; the random part keeps same-millisecond ids apart."""
    return f"{prefix}-{_millis()}-{_token()}"


def generate_mrn(patient_id: str, year: Optional[int] = None) -> str:
    year = year or datetime.now(timezone.utc).year
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=5))
    return f"MRN-{year}-{patient_id}-{suffix}"


def _numeric_id(value: str) -> int:
    return int(value) if value.isdigit() else 0


class ClinicalRepository:
    def __init__(self, store: PersistenceStore):
        self.store = store
        self.keys = store.keys

    # ==================================================================
    # Patients
    # ==================================================================

    def list_patients(self) -> List[Patient]:
        return self.store.read(self.keys.PATIENTS, Patient)

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        return next((p for p in self.list_patients() if p.id == patient_id), None)

    def create_patient(self, request: CreatePatientRequest) -> Patient:
        """Add a patient with a fresh sequence id and MRN."""
        patients = self.list_patients()
        sequence = self._next_patient_sequence(patients)
        patient_id = str(sequence).zfill(3)

        taken = {p.mrn for p in patients}
        mrn = generate_mrn(patient_id)
        while mrn in taken:
            mrn = generate_mrn(patient_id)

        patient = Patient(
            id=patient_id,
            mrn=mrn,
            name=request.name,
            age=request.age,
            sex=request.sex,
            phone=request.phone,
            city=request.city,
            status="new",
            last_visit=utc_now_iso(),
        )
        patients.append(patient)
        self.store.write(self.keys.PATIENTS, patients)
        self.store.write_value(self.keys.PATIENT_SEQUENCE, sequence)
        self.refresh_metadata()
        logger.info("Created patient %s (%s)", patient.id, patient.mrn)
        return patient

    def update_patient(self, patient_id: str, updates: EditPatientRequest) -> Patient:
        patients = self.list_patients()
        index = next((i for i, p in enumerate(patients) if p.id == patient_id), None)
        if index is None:
            raise NotFoundError("Patient", patient_id)

        # id and mrn are fixed once assigned
        changes = updates.model_dump(exclude_unset=True, exclude={"id", "mrn"})
        updated = Patient.model_validate({**patients[index].model_dump(), **changes})

        patients[index] = updated
        self.store.write(self.keys.PATIENTS, patients)
        self.refresh_metadata()
        return updated

    def delete_patient(self, patient_id: str) -> None:
        """Delete a patient and everything that references it.

        Order: patient, notes, events, vitals slot, medications slot, metadata.
        There is no transaction; a failure part-way leaves earlier steps applied.
        """
        patients = self.list_patients()
        self.store.write(self.keys.PATIENTS, [p for p in patients if p.id != patient_id])

        notes = self.list_notes()
        self.store.write(self.keys.CLINICAL_NOTES, [n for n in notes if n.patient_id != patient_id])

        events = self.list_events()
        self.store.write(self.keys.CALENDAR_EVENTS, [e for e in events if e.patient_id != patient_id])

        self.store.remove(self.keys.vitals(patient_id))
        self.store.remove(self.keys.medications(patient_id))

        self.refresh_metadata()
        logger.info("Deleted patient %s and associated records", patient_id)

    def _next_patient_sequence(self, patients: List[Patient]) -> int:
        last_issued = self.store.read_value(self.keys.PATIENT_SEQUENCE, 0)
        if not isinstance(last_issued, int):
            last_issued = 0
        highest = max((_numeric_id(p.id) for p in patients), default=0)
        return max(last_issued, len(patients), highest) + 1

    # ==================================================================
    # Clinical notes
    # ==================================================================

    def list_notes(self) -> List[ClinicalNote]:
        return self.store.read(self.keys.CLINICAL_NOTES, ClinicalNote)

    def list_notes_by_patient(self, patient_id: str) -> List[ClinicalNote]:
        return [n for n in self.list_notes() if n.patient_id == patient_id]

    def get_note(self, note_id: str) -> Optional[ClinicalNote]:
        return next((n for n in self.list_notes() if n.id == note_id), None)

    def create_note(self, note: NoteCreate) -> ClinicalNote:
        if self.get_patient(note.patient_id) is None:
            raise NotFoundError("Patient", note.patient_id)

        notes = self.list_notes()
        created = ClinicalNote(
            **note.model_dump(),
            id=generate_record_id("note"),
            created_at=utc_now_iso(),
        )
        notes.append(created)
        self.store.write(self.keys.CLINICAL_NOTES, notes)
        self.refresh_metadata()
        return created

    def update_note(self, note_id: str, updates: NoteUpdate) -> ClinicalNote:
        notes = self.list_notes()
        index = next((i for i, n in enumerate(notes) if n.id == note_id), None)
        if index is None:
            raise NotFoundError("Note", note_id)

        merged = {**notes[index].model_dump(), **updates.model_dump(exclude_unset=True)}
        merged["updated_at"] = utc_now_iso()
        updated = ClinicalNote.model_validate(merged)

        notes[index] = updated
        self.store.write(self.keys.CLINICAL_NOTES, notes)
        self.refresh_metadata()
        return updated

    def delete_note(self, note_id: str) -> None:
        notes = self.list_notes()
        self.store.write(self.keys.CLINICAL_NOTES, [n for n in notes if n.id != note_id])
        self.refresh_metadata()

    # ==================================================================
    # Calendar events
    # ==================================================================

    def list_events(self) -> List[CalendarEvent]:
        return self.store.read(self.keys.CALENDAR_EVENTS, CalendarEvent)

    def list_events_by_date(self, date_str: str) -> List[CalendarEvent]:
        """Events whose ``date`` equals ``date_str`` exactly (no prefix or range match)."""
        return [e for e in self.list_events() if e.date == date_str]

    def list_today_events(self) -> List[CalendarEvent]:
        return self.list_events_by_date(today_str())

    def get_event(self, event_id: str) -> Optional[CalendarEvent]:
        return next((e for e in self.list_events() if e.id == event_id), None)

    def create_event(self, event: EventCreate) -> CalendarEvent:
        events = self.list_events()
        created = CalendarEvent(
            **event.model_dump(),
            id=generate_record_id("event"),
            created_at=utc_now_iso(),
        )
        events.append(created)
        self.store.write(self.keys.CALENDAR_EVENTS, events)
        self.refresh_metadata()
        return created

    def update_event(self, event_id: str, updates: EventUpdate) -> CalendarEvent:
        events = self.list_events()
        index = next((i for i, e in enumerate(events) if e.id == event_id), None)
        if index is None:
            raise NotFoundError("Event", event_id)

        # Status changes are not restricted: any value may replace any other.
        merged = {**events[index].model_dump(), **updates.model_dump(exclude_unset=True)}
        updated = CalendarEvent.model_validate(merged)

        events[index] = updated
        self.store.write(self.keys.CALENDAR_EVENTS, events)
        self.refresh_metadata()
        return updated

    def delete_event(self, event_id: str) -> None:
        events = self.list_events()
        self.store.write(self.keys.CALENDAR_EVENTS, [e for e in events if e.id != event_id])
        self.refresh_metadata()

    # ==================================================================
    # Vitals and medications (per-patient slots, append-only)
    # ==================================================================

    def list_vitals(self, patient_id: str) -> List[PatientVital]:
        return self.store.read(self.keys.vitals(patient_id), PatientVital)

    def add_vital(self, patient_id: str, vital: VitalCreate) -> PatientVital:
        vitals = self.list_vitals(patient_id)
        created = PatientVital(**vital.model_dump(), id=generate_record_id("vital"))
        vitals.append(created)
        self.store.write(self.keys.vitals(patient_id), vitals)
        self.refresh_metadata()
        return created

    def list_medications(self, patient_id: str) -> List[PatientMedication]:
        return self.store.read(self.keys.medications(patient_id), PatientMedication)

    def list_active_medications(self, patient_id: str) -> List[PatientMedication]:
        return [m for m in self.list_medications(patient_id) if m.status == "active"]

    def add_medication(self, patient_id: str, medication: MedicationCreate) -> PatientMedication:
        meds = self.list_medications(patient_id)
        created = PatientMedication(**medication.model_dump(), id=generate_record_id("med"))
        meds.append(created)
        self.store.write(self.keys.medications(patient_id), meds)
        self.refresh_metadata()
        return created

    # ==================================================================
    # Metadata and derived views
    # ==================================================================

    def get_metadata(self) -> StorageMetadata:
        metadata = self.store.read_object(self.keys.METADATA, StorageMetadata)
        return metadata or self._default_metadata()

    def refresh_metadata(self) -> StorageMetadata:
        metadata = StorageMetadata(
            version=settings.STORAGE_SCHEMA_VERSION,
            last_sync=utc_now_iso(),
            patient_count=len(self.list_patients()),
            note_count=len(self.list_notes()),
            event_count=len(self.list_events()),
        )
        self.store.write_object(self.keys.METADATA, metadata)
        return metadata

    @staticmethod
    def _default_metadata() -> StorageMetadata:
        return StorageMetadata(version=settings.STORAGE_SCHEMA_VERSION, last_sync=utc_now_iso())

    def compute_stats(self) -> StorageStats:
        patients = self.list_patients()
        today_events = self.list_today_events()
        return StorageStats(
            total_patients=len(patients),
            active_patients=len([p for p in patients if p.status != "inactive"]),
            total_notes=len(self.list_notes()),
            today_appointments=len([e for e in today_events if e.type == "appointment"]),
            urgent_patients=len([p for p in patients if p.status == "urgent"]),
            last_updated=self.get_metadata().last_sync,
            recovered_collections=self.recovered_collections(),
        )

    def recovered_collections(self) -> List[str]:
        """Keys of fixed collections that currently hold unreadable data."""
        collections = (
            (self.keys.PATIENTS, Patient),
            (self.keys.CLINICAL_NOTES, ClinicalNote),
            (self.keys.CALENDAR_EVENTS, CalendarEvent),
        )
        return [key for key, model in collections if self.store.read_result(key, model).recovered]

    def get_all_storage_data(self) -> Dict[str, Any]:
        return {
            "patients": [p.to_storage() for p in self.list_patients()],
            "clinicalNotes": [n.to_storage() for n in self.list_notes()],
            "calendarEvents": [e.to_storage() for e in self.list_events()],
            "metadata": self.get_metadata().to_storage(),
        }

    # ==================================================================
    # Export / import / reset
    # ==================================================================

    def export_all(self) -> str:
        """Snapshot patients, notes and events. Per-patient vitals and medications are not included."""
        return json.dumps(self.get_all_storage_data(), indent=2, ensure_ascii=False)

    def import_all(self, json_string: str) -> None:
        """Replace the store with the collections found in ``json_string``.

        Record shapes are not checked here; anything unreadable is recovered as
        empty on the next read.
        """
        try:
            data = json.loads(json_string)
        except (TypeError, ValueError) as exc:
            logger.error("Error importing data: %s", exc)
            raise ImportFormatError() from exc
        if not isinstance(data, dict):
            logger.error("Error importing data: top-level value is %s", type(data).__name__)
            raise ImportFormatError()

        self.clear_all()

        sections = (
            ("patients", self.keys.PATIENTS),
            ("clinicalNotes", self.keys.CLINICAL_NOTES),
            ("calendarEvents", self.keys.CALENDAR_EVENTS),
        )
        for section, key in sections:
            if data.get(section) is not None:
                self.store.write_value(key, data[section])

        self.refresh_metadata()
        logger.info("Data imported successfully")

    def clear_all(self) -> None:
        """Remove every known slot, including each current patient's vitals and medications."""
        patient_ids = [p.id for p in self.list_patients()]
        for key in self.keys.fixed:
            self.store.remove(key)
        for patient_id in patient_ids:
            self.store.remove(self.keys.vitals(patient_id))
            self.store.remove(self.keys.medications(patient_id))


@lru_cache()
def get_repository() -> ClinicalRepository:
    """Process-wide repository over the configured storage backend."""
    return ClinicalRepository(PersistenceStore(create_storage_backend()))
