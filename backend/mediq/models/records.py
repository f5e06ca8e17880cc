"""
Record shapes persisted in the key-value store.

Stored JSON uses camelCase keys (``patientId``, ``lastVisit``...); Python code
uses the snake_case attribute names. Optional fields that are unset are left
out of the stored document.
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Sex = Literal["M", "F", "Other"]
PatientStatus = Literal["new", "stable", "follow-up", "urgent", "inactive"]
NoteType = Literal["text", "voice", "prescription"]
EventType = Literal["appointment", "task", "reminder"]
EventStatus = Literal["scheduled", "completed", "cancelled"]
MedicationStatus = Literal["active", "inactive", "paused"]

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^\d{2}:\d{2}$"
NAME_PATTERN = r"^[a-zA-Z\s'-]+$"


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Patients ─────────────────────────────────────────────────────────────────

class Patient(Record):
    id: str
    mrn: str
    name: str
    age: int = Field(ge=0)
    sex: Sex
    phone: Optional[str] = None
    city: Optional[str] = None
    status: PatientStatus = "new"
    last_visit: Optional[str] = None


class CreatePatientRequest(Record):
    name: str = Field(min_length=2, max_length=100, pattern=NAME_PATTERN)
    age: int = Field(ge=0, le=150)
    sex: Sex
    phone: Optional[str] = Field(default=None, min_length=7, max_length=20)
    city: Optional[str] = Field(default=None, max_length=50)


class EditPatientRequest(Record):
    """Partial patient update. ``id`` and ``mrn`` are accepted but never applied."""
    id: Optional[str] = None
    mrn: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=2, max_length=100, pattern=NAME_PATTERN)
    age: Optional[int] = Field(default=None, ge=0, le=150)
    sex: Optional[Sex] = None
    phone: Optional[str] = Field(default=None, min_length=7, max_length=20)
    city: Optional[str] = Field(default=None, max_length=50)
    status: Optional[PatientStatus] = None
    last_visit: Optional[str] = None


# ── Clinical notes ───────────────────────────────────────────────────────────

class ClinicalNote(Record):
    id: str
    patient_id: str
    date: str
    type: NoteType
    content: str
    transcript: Optional[str] = None
    insights: Optional[List[str]] = None
    actions: Optional[List[str]] = None
    created_at: str
    updated_at: Optional[str] = None


class NoteCreate(Record):
    patient_id: str
    date: str
    type: NoteType
    content: str
    transcript: Optional[str] = None
    insights: Optional[List[str]] = None
    actions: Optional[List[str]] = None


class NoteUpdate(Record):
    patient_id: Optional[str] = None
    date: Optional[str] = None
    type: Optional[NoteType] = None
    content: Optional[str] = None
    transcript: Optional[str] = None
    insights: Optional[List[str]] = None
    actions: Optional[List[str]] = None


# ── Calendar events ──────────────────────────────────────────────────────────

class CalendarEvent(Record):
    id: str
    date: str
    time: Optional[str] = None
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None  # display cache, not re-synced on rename
    type: EventType
    title: Optional[str] = None
    notes: Optional[str] = None
    status: EventStatus = "scheduled"
    created_at: str


class EventCreate(Record):
    date: str = Field(pattern=DATE_PATTERN)
    time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    type: EventType
    title: Optional[str] = None
    notes: Optional[str] = None
    status: EventStatus = "scheduled"


class EventUpdate(Record):
    date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    type: Optional[EventType] = None
    title: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[EventStatus] = None


# ── Per-patient vitals and medications ───────────────────────────────────────

class PatientVital(Record):
    id: str
    date: str
    bp: Optional[str] = None  # e.g. "120/80"
    hr: Optional[float] = None
    temp: Optional[float] = None
    weight: Optional[float] = None
    notes: Optional[str] = None


class VitalCreate(Record):
    date: str
    bp: Optional[str] = None
    hr: Optional[float] = None
    temp: Optional[float] = None
    weight: Optional[float] = None
    notes: Optional[str] = None


class PatientMedication(Record):
    id: str
    name: str
    dosage: str
    frequency: str
    start_date: str
    end_date: Optional[str] = None
    status: MedicationStatus = "active"
    notes: Optional[str] = None


class MedicationCreate(Record):
    name: str = Field(min_length=1)
    dosage: str = Field(min_length=1)
    frequency: str = Field(min_length=1)
    start_date: str
    end_date: Optional[str] = None
    status: MedicationStatus = "active"
    notes: Optional[str] = None


# ── Bookkeeping ──────────────────────────────────────────────────────────────

class StorageMetadata(Record):
    version: str
    last_sync: str
    patient_count: int = 0
    note_count: int = 0
    event_count: int = 0


class StorageStats(Record):
    total_patients: int
    active_patients: int
    total_notes: int
    today_appointments: int
    urgent_patients: int
    last_updated: str
    # collections whose stored data was unreadable and is being served as empty
    recovered_collections: List[str] = Field(default_factory=list)
