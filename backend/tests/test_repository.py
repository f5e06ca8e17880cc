"""Tests for the clinical records repository."""
import re
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from mediq.core.exceptions import NotFoundError, StorageQuotaError
from mediq.models.records import (
    CreatePatientRequest,
    EditPatientRequest,
    EventCreate,
    EventUpdate,
    MedicationCreate,
    NoteCreate,
    NoteUpdate,
    VitalCreate,
)
from mediq.services import repository as repository_module
from mediq.services.persistence import PersistenceStore
from mediq.services.repository import ClinicalRepository
from mediq.services.storage_backend import InMemoryStorage


def _today():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def _tomorrow():
    return (datetime.now(timezone.utc) + timedelta(days=1)).strftime("%Y-%m-%d")


@pytest.fixture()
def backend():
    return InMemoryStorage(quota=0)


@pytest.fixture()
def repo(backend):
    return ClinicalRepository(PersistenceStore(backend, namespace="mediq"))


def _ada():
    return CreatePatientRequest(name="Ada Lovelace", age=30, sex="F")


def _note(patient_id, content="ok"):
    return NoteCreate(patient_id=patient_id, date="2025-01-05T10:00:00.000Z", type="text", content=content)


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------

class TestPatients:
    def test_first_patient_gets_sequence_one(self, repo):
        patient = repo.create_patient(_ada())
        year = datetime.now(timezone.utc).year
        assert patient.id == "001"
        assert patient.status == "new"
        assert re.fullmatch(rf"MRN-{year}-001-[A-Z0-9]{{5}}", patient.mrn)
        assert patient.last_visit is not None

    def test_created_patient_is_listed(self, repo):
        patient = repo.create_patient(_ada())
        assert repo.list_patients() == [patient]
        assert repo.get_patient(patient.id) == patient

    def test_ids_and_mrns_are_unique(self, repo):
        patients = [repo.create_patient(_ada()) for _ in range(5)]
        assert [p.id for p in patients] == ["001", "002", "003", "004", "005"]
        assert len({p.mrn for p in patients}) == 5

    def test_ids_are_not_reused_after_delete(self, repo):
        """A freed id must never be handed out again."""
        first = repo.create_patient(_ada())
        repo.create_patient(_ada())
        third = repo.create_patient(_ada())
        repo.delete_patient(third.id)
        repo.delete_patient(first.id)
        new = repo.create_patient(_ada())
        assert new.id == "004"
        assert len({p.id for p in repo.list_patients()}) == len(repo.list_patients())

    def test_get_missing_patient_returns_none(self, repo):
        assert repo.get_patient("999") is None

    def test_update_merges_partial_fields(self, repo):
        patient = repo.create_patient(CreatePatientRequest(name="Ada Lovelace", age=30, sex="F", city="London"))
        updated = repo.update_patient(patient.id, EditPatientRequest(status="urgent", phone="555-0100"))
        assert updated.status == "urgent"
        assert updated.phone == "555-0100"
        assert updated.city == "London"
        assert updated.name == "Ada Lovelace"
        assert repo.get_patient(patient.id) == updated

    def test_update_ignores_id_and_mrn(self, repo):
        patient = repo.create_patient(_ada())
        updated = repo.update_patient(patient.id, EditPatientRequest(id="777", mrn="MRN-X", age=31))
        assert updated.id == patient.id
        assert updated.mrn == patient.mrn
        assert updated.age == 31

    def test_update_missing_patient_leaves_store_untouched(self, repo, backend):
        repo.create_patient(_ada())
        before = backend.get_item("mediq_patients")
        metadata_before = backend.get_item("mediq_metadata")
        with pytest.raises(NotFoundError, match="Patient with ID 999 not found"):
            repo.update_patient("999", EditPatientRequest(name="Grace Hopper"))
        assert backend.get_item("mediq_patients") == before
        assert backend.get_item("mediq_metadata") == metadata_before

    @pytest.mark.parametrize(
        "changes",
        [{"name": "x1"}, {"name": "Ada_Lovelace"}, {"phone": "123"}, {"phone": "1" * 21}, {"city": "c" * 51}],
    )
    def test_edit_applies_create_field_rules(self, repo, backend, changes):
        repo.create_patient(_ada())
        before = backend.get_item("mediq_patients")
        with pytest.raises(ValidationError):
            repo.update_patient("001", EditPatientRequest(**changes))
        assert backend.get_item("mediq_patients") == before

    def test_delete_cascades_to_dependent_records(self, repo, backend):
        keep = repo.create_patient(CreatePatientRequest(name="Grace Hopper", age=40, sex="F"))
        gone = repo.create_patient(_ada())
        repo.create_note(_note(gone.id))
        repo.create_note(_note(keep.id))
        repo.create_event(EventCreate(date=_today(), patient_id=gone.id, type="appointment"))
        repo.create_event(EventCreate(date=_today(), patient_id=keep.id, type="appointment"))
        repo.create_event(EventCreate(date=_today(), type="task"))
        repo.add_vital(gone.id, VitalCreate(date="2025-01-05", bp="120/80"))
        repo.add_medication(gone.id, MedicationCreate(name="Metformin", dosage="500mg", frequency="Twice daily", start_date="2025-01-01"))

        repo.delete_patient(gone.id)

        assert [p.id for p in repo.list_patients()] == [keep.id]
        assert repo.list_notes_by_patient(gone.id) == []
        assert all(e.patient_id != gone.id for e in repo.list_events())
        assert len(repo.list_events()) == 2
        assert len(repo.list_notes()) == 1
        # slots are removed, not just emptied
        assert backend.get_item(f"mediq_vitals_{gone.id}") is None
        assert backend.get_item(f"mediq_medications_{gone.id}") is None

    def test_delete_refreshes_metadata(self, repo):
        patient = repo.create_patient(_ada())
        repo.create_note(_note(patient.id))
        repo.delete_patient(patient.id)
        metadata = repo.get_metadata()
        assert metadata.patient_count == 0
        assert metadata.note_count == 0

    def test_create_propagates_quota_error(self):
        repo = ClinicalRepository(PersistenceStore(InMemoryStorage(quota=40)))
        with pytest.raises(StorageQuotaError):
            repo.create_patient(_ada())


def test_ada_lovelace_scenario(repo):
    """Create, annotate and delete a patient end to end."""
    patient = repo.create_patient(_ada())
    assert patient.id == "001"

    repo.create_note(_note(patient.id, content="ok"))
    notes = repo.list_notes_by_patient(patient.id)
    assert len(notes) == 1
    assert notes[0].content == "ok"

    repo.delete_patient(patient.id)
    assert repo.list_notes_by_patient(patient.id) == []


# ---------------------------------------------------------------------------
# Clinical notes
# ---------------------------------------------------------------------------

class TestNotes:
    def test_create_assigns_id_and_created_at(self, repo):
        patient = repo.create_patient(_ada())
        note = repo.create_note(_note(patient.id))
        assert note.id.startswith("note-")
        assert note.created_at
        assert note.updated_at is None

    def test_create_for_unknown_patient_raises(self, repo):
        with pytest.raises(NotFoundError):
            repo.create_note(_note("404"))
        assert repo.list_notes() == []

    def test_note_ids_are_unique(self, repo):
        patient = repo.create_patient(_ada())
        ids = {repo.create_note(_note(patient.id)).id for _ in range(20)}
        assert len(ids) == 20

    def test_update_stamps_updated_at(self, repo):
        patient = repo.create_patient(_ada())
        note = repo.create_note(_note(patient.id))
        updated = repo.update_note(note.id, NoteUpdate(content="revised", insights=["BP improving"]))
        assert updated.content == "revised"
        assert updated.insights == ["BP improving"]
        assert updated.updated_at is not None
        assert updated.created_at == note.created_at
        assert updated.id == note.id

    def test_update_missing_note_raises(self, repo):
        with pytest.raises(NotFoundError, match="Note with ID nope not found"):
            repo.update_note("nope", NoteUpdate(content="x"))

    def test_delete_twice_is_idempotent(self, repo, backend):
        patient = repo.create_patient(_ada())
        note = repo.create_note(_note(patient.id))
        repo.create_note(_note(patient.id, content="second"))
        repo.delete_note(note.id)
        after_first = backend.get_item("mediq_clinical_notes")
        repo.delete_note(note.id)
        assert backend.get_item("mediq_clinical_notes") == after_first
        assert [n.content for n in repo.list_notes()] == ["second"]

    def test_list_by_patient_filters(self, repo):
        a = repo.create_patient(_ada())
        b = repo.create_patient(CreatePatientRequest(name="Grace Hopper", age=40, sex="F"))
        repo.create_note(_note(a.id))
        repo.create_note(_note(b.id))
        repo.create_note(_note(b.id))
        assert len(repo.list_notes_by_patient(a.id)) == 1
        assert len(repo.list_notes_by_patient(b.id)) == 2


# ---------------------------------------------------------------------------
# Calendar events
# ---------------------------------------------------------------------------

class TestEvents:
    def test_list_by_date_is_exact_match(self, repo):
        repo.create_event(EventCreate(date="2025-01-05", type="appointment"))
        repo.create_event(EventCreate(date="2025-01-15", type="task"))
        assert repo.list_events_by_date("2025-01") == []
        assert [e.date for e in repo.list_events_by_date("2025-01-05")] == ["2025-01-05"]

    def test_list_today(self, repo):
        repo.create_event(EventCreate(date=_today(), type="appointment"))
        repo.create_event(EventCreate(date=_tomorrow(), type="appointment"))
        today = repo.list_today_events()
        assert len(today) == 1
        assert today[0].date == _today()

    def test_status_changes_are_unrestricted(self, repo):
        event = repo.create_event(EventCreate(date="2025-01-05", type="appointment"))
        cancelled = repo.update_event(event.id, EventUpdate(status="cancelled"))
        assert cancelled.status == "cancelled"
        completed = repo.update_event(event.id, EventUpdate(status="completed"))
        assert completed.status == "completed"

    def test_update_missing_event_raises(self, repo):
        with pytest.raises(NotFoundError):
            repo.update_event("event-0", EventUpdate(title="x"))

    def test_patient_name_cache_is_not_resynced(self, repo):
        patient = repo.create_patient(_ada())
        repo.create_event(EventCreate(date="2025-01-05", type="appointment", patient_id=patient.id, patient_name=patient.name))
        repo.update_patient(patient.id, EditPatientRequest(name="Augusta Ada King"))
        assert repo.list_events()[0].patient_name == "Ada Lovelace"

    def test_delete_event(self, repo):
        event = repo.create_event(EventCreate(date="2025-01-05", type="reminder"))
        repo.delete_event(event.id)
        repo.delete_event(event.id)
        assert repo.list_events() == []


# ---------------------------------------------------------------------------
# Vitals and medications
# ---------------------------------------------------------------------------

class TestVitalsAndMedications:
    def test_add_and_list_vitals(self, repo):
        vital = repo.add_vital("001", VitalCreate(date="2025-01-05", bp="120/80", hr=72, temp=98.6))
        assert vital.id.startswith("vital-")
        assert repo.list_vitals("001") == [vital]
        assert repo.list_vitals("002") == []

    def test_same_millisecond_ids_do_not_collide(self, repo, monkeypatch):
        monkeypatch.setattr(repository_module, "_millis", lambda: 1736071200000)
        first = repo.add_vital("001", VitalCreate(date="2025-01-05"))
        second = repo.add_vital("001", VitalCreate(date="2025-01-05"))
        assert first.id != second.id
        med_a = repo.add_medication("001", MedicationCreate(name="A", dosage="1mg", frequency="daily", start_date="2025-01-01"))
        med_b = repo.add_medication("001", MedicationCreate(name="B", dosage="1mg", frequency="daily", start_date="2025-01-01"))
        assert med_a.id != med_b.id
        assert med_a.id.startswith("med-1736071200000-")

    def test_active_medications_filter(self, repo):
        for name, status in [("Metformin", "active"), ("Lisinopril", "paused"), ("Aspirin", "inactive"), ("Statin", "active")]:
            repo.add_medication("001", MedicationCreate(name=name, dosage="10mg", frequency="daily", start_date="2025-01-01", status=status))
        active = repo.list_active_medications("001")
        assert [m.name for m in active] == ["Metformin", "Statin"]
        assert len(repo.list_medications("001")) == 4


# ---------------------------------------------------------------------------
# Metadata and stats
# ---------------------------------------------------------------------------

class TestMetadataAndStats:
    def test_default_metadata_when_empty(self, repo):
        metadata = repo.get_metadata()
        assert metadata.version == "1.0.0"
        assert metadata.patient_count == 0

    def test_metadata_tracks_counts(self, repo):
        patient = repo.create_patient(_ada())
        repo.create_note(_note(patient.id))
        repo.create_event(EventCreate(date="2025-01-05", type="task"))
        metadata = repo.get_metadata()
        assert (metadata.patient_count, metadata.note_count, metadata.event_count) == (1, 1, 1)

    def test_compute_stats(self, repo):
        a = repo.create_patient(_ada())
        b = repo.create_patient(CreatePatientRequest(name="Grace Hopper", age=40, sex="F"))
        c = repo.create_patient(CreatePatientRequest(name="Alan Turing", age=41, sex="M"))
        repo.update_patient(b.id, EditPatientRequest(status="urgent"))
        repo.update_patient(c.id, EditPatientRequest(status="inactive"))
        repo.create_note(_note(a.id))
        repo.create_event(EventCreate(date=_today(), type="appointment", patient_id=a.id))
        repo.create_event(EventCreate(date=_today(), type="task"))
        repo.create_event(EventCreate(date=_tomorrow(), type="appointment"))

        stats = repo.compute_stats()
        assert stats.total_patients == 3
        assert stats.active_patients == 2
        assert stats.urgent_patients == 1
        assert stats.total_notes == 1
        assert stats.today_appointments == 1
        assert stats.last_updated == repo.get_metadata().last_sync

    def test_stats_report_no_recovered_collections_when_clean(self, repo):
        repo.create_patient(_ada())
        assert repo.compute_stats().recovered_collections == []

    def test_stats_report_unreadable_collections(self, repo, backend):
        repo.create_patient(_ada())
        backend.set_item("mediq_clinical_notes", "{broken")
        backend.set_item("mediq_calendar_events", '[{"id": 1}]')

        stats = repo.compute_stats()
        assert stats.total_notes == 0
        assert stats.recovered_collections == ["mediq_clinical_notes", "mediq_calendar_events"]
        assert repo.recovered_collections() == stats.recovered_collections
