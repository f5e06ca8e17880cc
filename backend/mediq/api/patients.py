from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from typing import List, Optional
from ..models.records import (
    ClinicalNote,
    CreatePatientRequest,
    EditPatientRequest,
    MedicationCreate,
    Patient,
    PatientMedication,
    PatientVital,
    VitalCreate,
)
from ..services.repository import ClinicalRepository, get_repository

router = APIRouter(prefix="/patients", tags=["patients"])


def _require_patient(patient_id: str, repo: ClinicalRepository) -> Patient:
    patient = repo.get_patient(patient_id)
    if not patient:
        raise HTTPException(status_code=404, detail=f"Patient with ID {patient_id} not found")
    return patient


@router.get("/", response_model=List[Patient])
def list_patients(
    status_filter: Optional[str] = Query(None, alias="status"),
    repo: ClinicalRepository = Depends(get_repository),
):
    patients = repo.list_patients()
    if status_filter:
        patients = [p for p in patients if p.status == status_filter]
    return patients


@router.post("/", response_model=Patient, status_code=status.HTTP_201_CREATED)
def create_patient(
    patient_in: CreatePatientRequest,
    repo: ClinicalRepository = Depends(get_repository),
):
    return repo.create_patient(patient_in)


@router.get("/{patient_id}", response_model=Patient)
def get_patient(patient_id: str, repo: ClinicalRepository = Depends(get_repository)):
    return _require_patient(patient_id, repo)


@router.patch("/{patient_id}", response_model=Patient)
def update_patient(
    patient_id: str,
    updates: EditPatientRequest,
    repo: ClinicalRepository = Depends(get_repository),
):
    return repo.update_patient(patient_id, updates)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(patient_id: str, repo: ClinicalRepository = Depends(get_repository)):
    """Delete the patient with its notes, events, vitals and medications."""
    _require_patient(patient_id, repo)
    repo.delete_patient(patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{patient_id}/notes", response_model=List[ClinicalNote])
def list_patient_notes(patient_id: str, repo: ClinicalRepository = Depends(get_repository)):
    return repo.list_notes_by_patient(patient_id)


@router.get("/{patient_id}/vitals", response_model=List[PatientVital])
def list_vitals(patient_id: str, repo: ClinicalRepository = Depends(get_repository)):
    return repo.list_vitals(patient_id)


@router.post("/{patient_id}/vitals", response_model=PatientVital, status_code=status.HTTP_201_CREATED)
def add_vital(
    patient_id: str,
    vital_in: VitalCreate,
    repo: ClinicalRepository = Depends(get_repository),
):
    _require_patient(patient_id, repo)
    return repo.add_vital(patient_id, vital_in)


@router.get("/{patient_id}/medications", response_model=List[PatientMedication])
def list_medications(
    patient_id: str,
    active: bool = False,
    repo: ClinicalRepository = Depends(get_repository),
):
    if active:
        return repo.list_active_medications(patient_id)
    return repo.list_medications(patient_id)


@router.post(
    "/{patient_id}/medications",
    response_model=PatientMedication,
    status_code=status.HTTP_201_CREATED,
)
def add_medication(
    patient_id: str,
    medication_in: MedicationCreate,
    repo: ClinicalRepository = Depends(get_repository),
):
    _require_patient(patient_id, repo)
    return repo.add_medication(patient_id, medication_in)
