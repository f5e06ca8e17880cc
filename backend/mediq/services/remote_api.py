"""
Remote patient/notes REST API client.

Some dashboard pages read patients and notes from a hosted backend instead of
the local store. The shapes differ from the local records, so converters map
them onto Patient and ClinicalNote.
"""
import logging
from typing import Any, Dict, List, Optional
import httpx
from pydantic import ValidationError
from ..core.config import settings
from ..core.exceptions import NotFoundError, RemoteApiError
from ..models.records import ClinicalNote, Patient
from ..models.remote import (
    ActionResult,
    ApiClinicalNote,
    ApiCreateClinicalNoteRequest,
    ApiCreatePatientRequest,
    ApiPatientResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "accept": "application/json",
    # ngrok free tier serves a warning page without this
    "ngrok-skip-browser-warning": "true",
}


class RemoteApiClient:
    """HTTP client for the hosted patient API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or settings.REMOTE_API_URL).rstrip("/")
        self.timeout = timeout or settings.REMOTE_API_TIMEOUT
        self.transport = transport

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    def fetch_patients(self, skip: int = 0, limit: int = 100) -> List[ApiPatientResponse]:
        resp = self._request("GET", "/patients/basic/", params={"skip": skip, "limit": limit})
        self._raise_for_status(resp, "Failed to fetch patients")
        data = resp.json()
        logger.debug("Fetched %d patients", len(data))
        return [ApiPatientResponse.model_validate(p) for p in data]

    def fetch_patient_details(self, patient_id: str) -> Dict[str, Any]:
        resp = self._request("GET", f"/ehr/{patient_id}")
        if resp.status_code == 404:
            raise NotFoundError("Patient", patient_id)
        self._raise_for_status(resp, "Failed to fetch patient details")
        return resp.json()

    def create_patient(self, payload: ApiCreatePatientRequest) -> ActionResult:
        try:
            resp = self._request(
                "POST", "/patients/basic/", json=payload.model_dump(exclude_none=True)
            )
            return self._action_result(resp, "Patient created", ApiPatientResponse)
        except RemoteApiError as exc:
            logger.warning("Error creating patient: %s", exc)
            return ActionResult(success=False, message=str(exc))

    def update_patient_ehr(self, patient_id: str, updates: Dict[str, Any]) -> ActionResult:
        """PATCH any part of the patient's EHR; only the given sections are changed."""
        try:
            resp = self._request("PATCH", f"/ehr/{patient_id}", json=updates)
            return self._action_result(resp, "Patient EHR updated")
        except RemoteApiError as exc:
            logger.warning("Error updating patient EHR: %s", exc)
            return ActionResult(success=False, message=str(exc))

    def upload_patient_file(
        self,
        patient_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> Any:
        resp = self._request(
            "POST",
            "/upload/",
            data={"patient_id": patient_id},
            files={"file": (filename, content, content_type)},
        )
        self._raise_for_status(resp, "Upload failed")
        return resp.json()

    # ------------------------------------------------------------------
    # Clinical notes
    # ------------------------------------------------------------------

    def fetch_clinical_notes(self, patient_id: str) -> List[ApiClinicalNote]:
        resp = self._request("GET", f"/patients/{patient_id}/notes/")
        self._raise_for_status(resp, "Failed to fetch clinical notes")
        return [ApiClinicalNote.model_validate(n) for n in resp.json()]

    def create_clinical_note(self, payload: ApiCreateClinicalNoteRequest) -> ActionResult:
        try:
            resp = self._request(
                "POST",
                f"/patients/{payload.patient_id}/notes/",
                json=payload.model_dump(exclude_none=True),
            )
            return self._action_result(resp, "Clinical note created", ApiClinicalNote)
        except RemoteApiError as exc:
            logger.warning("Error creating clinical note: %s", exc)
            return ActionResult(success=False, message=str(exc))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            with httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=DEFAULT_HEADERS,
                transport=self.transport,
            ) as client:
                return client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Remote API %s %s failed: %s", method, path, exc)
            raise RemoteApiError(str(exc)) from exc

    @staticmethod
    def _raise_for_status(resp: httpx.Response, message: str) -> None:
        if resp.is_error:
            raise RemoteApiError(f"{message}: {resp.reason_phrase}", status_code=resp.status_code)

    @staticmethod
    def _action_result(resp: httpx.Response, default_message: str, model=None) -> ActionResult:
        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.is_error:
            body = body if isinstance(body, dict) else {}
            return ActionResult(
                success=False,
                message=body.get("message") or resp.reason_phrase,
                errors=body.get("errors"),
            )

        message = body.get("message") if isinstance(body, dict) else None
        data = body
        if model is not None and isinstance(body, dict):
            try:
                data = model.model_validate(body)
            except ValidationError as exc:
                logger.warning("Unexpected response shape, returning raw body: %s", exc)
        return ActionResult(success=True, message=message or default_message, data=data)


def convert_api_patient_to_internal(api_patient: ApiPatientResponse) -> Patient:
    """Map a remote patient onto the local record. The remote id doubles as the MRN."""
    return Patient(
        id=api_patient.patient_id,
        mrn=api_patient.patient_id,
        name=api_patient.name,
        age=api_patient.age,
        sex=api_patient.sex,
        phone=api_patient.phone,
        city=api_patient.city,
        status="new",
        last_visit=api_patient.created_at,
    )


def convert_api_note_to_internal(api_note: ApiClinicalNote) -> ClinicalNote:
    return ClinicalNote(
        id=api_note.note_id,
        patient_id=api_note.patient_id,
        date=api_note.created_at,
        type=api_note.type,
        content=api_note.content,
        created_at=api_note.created_at,
        updated_at=api_note.last_updated,
    )
