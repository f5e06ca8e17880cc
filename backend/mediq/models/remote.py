"""
Shapes exchanged with the remote patient/notes REST API.
"""
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict

RemoteNoteStatus = Literal["draft", "final", "archived"]


class ApiPatientResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    patient_id: str
    name: str
    age: int
    sex: Literal["M", "F", "Other"]
    phone: Optional[str] = None
    city: Optional[str] = None
    created_at: str


class ApiCreatePatientRequest(BaseModel):
    name: str
    age: int
    sex: Literal["M", "F", "Other"]
    phone: Optional[str] = None
    city: Optional[str] = None


class ApiClinicalNote(BaseModel):
    model_config = ConfigDict(extra="ignore")

    note_id: str
    patient_id: str
    author: Optional[str] = None
    type: Literal["text", "voice", "prescription"]
    content: str
    file_url: Optional[str] = None
    status: RemoteNoteStatus = "final"
    created_at: str
    last_updated: Optional[str] = None


class ApiCreateClinicalNoteRequest(BaseModel):
    patient_id: str
    type: Literal["text", "voice", "prescription"]
    content: str
    status: Optional[RemoteNoteStatus] = None
    file_url: Optional[str] = None


class ActionResult(BaseModel):
    """Outcome of a remote mutation. Failures are reported here rather than raised."""
    success: bool
    message: Optional[str] = None
    data: Optional[Any] = None
    errors: Optional[Dict[str, str]] = None
