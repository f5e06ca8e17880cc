from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from typing import List, Optional
from ..models.records import ClinicalNote, NoteCreate, NoteUpdate
from ..services.repository import ClinicalRepository, get_repository, utc_now_iso
from ..services.transcription import TranscriptionClient, get_transcription_client

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("/", response_model=List[ClinicalNote])
def list_notes(
    patient_id: Optional[str] = None,
    repo: ClinicalRepository = Depends(get_repository),
):
    if patient_id:
        return repo.list_notes_by_patient(patient_id)
    return repo.list_notes()


@router.post("/", response_model=ClinicalNote, status_code=status.HTTP_201_CREATED)
def create_note(note_in: NoteCreate, repo: ClinicalRepository = Depends(get_repository)):
    return repo.create_note(note_in)


@router.post("/voice", response_model=ClinicalNote, status_code=status.HTTP_201_CREATED)
async def create_voice_note(
    request: Request,
    patient_id: str,
    repo: ClinicalRepository = Depends(get_repository),
    transcriber: TranscriptionClient = Depends(get_transcription_client),
):
    """Transcribe the posted audio and store it as a voice note."""
    if repo.get_patient(patient_id) is None:
        raise HTTPException(status_code=404, detail=f"Patient with ID {patient_id} not found")

    audio = await request.body()
    if not audio:
        raise HTTPException(status_code=400, detail="No audio provided")

    transcript = transcriber.transcribe(audio, request.headers.get("content-type", "audio/webm"))
    return repo.create_note(NoteCreate(
        patient_id=patient_id,
        date=utc_now_iso(),
        type="voice",
        content=transcript,
        transcript=transcript,
    ))


@router.get("/{note_id}", response_model=ClinicalNote)
def get_note(note_id: str, repo: ClinicalRepository = Depends(get_repository)):
    note = repo.get_note(note_id)
    if not note:
        raise HTTPException(status_code=404, detail=f"Note with ID {note_id} not found")
    return note


@router.patch("/{note_id}", response_model=ClinicalNote)
def update_note(
    note_id: str,
    updates: NoteUpdate,
    repo: ClinicalRepository = Depends(get_repository),
):
    return repo.update_note(note_id, updates)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(note_id: str, repo: ClinicalRepository = Depends(get_repository)):
    repo.delete_note(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
