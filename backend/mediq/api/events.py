from fastapi import APIRouter, Depends, HTTPException, Response, status
from typing import List, Optional
from ..models.records import CalendarEvent, EventCreate, EventUpdate
from ..services.repository import ClinicalRepository, get_repository

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/", response_model=List[CalendarEvent])
def list_events(
    date: Optional[str] = None,
    repo: ClinicalRepository = Depends(get_repository),
):
    """All events, or only those whose date equals ``date`` exactly."""
    if date:
        return repo.list_events_by_date(date)
    return repo.list_events()


@router.get("/today", response_model=List[CalendarEvent])
def list_today_events(repo: ClinicalRepository = Depends(get_repository)):
    return repo.list_today_events()


@router.post("/", response_model=CalendarEvent, status_code=status.HTTP_201_CREATED)
def create_event(event_in: EventCreate, repo: ClinicalRepository = Depends(get_repository)):
    return repo.create_event(event_in)


@router.get("/{event_id}", response_model=CalendarEvent)
def get_event(event_id: str, repo: ClinicalRepository = Depends(get_repository)):
    event = repo.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail=f"Event with ID {event_id} not found")
    return event


@router.patch("/{event_id}", response_model=CalendarEvent)
def update_event(
    event_id: str,
    updates: EventUpdate,
    repo: ClinicalRepository = Depends(get_repository),
):
    return repo.update_event(event_id, updates)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, repo: ClinicalRepository = Depends(get_repository)):
    repo.delete_event(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
