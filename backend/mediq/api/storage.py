from fastapi import APIRouter, Depends, Request, Response, status
from ..models.records import StorageMetadata, StorageStats
from ..services.repository import ClinicalRepository, get_repository

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/stats", response_model=StorageStats)
def get_stats(repo: ClinicalRepository = Depends(get_repository)):
    return repo.compute_stats()


@router.get("/metadata", response_model=StorageMetadata)
def get_metadata(repo: ClinicalRepository = Depends(get_repository)):
    return repo.get_metadata()


@router.get("/export")
def export_storage(repo: ClinicalRepository = Depends(get_repository)):
    """Snapshot of patients, notes and events. Vitals and medications are not exported."""
    return Response(
        content=repo.export_all(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="mediq-export.json"'},
    )


@router.post("/import", response_model=StorageMetadata)
async def import_storage(request: Request, repo: ClinicalRepository = Depends(get_repository)):
    """Replace all stored data with the posted export document."""
    body = await request.body()
    repo.import_all(body.decode("utf-8", errors="replace"))
    return repo.get_metadata()


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
def clear_storage(repo: ClinicalRepository = Depends(get_repository)):
    repo.clear_all()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
