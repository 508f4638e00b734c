"""Paper endpoints: list, screen, accept, edit, delete."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse

from litreview.api.state import AppState, get_state
from litreview.errors import CollectionError
from litreview.models.paper import PaperRecord, PaperStatus
from litreview.services.enrichment_service import Enricher

router = APIRouter(prefix="/api/papers")


def _confirm_flag(confirm: bool):
    """Edit confirmation callback for the ``confirm`` query flag."""
    return lambda doi, ids: confirm


@router.get("")
def list_papers(
    status: Optional[PaperStatus] = Query(None, description="Filter by status"),
    services: AppState = Depends(get_state),
):
    """All papers, newest upload first."""
    papers = services.collection.snapshot()
    if status is not None:
        papers = [p for p in papers if p.status is status]
    return JSONResponse([p.to_dict() for p in papers])


@router.get("/{paper_id}")
def get_paper(paper_id: str, services: AppState = Depends(get_state)):
    return JSONResponse(services.collection.get(paper_id).to_dict())


@router.post("/screen")
def screen_paper(file: UploadFile = File(...), services: AppState = Depends(get_state)):
    """Relevance check of an uploaded PDF.  Nothing is stored."""
    decision = services.pipeline.screen(file.filename, file.file.read(), services.profile())
    return JSONResponse({
        "fileName": decision.file_name,
        "status": decision.status.value,
        "relevance": decision.result.to_dict(),
        "band": decision.result.band,
        "filenameSeen": decision.filename_seen,
    })


@router.post("", status_code=202)
def accept_paper(file: UploadFile = File(...), services: AppState = Depends(get_state)):
    """Accept an uploaded PDF and analyze it in the background."""
    filename_seen = services.pipeline.check_filename(file.filename)
    record_id, _ = services.pipeline.submit(file.filename, file.file.read(), services.profile())
    return JSONResponse(
        {"id": record_id, "status": PaperStatus.ANALYZING.value, "filenameSeen": filename_seen},
        status_code=202,
    )


@router.put("/{paper_id}")
def edit_paper(
    paper_id: str,
    record: dict[str, Any] = Body(...),
    confirm: bool = Query(False, description="Save even if the DOI is used by another paper"),
    services: AppState = Depends(get_state),
):
    """Replace the analysis of a complete paper."""
    try:
        new_record = PaperRecord.from_dict(record)
    except (TypeError, ValueError, AttributeError) as e:
        raise CollectionError(f"Invalid record: {e}") from e
    paper = services.collection.edit_record(paper_id, new_record, confirm=_confirm_flag(confirm))
    return JSONResponse(paper.to_dict())


@router.post("/{paper_id}/refresh")
def refresh_paper(
    paper_id: str,
    confirm: bool = Query(False),
    services: AppState = Depends(get_state),
):
    """Re-read title, authors and abstract from Crossref by DOI."""
    paper = services.collection.get(paper_id)
    if paper.data is None:
        raise CollectionError(f"Paper {paper_id} has no analysis to refresh")
    record = Enricher(services.crossref).refresh_from_doi(paper.data)
    paper = services.collection.edit_record(paper_id, record, confirm=_confirm_flag(confirm))
    return JSONResponse(paper.to_dict())


@router.delete("/{paper_id}")
def delete_paper(paper_id: str, services: AppState = Depends(get_state)):
    services.collection.remove(paper_id)
    return JSONResponse({"ok": True})
