"""Collection-wide endpoints: backup, restore, export, synthesis."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from litreview.api.state import AppState, get_state
from litreview.services.collection_service import ImportMode, parse_backup
from litreview.services.export_service import EXPORT_FORMATS
from litreview.services.taxonomy_service import CitationStrategyAdvisor, TaxonomyGenerator

router = APIRouter(prefix="/api")

_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
    "ris": "application/x-research-info-systems",
    "md": "text/markdown",
}


class TaxonomyPayload(BaseModel):
    """Request body for a taxonomy draft."""
    categories: Optional[list[str]] = None


@router.get("/status")
def get_status(services: AppState = Depends(get_state)):
    """Paper counts per status."""
    return JSONResponse(services.collection.status_counts())


@router.get("/backup")
def backup(services: AppState = Depends(get_state)):
    """The whole collection as a JSON array."""
    return JSONResponse(
        [p.to_dict() for p in services.collection.snapshot()],
        headers={"Content-Disposition": 'attachment; filename="literature_review_backup.json"'},
    )


@router.post("/restore")
def restore(
    papers: list[Any] = Body(...),
    mode: ImportMode = Query(ImportMode.REPLACE),
    services: AppState = Depends(get_state),
):
    """Import a backup array, replacing or merging into the collection."""
    added = services.collection.import_batch(parse_backup(papers), mode)
    return JSONResponse({"added": added, "mode": mode.value, "total": len(services.collection)})


@router.get("/export")
def export(
    fmt: str = Query("json", alias="format", pattern="^(" + "|".join(EXPORT_FORMATS) + ")$"),
    services: AppState = Depends(get_state),
):
    """Complete papers rendered as JSON, CSV, RIS or Markdown."""
    content = services.exporter.render(services.collection.completed_records(), fmt)
    filename = f"literature_review{EXPORT_FORMATS[fmt]}"
    return Response(
        content,
        media_type=_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/taxonomy")
def taxonomy(
    body: Optional[TaxonomyPayload] = None,
    services: AppState = Depends(get_state),
):
    """Draft the taxonomy section from the complete papers."""
    draft = TaxonomyGenerator(services.gateway).generate(
        services.collection.completed_records(), services.profile(), body.categories if body else None
    )
    return JSONResponse({
        "text": draft.text,
        "paperCount": draft.paper_count,
        "createdAt": draft.created_at,
    })


@router.post("/strategy")
def strategy(services: AppState = Depends(get_state)):
    """Suggested searches for sections the corpus does not cover."""
    gaps = CitationStrategyAdvisor(services.gateway).recommend(
        services.collection.completed_records(), services.profile()
    )
    return JSONResponse([
        {"section": g.section, "gap": g.gap, "searchQueries": g.search_queries}
        for g in gaps
    ])
