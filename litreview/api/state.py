"""Application state shared by the API routers."""

from dataclasses import dataclass
from typing import Callable

from fastapi import Request

from litreview.config import ResearchProfile, Settings
from litreview.database.repository import PaperRepository
from litreview.services.collection_service import PaperCollection
from litreview.services.crossref_service import CrossrefService
from litreview.services.export_service import ReviewExporter
from litreview.services.llm_service import ModelGateway
from litreview.services.pipeline_service import IntakePipeline


@dataclass
class AppState:
    """Runtime services for one API process."""

    collection: PaperCollection
    pipeline: IntakePipeline
    gateway: ModelGateway
    crossref: CrossrefService
    exporter: ReviewExporter
    profile_source: Callable[[], ResearchProfile]

    def profile(self) -> ResearchProfile:
        """Current research profile, read per request."""
        return self.profile_source()


def build_state(settings: Settings = None) -> AppState:
    """Wire services from ``Settings``."""
    settings = settings or Settings.load()
    repo = PaperRepository(settings.db_path)
    collection = PaperCollection.from_repository(repo)
    crossref = CrossrefService(settings.contact_email)
    gateway = ModelGateway(settings.provider_config)
    return AppState(
        collection=collection,
        pipeline=IntakePipeline.create(collection, gateway, crossref, settings.workers),
        gateway=gateway,
        crossref=crossref,
        exporter=ReviewExporter(settings.export_dir),
        profile_source=settings.research_profile,
    )


def get_state(request: Request) -> AppState:
    """Dependency returning the state built at startup."""
    return request.app.state.services
