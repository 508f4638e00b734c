"""Services for extraction, model calls, enrichment and collection state."""

from litreview.services.analysis_service import AnalysisExtractor
from litreview.services.collection_service import ImportMode, PaperCollection
from litreview.services.crossref_service import CrossrefService
from litreview.services.enrichment_service import Enricher
from litreview.services.export_service import ReviewExporter
from litreview.services.llm_service import ModelGateway, ResponseMode
from litreview.services.pipeline_service import IntakePipeline
from litreview.services.screening_service import RELEVANCE_THRESHOLD, RelevanceScreener
from litreview.services.taxonomy_service import (
    CitationStrategyAdvisor,
    TaxonomyDraft,
    TaxonomyGenerator,
)

__all__ = [
    "AnalysisExtractor",
    "CitationStrategyAdvisor",
    "CrossrefService",
    "Enricher",
    "ImportMode",
    "IntakePipeline",
    "ModelGateway",
    "PaperCollection",
    "RELEVANCE_THRESHOLD",
    "RelevanceScreener",
    "ResponseMode",
    "ReviewExporter",
    "TaxonomyDraft",
    "TaxonomyGenerator",
]
