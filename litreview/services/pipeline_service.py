"""Paper intake: relevance check, then analysis in the background.

Flow per uploaded PDF::

    check_filename ─► screen ─► (person decides) ─► accept ─► background job
                                                   reject       extract text
                                                                structured analysis
                                                                Crossref enrichment
                                                                commit to collection

Screening errors propagate to the caller and no paper is created.
After ``accept`` every failure ends as an ``error`` paper; nothing is
retried, cancelled or timed out here.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Callable, Optional

from litreview.config import ResearchProfile
from litreview.errors import ExtractionError, LitReviewError, PaperNotFoundError
from litreview.models.paper import AnalyzedPaper, ScreeningDecision
from litreview.services.analysis_service import AnalysisExtractor
from litreview.services.collection_service import PaperCollection
from litreview.services.crossref_service import CrossrefService
from litreview.services.enrichment_service import Enricher
from litreview.services.llm_service import ModelGateway
from litreview.services.pdf_service import extract_excerpt, extract_text
from litreview.services.screening_service import RelevanceScreener

logger = logging.getLogger(__name__)


class IntakePipeline:
    """Runs uploads through screening and background analysis."""

    def __init__(
        self,
        collection: PaperCollection,
        screener: RelevanceScreener,
        extractor: AnalysisExtractor,
        enricher: Enricher,
        max_workers: int = 4,
    ):
        """Initialize pipeline.

        Args:
            collection: Collection that receives accepted papers
            screener: Relevance check stage
            extractor: Structured analysis stage
            enricher: Crossref enrichment stage
            max_workers: Papers analyzed in parallel
        """
        self.collection = collection
        self.screener = screener
        self.extractor = extractor
        self.enricher = enricher
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="litreview-analysis"
        )
        # Analyses still running, by paper id
        self.jobs: dict[str, Future] = {}

    @classmethod
    def create(
        cls,
        collection: PaperCollection,
        gateway: ModelGateway,
        crossref: CrossrefService,
        max_workers: int = 4,
    ) -> "IntakePipeline":
        """Wire the default stages around one gateway and one Crossref client."""
        return cls(
            collection=collection,
            screener=RelevanceScreener(gateway),
            extractor=AnalysisExtractor(gateway),
            enricher=Enricher(crossref),
            max_workers=max_workers,
        )

    # ── Before acceptance ─────────────────────────────────────────────

    def check_filename(self, file_name: str) -> bool:
        """True if a paper with this file name is already in the collection."""
        return self.collection.filename_exists(file_name)

    def screen(
        self,
        file_name: str,
        content: bytes,
        profile: ResearchProfile,
    ) -> ScreeningDecision:
        """Run the relevance check on the first pages.

        Raises:
            ExtractionError: Unreadable PDF or no text on the first pages
            ScreeningParseError, AuthenticationError, ProviderError,
            EmptyResponseError: From the relevance check
        """
        excerpt = extract_excerpt(content)
        if not excerpt:
            raise ExtractionError(f"{file_name}: no extractable text on the first pages")
        result = self.screener.screen(excerpt, profile)
        return ScreeningDecision(
            file_name=file_name,
            content=content,
            result=result,
            filename_seen=self.check_filename(file_name),
        )

    def reject(self, decision: ScreeningDecision) -> None:
        """Drop a screened upload.  Nothing was stored, so nothing to undo."""
        logger.info(
            "Rejected %s (score %d)", decision.file_name, decision.result.score
        )

    # ── Acceptance ────────────────────────────────────────────────────

    def accept(
        self,
        decision: ScreeningDecision,
        profile: ResearchProfile,
    ) -> tuple[str, Future]:
        """Accept a screened upload and start its analysis."""
        return self.submit(decision.file_name, decision.content, profile)

    def submit(
        self,
        file_name: str,
        content: bytes,
        profile: ResearchProfile,
    ) -> tuple[str, Future]:
        """Create the ``analyzing`` paper and queue its analysis.

        Also used to analyze a paper without a relevance check.

        Returns:
            The new paper id and a future resolving to the final paper
        """
        record_id = self.collection.accept(file_name)
        future = self._executor.submit(self.analyze, record_id, content, profile)
        self.jobs[record_id] = future
        future.add_done_callback(lambda _: self.jobs.pop(record_id, None))
        return record_id, future

    def ingest(
        self,
        file_name: str,
        content: bytes,
        profile: ResearchProfile,
        decide: Callable[[ScreeningDecision], bool],
    ) -> Optional[tuple[str, Future]]:
        """Screen, ask *decide*, then accept or reject."""
        decision = self.screen(file_name, content, profile)
        if decide(decision):
            return self.accept(decision, profile)
        self.reject(decision)
        return None

    # ── Background job ────────────────────────────────────────────────

    def analyze(
        self,
        record_id: str,
        content: bytes,
        profile: ResearchProfile,
    ) -> Optional[AnalyzedPaper]:
        """Full analysis of one accepted paper; commits the outcome.

        Returns:
            The paper in its final state, or None if it was removed
            while the analysis ran
        """
        try:
            full_text = extract_text(content)
            if not full_text:
                raise ExtractionError("No extractable text in PDF (scanned document?)")
            draft = self.extractor.extract(full_text, profile)
            record = self.enricher.enrich(draft)
        except LitReviewError as e:
            return self._fail(record_id, str(e))
        except Exception as e:
            logger.exception("Unexpected error while analyzing %s", record_id)
            return self._fail(record_id, f"Unexpected error: {e}")

        try:
            return self.collection.complete_analysis(record_id, record)
        except PaperNotFoundError:
            logger.info("Paper %s was removed before its analysis finished", record_id)
            return None

    def _fail(self, record_id: str, message: str) -> Optional[AnalyzedPaper]:
        try:
            return self.collection.fail_analysis(record_id, message)
        except PaperNotFoundError:
            logger.info("Paper %s was removed before its analysis failed", record_id)
            return None

    def wait_all(self) -> None:
        """Block until every analysis queued so far is done."""
        pending = list(self.jobs.items())
        wait_futures([future for _, future in pending])
        for record_id, _ in pending:
            self.jobs.pop(record_id, None)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
