"""End-to-end intake scenarios with a scripted model and Crossref."""

import json
import threading

import pytest
from conftest import FakeCrossref, FakeGateway, analysis_payload, crossref_work
from pdf_factory import make_pdf

from litreview.errors import ExtractionError, ScreeningParseError
from litreview.models.paper import PaperStatus
from litreview.services.analysis_service import AnalysisExtractor
from litreview.services.collection_service import PaperCollection
from litreview.services.enrichment_service import Enricher
from litreview.services.pipeline_service import IntakePipeline
from litreview.services.screening_service import RelevanceScreener

PAPER_A = make_pdf(["Gesture Generation for Avatar Robots", "Method", "Study", "Results"])
PAPER_B = make_pdf(["Unrelated Chemistry Paper"])


def _router(score=85, analysis=None):
    """Answer relevance prompts with *score* and analysis prompts with *analysis*."""
    analysis = analysis if analysis is not None else json.dumps(analysis_payload())

    def answer(prompt):
        if prompt.startswith("You are evaluating if a research paper is relevant"):
            return json.dumps({"score": score, "reasoning": "r", "matchedSections": []})
        return analysis

    return answer


@pytest.fixture
def collection():
    return PaperCollection()


@pytest.fixture
def make_pipeline(collection):
    pipelines = []

    def _make(*answers, crossref=None):
        gateway = FakeGateway(*answers)
        pipeline = IntakePipeline(
            collection,
            RelevanceScreener(gateway),
            AnalysisExtractor(gateway),
            Enricher(crossref or FakeCrossref()),
            max_workers=2,
        )
        pipelines.append(pipeline)
        return pipeline

    yield _make
    for pipeline in pipelines:
        pipeline.shutdown()


def test_relevant_paper_is_analyzed_and_enriched(make_pipeline, collection, profile):
    crossref = FakeCrossref(search_hits=[crossref_work(doi="10.1/a")])
    pipeline = make_pipeline(_router(85), crossref=crossref)

    decision = pipeline.screen("paperA.pdf", PAPER_A, profile)
    assert decision.status is PaperStatus.PENDING_RELEVANCE
    assert decision.result.score == 85 and decision.result.is_relevant
    assert len(collection) == 0

    record_id, future = pipeline.accept(decision, profile)
    assert collection.get(record_id).status in (PaperStatus.ANALYZING, PaperStatus.COMPLETE)

    paper = future.result(timeout=30)
    assert paper.status is PaperStatus.COMPLETE
    assert paper.data.title == "Gesture Generation for Avatar Robots"
    assert paper.data.journal == "Proceedings of CHI"
    assert paper.data.doi == "10.1/a"
    assert paper.is_duplicate is False


def test_rejected_paper_leaves_no_record(make_pipeline, collection, profile):
    pipeline = make_pipeline(_router(12))

    decision = pipeline.screen("paperB.pdf", PAPER_B, profile)
    assert decision.result.is_relevant is False
    pipeline.reject(decision)

    assert len(collection) == 0


def test_ingest_asks_decide_callback(make_pipeline, collection, profile):
    pipeline = make_pipeline(_router(85))
    seen = []

    assert pipeline.ingest("paperA.pdf", PAPER_A, profile, lambda d: seen.append(d.result.score) or False) is None
    assert seen == [85]
    assert len(collection) == 0

    record_id, future = pipeline.ingest("paperA.pdf", PAPER_A, profile, lambda d: True)
    assert future.result(timeout=30).status is PaperStatus.COMPLETE


def test_screening_failure_creates_no_record(make_pipeline, collection, profile):
    pipeline = make_pipeline("this is not json")
    with pytest.raises(ScreeningParseError):
        pipeline.screen("paperA.pdf", PAPER_A, profile)
    assert len(collection) == 0


def test_pdf_without_text_cannot_be_screened(make_pipeline, collection, profile):
    pipeline = make_pipeline(_router(85))
    with pytest.raises(ExtractionError):
        pipeline.screen("scan.pdf", make_pdf(["", ""]), profile)
    assert len(collection) == 0


def test_incomplete_analysis_ends_as_error(make_pipeline, collection, profile):
    payload = analysis_payload()
    del payload["categoryC"]
    pipeline = make_pipeline(_router(85, json.dumps(payload)))

    record_id, future = pipeline.submit("paperA.pdf", PAPER_A, profile)
    paper = future.result(timeout=30)

    assert paper.status is PaperStatus.ERROR
    assert "categoryC" in paper.error_msg
    assert collection.get(record_id).data is None


def test_unreadable_pdf_ends_as_error(make_pipeline, profile):
    pipeline = make_pipeline(_router(85))
    _, future = pipeline.submit("broken.pdf", b"not a pdf at all", profile)

    paper = future.result(timeout=30)
    assert paper.status is PaperStatus.ERROR
    assert paper.error_msg


def test_unexpected_exception_ends_as_error(make_pipeline, profile):
    pipeline = make_pipeline(RuntimeError("socket reset"))
    _, future = pipeline.submit("paperA.pdf", PAPER_A, profile)

    paper = future.result(timeout=30)
    assert paper.status is PaperStatus.ERROR
    assert paper.error_msg == "Unexpected error: socket reset"


def test_same_doi_twice_flags_second_as_duplicate(make_pipeline, collection, profile):
    payload = analysis_payload(doi="10.1145/3544548.3581000")
    pipeline = make_pipeline(_router(85, json.dumps(payload)))

    _, first = pipeline.submit("paperA.pdf", PAPER_A, profile)
    first_paper = first.result(timeout=30)
    _, second = pipeline.submit("paperA-copy.pdf", PAPER_A, profile)
    second_paper = second.result(timeout=30)

    assert first_paper.is_duplicate is False
    assert second_paper.is_duplicate is True
    assert collection.get(first_paper.id).is_duplicate is False


def test_filename_advisory(make_pipeline, collection, profile):
    pipeline = make_pipeline(_router(85))
    _, future = pipeline.submit("paperA.pdf", PAPER_A, profile)
    future.result(timeout=30)

    assert pipeline.check_filename("paperA.pdf")
    assert pipeline.screen("paperA.pdf", PAPER_A, profile).filename_seen is True


def test_paper_removed_during_analysis_is_dropped(make_pipeline, collection, profile):
    pipeline = make_pipeline(_router(85))
    record_id = collection.accept("paperA.pdf")
    collection.remove(record_id)

    assert pipeline.analyze(record_id, PAPER_A, profile) is None
    assert len(collection) == 0


def test_wait_all(make_pipeline, collection, profile):
    pipeline = make_pipeline(_router(85))
    for name in ("a.pdf", "b.pdf", "c.pdf"):
        pipeline.submit(name, PAPER_A, profile)

    pipeline.wait_all()

    assert collection.status_counts()["complete"] == 3
    assert pipeline.jobs == {}


def test_finished_job_leaves_the_job_map(make_pipeline, profile):
    pipeline = make_pipeline(_router(85))
    record_id, future = pipeline.submit("a.pdf", PAPER_A, profile)

    # Callbacks run in registration order, after the pipeline's own
    finished = threading.Event()
    future.add_done_callback(lambda _: finished.set())
    assert finished.wait(timeout=10)

    assert record_id not in pipeline.jobs


def test_doi_case_difference_is_still_a_duplicate(make_pipeline, collection, profile):
    answers = iter(["10.1/x", "10.1/X"])

    def answer(prompt):
        if prompt.startswith("You are evaluating if a research paper is relevant"):
            return json.dumps({"score": 85, "reasoning": "r"})
        return json.dumps(analysis_payload(doi=next(answers)))

    # registry 404s on both DOIs; enrichment leaves the drafts as they are
    pipeline = make_pipeline(answer)

    decision_a = pipeline.screen("paperA.pdf", PAPER_A, profile)
    paper_a = pipeline.accept(decision_a, profile)[1].result(timeout=30)
    decision_b = pipeline.screen("paperB.pdf", PAPER_A, profile)
    paper_b = pipeline.accept(decision_b, profile)[1].result(timeout=30)

    assert paper_a.status is PaperStatus.COMPLETE
    assert paper_a.data.doi == "10.1/x"
    assert paper_b.is_duplicate is True
    assert collection.get(paper_a.id).is_duplicate is False
