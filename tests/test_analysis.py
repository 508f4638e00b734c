"""Tests for the structured analysis extractor."""

import json

import pytest
from conftest import FakeGateway, analysis_payload

from litreview.errors import ExtractionParseError, IncompleteExtractionError
from litreview.services.analysis_service import AnalysisExtractor, parse_analysis
from litreview.services.llm_service import ResponseMode


def test_extract_builds_record(profile):
    gateway = FakeGateway(json.dumps(analysis_payload()))
    record = AnalysisExtractor(gateway).extract("full text", profile)

    assert record.title == "Gesture Generation for Avatar Robots"
    assert record.authors == ["Gaebert, Carl", "Rehren, Oliver"]
    assert record.category_a.obstacle == "Direct joint control"
    assert record.id is None


def test_extract_sends_profile_as_system_instruction(profile):
    gateway = FakeGateway(json.dumps(analysis_payload()))
    AnalysisExtractor(gateway).extract("THE FULL TEXT", profile)

    call = gateway.calls[0]
    assert call["mode"] is ResponseMode.STRUCTURED_JSON
    assert "Semantic Telepresence" in call["system_instruction"]
    assert call["prompt"].endswith("THE FULL TEXT")
    assert "theVillain" in call["prompt"]


def test_fenced_answer_is_accepted(profile):
    answer = "```json\n" + json.dumps(analysis_payload()) + "\n```"
    record = AnalysisExtractor(FakeGateway(answer)).extract("text", profile)
    assert record.citation_key == "Gaebert2024"


def test_joined_author_string_is_resplit():
    payload = analysis_payload(authors=["Gaebert, Carl, Rehren, Oliver, Jansen, Sebastian"])
    record = parse_analysis(json.dumps(payload)).record
    assert record.authors == ["Gaebert, Carl", "Rehren, Oliver", "Jansen, Sebastian"]


def test_doi_sets_url_and_missing_citation_key_is_derived():
    payload = analysis_payload(doi="10.1145/3544548.3581000", citationKey="")
    record = parse_analysis(json.dumps(payload)).record

    assert record.url == "https://doi.org/10.1145/3544548.3581000"
    assert record.citation_key == "Gaebert2024"


def test_missing_category_fields_are_filled_empty():
    payload = analysis_payload(categoryC={})
    record = parse_analysis(json.dumps(payload)).record
    assert record.category_c.safety_mechanisms == ""


def test_missing_top_level_key_is_incomplete(profile):
    payload = analysis_payload()
    del payload["categoryD"]
    del payload["authors"]

    with pytest.raises(IncompleteExtractionError) as exc:
        AnalysisExtractor(FakeGateway(json.dumps(payload))).extract("text", profile)
    assert set(exc.value.missing) == {"categoryD", "authors"}


def test_non_object_category_is_incomplete():
    failure = parse_analysis(json.dumps(analysis_payload(categoryB="none")))
    assert failure.kind == "incomplete"
    assert failure.missing == ("categoryB",)


def test_invalid_json_is_parse_error(profile):
    with pytest.raises(ExtractionParseError):
        AnalysisExtractor(FakeGateway("{title: broken")).extract("text", profile)
