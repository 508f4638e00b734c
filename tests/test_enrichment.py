"""Tests for Crossref enrichment."""

import pytest
from conftest import FakeCrossref, crossref_work, make_record

from litreview.errors import RegistryError
from litreview.services.enrichment_service import Enricher


def test_doi_lookup_fills_bibliographic_fields():
    crossref = FakeCrossref(works={"10.1/abc": crossref_work(doi="10.1/abc")})
    record = make_record(doi="10.1/abc", journal="", volume="", issue="", year="")

    enriched = Enricher(crossref).enrich(record)

    assert enriched.journal == "Proceedings of CHI"
    assert enriched.volume == "12"
    assert enriched.issue == "3"
    assert enriched.year == "2023"
    assert enriched.url == "https://doi.org/10.1/abc"
    assert crossref.queries == []


def test_enrichment_keeps_title_authors_and_analysis():
    crossref = FakeCrossref(works={"10.1/abc": crossref_work(doi="10.1/abc", title="Other")})
    record = make_record(doi="10.1/abc")

    enriched = Enricher(crossref).enrich(record)

    assert enriched.title == record.title
    assert enriched.authors == record.authors
    assert enriched.category_a == record.category_a


def test_failed_doi_lookup_falls_back_to_search():
    hit = crossref_work(doi="10.9/found")
    crossref = FakeCrossref(search_hits=[hit])
    record = make_record(doi="10.1/missing")

    enriched = Enricher(crossref).enrich(record)

    assert crossref.lookups == ["10.1/missing"]
    assert crossref.queries == ["Gesture Generation for Avatar Robots Gaebert"]
    assert enriched.doi == "10.9/found"


def test_record_without_doi_is_searched_by_title_and_surname():
    crossref = FakeCrossref(search_hits=[crossref_work()])
    Enricher(crossref).enrich(make_record(doi=None, authors=["Carl Gaebert"]))

    assert crossref.lookups == []
    assert crossref.queries == ["Gesture Generation for Avatar Robots Gaebert"]


def test_no_match_returns_record_unchanged():
    record = make_record(doi=None)
    assert Enricher(FakeCrossref()).enrich(record) == record


def test_empty_registry_values_never_overwrite():
    work = crossref_work(doi="10.1/abc", volume="", issue="")
    work["container-title"] = []
    del work["published"]
    crossref = FakeCrossref(works={"10.1/abc": work})
    record = make_record(doi="10.1/abc", journal="ACM CHI", volume="7", issue="2", year="2024")

    enriched = Enricher(crossref).enrich(record)

    assert (enriched.journal, enriched.volume, enriched.issue, enriched.year) == ("ACM CHI", "7", "2", "2024")


def test_enrichment_is_idempotent():
    crossref = FakeCrossref(works={"10.1/abc": crossref_work(doi="10.1/abc")})
    enricher = Enricher(crossref)
    once = enricher.enrich(make_record(doi="10.1/abc"))
    assert enricher.enrich(once) == once


def test_unexpected_registry_failure_is_swallowed():
    class Broken(FakeCrossref):
        def top_match(self, query):
            raise RuntimeError("socket closed")

    record = make_record(doi=None)
    assert Enricher(Broken()).enrich(record) == record


def test_refresh_from_doi_replaces_title_authors_and_abstract():
    work = crossref_work(doi="10.1/abc", title="Canonical Title", abstract="<jats:p>Real abstract</jats:p>")
    crossref = FakeCrossref(works={"10.1/abc": work})

    refreshed = Enricher(crossref).refresh_from_doi(make_record(doi="10.1/abc"))

    assert refreshed.title == "Canonical Title"
    assert refreshed.authors == ["Gaebert, Carl", "Rehren, Oliver"]
    assert refreshed.abstract == "Real abstract"


def test_refresh_requires_doi_and_propagates_lookup_errors():
    enricher = Enricher(FakeCrossref())
    with pytest.raises(RegistryError):
        enricher.refresh_from_doi(make_record(doi=None))
    with pytest.raises(RegistryError):
        enricher.refresh_from_doi(make_record(doi="10.1/unknown"))
