"""Bibliographic enrichment of extracted records from Crossref."""

import logging
from dataclasses import replace
from typing import Any, Optional

from litreview.errors import RegistryError
from litreview.models.paper import PaperRecord
from litreview.services.crossref_service import BibliographicMatch, CrossrefService
from litreview.utils.text import author_surname, clean_doi, doi_url

logger = logging.getLogger(__name__)


class Enricher:
    """Repairs journal, volume, issue, year and DOI from Crossref."""

    def __init__(self, crossref: CrossrefService):
        self.crossref = crossref

    def _find_work(self, record: PaperRecord) -> Optional[dict[str, Any]]:
        """DOI lookup first, then title + first author surname search."""
        doi = clean_doi(record.doi)
        if doi:
            try:
                return self.crossref.lookup(doi)
            except RegistryError as e:
                logger.info("DOI lookup failed for %s, falling back to search: %s", doi, e)

        if not record.title:
            return None
        surname = author_surname(record.authors[0]) if record.authors else ""
        query = f"{record.title} {surname}".strip()
        try:
            return self.crossref.top_match(query)
        except RegistryError as e:
            logger.info("Crossref search failed for '%s': %s", query, e)
            return None

    def enrich(self, record: PaperRecord) -> PaperRecord:
        """Return *record* with bibliographic fields filled from Crossref.

        Only non-empty registry values overwrite existing ones.  Never
        raises: without a registry hit the input is returned unchanged.
        """
        try:
            work = self._find_work(record)
        except Exception:
            logger.exception("Unexpected error during Crossref enrichment")
            return record
        if work is None:
            logger.info("No Crossref match for '%s'", record.title)
            return record

        match = CrossrefService.extract_metadata(work)
        return apply_match(record, match)

    def refresh_from_doi(self, record: PaperRecord) -> PaperRecord:
        """Re-fetch every bibliographic field by DOI, title, authors and abstract included.

        Raises:
            RegistryError: If the record has no DOI or the lookup fails
        """
        doi = clean_doi(record.doi)
        if not doi:
            raise RegistryError("Record has no DOI")
        match = CrossrefService.extract_metadata(self.crossref.lookup(doi))
        updated = apply_match(record, match)
        return replace(
            updated,
            title=match.title or updated.title,
            authors=match.authors or updated.authors,
            abstract=match.abstract or updated.abstract,
        )


def apply_match(record: PaperRecord, match: BibliographicMatch) -> PaperRecord:
    """Overwrite journal, volume, issue, year, DOI and URL with non-empty registry values."""
    doi = match.doi or record.doi
    return replace(
        record,
        journal=match.journal or record.journal,
        volume=match.volume or record.volume,
        issue=match.issue or record.issue,
        year=match.year or record.year,
        doi=doi,
        url=doi_url(match.doi) if match.doi else record.url,
    )
