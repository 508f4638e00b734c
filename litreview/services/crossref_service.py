"""Crossref API service for DOI lookup and metadata enrichment."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

from litreview.errors import RegistryError
from litreview.utils.text import clean_doi, strip_tags

logger = logging.getLogger(__name__)

CROSSREF_API_BASE = "https://api.crossref.org/works"


@dataclass
class BibliographicMatch:
    """Canonical metadata of one Crossref work.  Empty string = not supplied."""

    doi: str = ""
    title: str = ""
    authors: list[str] = field(default_factory=list)
    journal: str = ""
    year: str = ""
    volume: str = ""
    issue: str = ""
    abstract: str = ""


class CrossrefService:
    """Service for interacting with the Crossref API."""

    def __init__(self, contact_email: Optional[str] = None, timeout: int = 20):
        """Initialize Crossref service.

        Args:
            contact_email: Email for polite pool access (recommended by Crossref)
            timeout: Request timeout in seconds
        """
        self.contact_email = contact_email
        self.timeout = timeout
        self._headers = self._build_headers()

    def _build_headers(self) -> dict[str, str]:
        """Build HTTP headers with user agent."""
        if self.contact_email:
            return {"User-Agent": f"litreview/1.0 (mailto:{self.contact_email})"}
        return {}

    def _get(self, url: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        try:
            response = requests.get(
                url, params=params, headers=self._headers, timeout=self.timeout
            )
            response.raise_for_status()
            body = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise RegistryError(f"Crossref returned HTTP {status} for {url}") from e
        except requests.RequestException as e:
            raise RegistryError(f"Crossref request failed: {e}") from e
        except ValueError as e:
            raise RegistryError(f"Crossref returned invalid JSON: {e}") from e

        message = body.get("message") if isinstance(body, dict) else None
        if not isinstance(message, dict):
            raise RegistryError("Crossref response has no message object")
        return message

    def lookup(self, doi: str) -> dict[str, Any]:
        """Look up paper metadata by DOI.

        Args:
            doi: DOI to look up (``doi:`` and resolver prefixes are stripped)

        Returns:
            Crossref work metadata dictionary

        Raises:
            RegistryError: On network errors, HTTP errors (404 included)
                or malformed responses
        """
        doi = clean_doi(doi)
        if not doi:
            raise RegistryError("Empty DOI")
        url = f"{CROSSREF_API_BASE}/{requests.utils.quote(doi)}"
        return self._get(url)

    def search(self, query: str, rows: int = 1) -> list[dict[str, Any]]:
        """Free-text bibliographic search, ranked by relevance.

        Args:
            query: Search text (typically title plus first author surname)
            rows: Number of results to return

        Returns:
            List of Crossref work dictionaries (possibly empty)

        Raises:
            RegistryError: On network errors, HTTP errors or malformed responses
        """
        params: dict[str, Any] = {"query": query, "rows": rows}
        if self.contact_email:
            params["mailto"] = self.contact_email
        message = self._get(CROSSREF_API_BASE, params=params)
        items = message.get("items") or []
        return [item for item in items if isinstance(item, dict)]

    def top_match(self, query: str) -> Optional[dict[str, Any]]:
        """Return the best search hit for *query*, or None."""
        items = self.search(query, rows=1)
        return items[0] if items else None

    @staticmethod
    def extract_metadata(meta: dict[str, Any]) -> BibliographicMatch:
        """Extract best metadata from Crossref response.

        Args:
            meta: Crossref work metadata dictionary

        Returns:
            BibliographicMatch with empty strings for absent values
        """
        # Title
        title = ""
        titles = meta.get("title")
        if isinstance(titles, list) and titles:
            title = str(titles[0])
        elif isinstance(titles, str):
            title = titles

        # Authors, "Family, Given"
        authors = []
        for author in meta.get("author") or []:
            if not isinstance(author, dict):
                continue
            family = (author.get("family") or "").strip()
            given = (author.get("given") or "").strip()
            if family and given:
                authors.append(f"{family}, {given}")
            elif family or author.get("name"):
                authors.append(family or str(author["name"]))

        # Journal/container
        journal = ""
        container = meta.get("container-title")
        if isinstance(container, list) and container:
            journal = str(container[0])
        elif isinstance(container, str):
            journal = container

        # Year
        year = ""
        for key in ["published", "published-print", "published-online", "issued"]:
            val = meta.get(key)
            if isinstance(val, dict):
                parts = val.get("date-parts")
                if (
                    isinstance(parts, list)
                    and parts
                    and isinstance(parts[0], list)
                    and parts[0]
                    and parts[0][0] is not None
                ):
                    year = str(parts[0][0])
                    break

        # Abstract (may contain JATS XML)
        abstract = strip_tags(meta.get("abstract")) if isinstance(meta.get("abstract"), str) else ""

        return BibliographicMatch(
            doi=str(meta.get("DOI") or ""),
            title=title,
            authors=authors,
            journal=journal,
            year=year,
            volume=str(meta.get("volume") or ""),
            issue=str(meta.get("issue") or ""),
            abstract=abstract,
        )
