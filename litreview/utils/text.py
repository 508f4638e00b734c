"""Text processing utilities for DOIs, model answers and author names."""

import re
from typing import Optional

from bs4 import BeautifulSoup

_DOI_PREFIXES = (
    "https://doi.org/",
    "http://doi.org/",
    "https://dx.doi.org/",
    "http://dx.doi.org/",
    "doi:",
)

# ```json ... ``` / ```markdown ... ``` / ``` ... ```
_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def clean_doi(doi: Optional[str]) -> str:
    """Strip URL and ``doi:`` prefixes and surrounding whitespace, keep case."""
    if not doi:
        return ""
    doi = doi.strip()
    lowered = doi.lower()
    for prefix in _DOI_PREFIXES:
        if lowered.startswith(prefix):
            doi = doi[len(prefix):]
            break
    return doi.strip()


def normalize_doi(doi: Optional[str]) -> str:
    """Normalize DOI for comparison: prefix-stripped, trimmed, lowercase."""
    return clean_doi(doi).lower()


def doi_url(doi: Optional[str]) -> Optional[str]:
    """Return the resolver URL for *doi*, or None."""
    doi = clean_doi(doi)
    return f"https://doi.org/{doi}" if doi else None


def strip_outer_fence(text: str) -> str:
    """Remove a code fence wrapped around the whole answer.

    Fenced blocks inside the text are content and stay untouched.
    """
    text = (text or "").strip()
    if len(text) > 6 and text.startswith("```") and text.endswith("```"):
        first_line, _, rest = text.partition("\n")
        if re.fullmatch(r"```[a-zA-Z]*", first_line.strip()):
            return rest[:-3].strip()
    return text


def strip_code_fences(text: str) -> str:
    """Unwrap a JSON answer from its markdown code fence.

    Handles ```` ```json ```` and bare ```` ``` ```` fences, and a fenced
    block preceded by chatter.  Unfenced text is returned stripped.
    """
    text = (text or "").strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    # Fenced block somewhere inside the answer
    inner = re.search(r"```[a-zA-Z]*\s*\n(.*?)\n\s*```", text, re.DOTALL)
    if inner:
        return inner.group(1).strip()
    return text


def strip_tags(text: Optional[str]) -> str:
    """Remove HTML/JATS tags (Crossref abstracts) and normalize whitespace."""
    if not text:
        return ""
    plain = BeautifulSoup(text, "html.parser").get_text(" ")
    plain = re.sub(r"^\s*abstract[\s.:;—–-]*", "", plain, flags=re.IGNORECASE)
    return " ".join(plain.split()).strip()


def author_surname(author: str) -> str:
    """Surname of an author name in "Last, First" or "First Last" form."""
    author = (author or "").strip()
    if not author:
        return ""
    if "," in author:
        return author.split(",", 1)[0].strip()
    return author.split()[-1]


def _looks_like_given(part: str) -> bool:
    # Given names are short: "Carl", "J. R.", "Anna-Lena"
    return 0 < len(part.split()) <= 3


def normalize_authors(authors) -> list[str]:
    """Return one list element per author.

    Models regularly answer ``["Gaebert, Carl, Rehren, Oliver"]`` or a
    single string instead of an array.  Such values are re-split into
    ``["Gaebert, Carl", "Rehren, Oliver"]``.  Well-formed lists pass
    through unchanged.
    """
    if authors is None:
        return []
    if isinstance(authors, str):
        authors = [authors]

    result: list[str] = []
    for entry in authors:
        if entry is None:
            continue
        entry = str(entry).strip()
        if not entry:
            continue
        result.extend(_split_author_string(entry))
    return result


def _split_author_string(entry: str) -> list[str]:
    # Explicit separators first
    if ";" in entry or " and " in entry or " & " in entry:
        parts = re.split(r"\s*;\s*|\s+and\s+|\s+&\s+", entry)
        out: list[str] = []
        for part in parts:
            if part.strip():
                out.extend(_split_author_string(part.strip()))
        return out

    pieces = [p.strip() for p in entry.split(",") if p.strip()]
    if len(pieces) == 2 and all(len(p.split()) >= 2 for p in pieces):
        # "First Last, First Last"
        return pieces
    if len(pieces) <= 2:
        return [", ".join(pieces)] if pieces else []

    # "Last, First, Last, First, ..." -> pair up
    if len(pieces) % 2 == 0 and all(_looks_like_given(p) for p in pieces[1::2]):
        return [f"{pieces[i]}, {pieces[i + 1]}" for i in range(0, len(pieces), 2)]

    # "First Last, First Last, ..." -> one author per piece
    if all(len(p.split()) >= 2 for p in pieces):
        return pieces

    return [entry]


def make_citation_key(authors: list[str], year: str) -> str:
    """Build a ``Surname2024`` style citation key."""
    surname = author_surname(authors[0]) if authors else ""
    surname = re.sub(r"[^A-Za-z0-9]", "", surname) or "Unknown"
    year = re.sub(r"[^0-9]", "", year or "")[:4]
    return f"{surname}{year}"
