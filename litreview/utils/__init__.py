"""Utility functions."""

from litreview.utils.text import (
    clean_doi,
    doi_url,
    normalize_authors,
    normalize_doi,
    strip_code_fences,
    strip_outer_fence,
    strip_tags,
)

__all__ = [
    "clean_doi",
    "doi_url",
    "normalize_authors",
    "normalize_doi",
    "strip_code_fences",
    "strip_outer_fence",
    "strip_tags",
]
