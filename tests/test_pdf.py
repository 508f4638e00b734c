"""Tests for PDF text extraction."""

import pytest
from pdf_factory import make_pdf

from litreview.errors import ExtractionError
from litreview.services.pdf_service import extract_excerpt, extract_text


def test_pages_are_joined_in_order():
    text = extract_text(make_pdf(["First page", "Second page"]))

    assert "First page" in text
    assert "Second page" in text
    assert text.index("First page") < text.index("Second page")


def test_max_pages_limits_extraction():
    text = extract_text(make_pdf(["one", "two", "three"]), max_pages=2)

    assert "one" in text and "two" in text
    assert "three" not in text


def test_excerpt_reads_first_three_pages():
    excerpt = extract_excerpt(make_pdf(["p1", "p2", "p3", "p4"]))

    assert "p3" in excerpt
    assert "p4" not in excerpt


def test_pdf_without_text_layer_yields_empty_string():
    assert extract_text(make_pdf(["", ""])) == ""


@pytest.mark.parametrize("content", [b"", b"this is not a pdf", b"%PDF-1.4\n%%EOF"])
def test_unreadable_input_is_extraction_error(content):
    with pytest.raises(ExtractionError):
        extract_text(content)
