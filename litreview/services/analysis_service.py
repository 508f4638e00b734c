"""Full-text structured analysis of a paper."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Union

from litreview.config import ResearchProfile
from litreview.errors import ExtractionParseError, IncompleteExtractionError
from litreview.models.paper import CATEGORY_TYPES, PaperRecord
from litreview.services.llm_service import ModelGateway, ResponseMode
from litreview.utils.text import doi_url, make_citation_key, normalize_authors, strip_code_fences

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("title", "authors", *CATEGORY_TYPES.keys())


@dataclass
class ParsedRecord:
    record: PaperRecord


@dataclass
class ParseFailure:
    reason: str
    kind: Literal["json", "incomplete"]
    missing: tuple[str, ...] = ()


_CATEGORY_HINTS = {
    "categoryA": {
        "coreProblem": "The fundamental research problem addressed",
        "theVillain": "Main challenge or obstacle identified",
        "gapClaim": "The identified gap and research claim",
        "keyDefinitions": "Key concepts and definitions",
    },
    "categoryB": {
        "interactionParadigm": "Type of interaction paradigm used",
        "embodimentType": "Type of robot or agent embodiment",
        "inputModality": "Input modalities used",
        "autonomyLevel": "Level of autonomy",
        "socialGestures": "Analysis of social gestures and their roles",
        "motionGeneration": "Technical details on how motion/gestures are generated",
    },
    "categoryC": {
        "algorithmModel": "Description of algorithms or computational models used",
        "hardwareSpecs": "Hardware specifications",
        "latencyPerformance": "Latency and performance metrics",
        "safetyMechanisms": "Safety mechanisms described",
    },
    "categoryD": {
        "studyDesign": "Experimental design and methodology",
        "sampleSize": "Sample size description",
        "taskDescription": "Description of tasks performed",
        "independentVariables": "Independent variables studied",
        "dependentVariables": "Dependent variables measured",
    },
    "categoryE": {
        "keyFinding": "Main research findings and contributions",
        "unexpectedResults": "Unexpected results mentioned",
        "limitations": "Study limitations mentioned",
        "futureWork": "Suggested future research directions",
        "relevanceToProject": "How this relates to the research project",
    },
}


def build_system_instruction(profile: ResearchProfile) -> str:
    return f"""You are an AI research assistant analyzing academic papers for a literature review.

PROJECT CONTEXT:
Title: "{profile.title}"
Description: {profile.description}
Research Keywords: {profile.keywords_text}

Your task is to extract information that is relevant to this research project. Return JSON only."""


def build_analysis_prompt(full_text: str) -> str:
    """Build the extraction prompt with the complete expected JSON shape."""
    shape: dict[str, Any] = {
        "citationKey": "FirstAuthorLastName2024",
        "title": "Paper title",
        "authors": ["LastName1, FirstName1", "LastName2, FirstName2"],
        "journal": "Journal or Conference name (e.g., 'ACM CHI', 'IEEE Transactions on Robotics')",
        "year": "2024",
        "doi": "10.xxxx/xxxxx (if available, otherwise empty string)",
        "volume": "Volume number (if available, otherwise empty string)",
        "issue": "Issue number (if available, otherwise empty string)",
        "abstract": "Full abstract text",
        **_CATEGORY_HINTS,
    }
    return f"""Analyze this research paper and extract key information strictly according to these categories:

{json.dumps(shape, indent=2)}

IMPORTANT INSTRUCTIONS:
1. Extract all bibliographic information (journal, volume, issue, doi) carefully from the paper header, footer, or first page.
2. Authors MUST be a JSON array where EACH author is a SEPARATE string element in "LastName, FirstName" format.
   Example: ["Gaebert, Carl", "Rehren, Oliver", "Jansen, Sebastian"]
   NOT: ["Gaebert, Carl, Rehren, Oliver, Jansen, Sebastian"]
3. Every key above MUST be present. Use an empty string when the paper does not provide the information.

Paper text:
{full_text}"""


def parse_analysis(text: str) -> Union[ParsedRecord, ParseFailure]:
    """Validate a structured analysis answer and build a draft record."""
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        return ParseFailure(f"Analysis answer is not valid JSON: {e}", "json")
    if not isinstance(data, dict):
        return ParseFailure("Analysis answer is not a JSON object", "json")

    missing = tuple(key for key in REQUIRED_KEYS if key not in data)
    if missing:
        return ParseFailure(
            f"Analysis answer lacks {', '.join(missing)}", "incomplete", missing
        )
    bad = [key for key in CATEGORY_TYPES if not isinstance(data[key], dict)]
    if bad:
        return ParseFailure(
            f"Analysis categories are not objects: {', '.join(bad)}", "incomplete", tuple(bad)
        )

    record = PaperRecord.from_dict(data)
    # from_dict keeps list elements as given; re-split joined author strings
    record.authors = normalize_authors(data.get("authors"))
    record.id = None
    if record.doi and not record.url:
        record.url = doi_url(record.doi)
    if not record.citation_key and record.authors:
        record.citation_key = make_citation_key(record.authors, record.year)
    return ParsedRecord(record)


class AnalysisExtractor:
    """Turns a paper's full text into a draft ``PaperRecord``."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    def extract(self, full_text: str, profile: ResearchProfile) -> PaperRecord:
        """Run the structured analysis.

        Raises:
            ExtractionParseError: If the answer is not JSON after fence stripping
            IncompleteExtractionError: If required top-level keys are absent
            AuthenticationError, ProviderError, EmptyResponseError: From the gateway
        """
        text = self.gateway.invoke(
            build_analysis_prompt(full_text),
            system_instruction=build_system_instruction(profile),
            mode=ResponseMode.STRUCTURED_JSON,
        )

        parsed = parse_analysis(text)
        if isinstance(parsed, ParseFailure):
            logger.warning("Analysis answer rejected: %s", parsed.reason)
            if parsed.kind == "incomplete":
                raise IncompleteExtractionError(list(parsed.missing))
            raise ExtractionParseError(parsed.reason)

        logger.info("Extracted '%s' (%d authors)", parsed.record.title, len(parsed.record.authors))
        return parsed.record
