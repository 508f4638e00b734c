"""Relevance check run on the first pages of a paper before full analysis.

The check only recommends; whether a paper is analyzed is decided by
the person uploading it.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Union

from litreview.config import ResearchProfile
from litreview.errors import ScreeningParseError
from litreview.models.paper import RelevanceResult
from litreview.services.llm_service import ModelGateway, ResponseMode
from litreview.utils.text import strip_code_fences

logger = logging.getLogger(__name__)

RELEVANCE_THRESHOLD = 40
EXCERPT_CHARS = 4000


@dataclass
class ParsedRelevance:
    result: RelevanceResult


@dataclass
class ParseFailure:
    reason: str


def is_relevant(score: int) -> bool:
    return score >= RELEVANCE_THRESHOLD


def build_screening_prompt(excerpt: str, profile: ResearchProfile) -> str:
    """Build the relevance prompt for *excerpt*."""
    excerpt = excerpt[:EXCERPT_CHARS]
    sections = profile.sections_text()
    sections_block = f"PAPER SECTIONS:\n{sections}\n" if sections else ""
    venue_block = f"TARGET VENUE: {profile.target_venue}\n" if profile.target_venue else ""

    return f"""You are evaluating if a research paper is relevant to a research project titled:
"{profile.title}"

PROJECT DESCRIPTION:
{profile.description}

RESEARCH KEYWORDS: {profile.keywords_text}
{venue_block}
{sections_block}
EVALUATION CRITERIA:
Analyze the paper text below and determine:
1. How relevant is it to this research project? (Score 0-100)
2. What specific aspects make it relevant or irrelevant?
3. Which sections of the paper contain relevant information?

DECISION RULES:
- Score 70-100: KEEP (highly relevant)
- Score 40-69: KEEP (moderately relevant)
- Score 0-39: SKIP (not relevant enough)

Return JSON only, with exactly this structure:
{{
  "isRelevant": true/false (true if score >= {RELEVANCE_THRESHOLD}),
  "score": 0-100,
  "reasoning": "Brief explanation",
  "matchedSections": ["Section 1", "Section 2"]
}}

PAPER TEXT TO EVALUATE:
{excerpt}
"""


def parse_relevance(text: str) -> Union[ParsedRelevance, ParseFailure]:
    """Validate a relevance answer.

    ``isRelevant`` is always derived from the score; the model's own
    boolean is not trusted.
    """
    try:
        data: Any = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        return ParseFailure(f"Relevance answer is not valid JSON: {e}")
    if not isinstance(data, dict):
        return ParseFailure("Relevance answer is not a JSON object")

    raw_score = data.get("score", data.get("relevanceScore"))
    if raw_score is None or isinstance(raw_score, bool):
        return ParseFailure("Relevance answer has no score")
    try:
        value = float(raw_score)
    except (TypeError, ValueError):
        return ParseFailure(f"Relevance score is not a number: {raw_score!r}")
    if not math.isfinite(value) or not value.is_integer():
        return ParseFailure(f"Relevance score is not a whole number: {raw_score!r}")
    score = int(value)
    if not 0 <= score <= 100:
        return ParseFailure(f"Relevance score out of range: {score}")

    sections = data.get("matchedSections") or []
    if isinstance(sections, str):
        sections = [sections]
    if not isinstance(sections, list):
        return ParseFailure("matchedSections is not a list")

    return ParsedRelevance(
        RelevanceResult(
            is_relevant=is_relevant(score),
            score=score,
            reasoning=str(data.get("reasoning") or ""),
            matched_sections=[str(s) for s in sections],
        )
    )


class RelevanceScreener:
    """Scores a paper excerpt against the research profile."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    def screen(self, excerpt: str, profile: ResearchProfile) -> RelevanceResult:
        """Score *excerpt*.

        Raises:
            ScreeningParseError: If the answer cannot be parsed (not retried)
            AuthenticationError, ProviderError, EmptyResponseError: From the gateway
        """
        prompt = build_screening_prompt(excerpt, profile)
        text = self.gateway.invoke(prompt, mode=ResponseMode.STRUCTURED_JSON)

        parsed = parse_relevance(text)
        if isinstance(parsed, ParseFailure):
            logger.warning("Relevance check answer rejected: %s", parsed.reason)
            raise ScreeningParseError(parsed.reason)

        result = parsed.result
        logger.info("Relevance score %d (%s)", result.score, result.band)
        return result
