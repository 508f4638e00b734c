"""Corpus-level synthesis: taxonomy draft and citation gap strategy."""

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from litreview.config import ResearchProfile
from litreview.errors import EmptyCorpusError, ExtractionParseError
from litreview.models.paper import PaperRecord
from litreview.services.llm_service import ModelGateway, ResponseMode
from litreview.utils.text import strip_code_fences, strip_outer_fence

logger = logging.getLogger(__name__)


def _na(value: Optional[str]) -> str:
    return value or "N/A"


def build_corpus_context(records: list[PaperRecord]) -> str:
    """Full per-paper context, no truncation."""
    blocks = []
    for i, p in enumerate(records, start=1):
        blocks.append(
            f"[PAPER {i}]\n"
            f"Title: {p.title}\n"
            f"Authors: {', '.join(p.authors) or 'N/A'}\n"
            f"Year: {_na(p.year)}\n"
            f"Abstract: {p.abstract}\n"
            f"Core Problem: {p.category_a.core_problem}\n"
            f"Gap/Claim: {p.category_a.gap_claim}\n"
            f"Key Definitions: {p.category_a.key_definitions}\n"
            f"Social Gestures: {p.category_b.social_gestures}\n"
            f"Motion Generation: {p.category_b.motion_generation}\n"
            f"Key Finding: {p.category_e.key_finding}\n"
            "---"
        )
    return "\n".join(blocks)


def build_taxonomy_prompt(
    records: list[PaperRecord],
    profile: ResearchProfile,
    categories: Optional[list[str]] = None,
) -> str:
    n = len(records)
    if categories:
        taxonomy = "We are establishing these core categories:\n" + "\n".join(
            f"{i}. {c}" for i, c in enumerate(categories, start=1)
        )
        mapping = f"map them to our {len(categories)} categories"
    else:
        taxonomy = "Derive the core categories of the design space from the data."
        mapping = "group them into categories"

    return f"""Role: Act as an expert researcher and data analyst working on:
"{profile.title}"

{profile.description}

CRITICAL INSTRUCTIONS:
- DO NOT invent, simulate, or hallucinate any data
- DO NOT cite papers that are not in the list below
- DO NOT create fictional quotes or findings
- ONLY use information explicitly stated in the provided papers
- If a category lacks support, acknowledge the gap honestly

CONTEXT - PROVIDED DATA:
The user has uploaded exactly {n} papers to be used as the EXCLUSIVE literature corpus:
{build_corpus_context(records)}

The Taxonomy:
{taxonomy}

The Methodology:
- Clear problem framing.
- Systematic top-down data collection from the literature above.
- Iterative coding: open coding, then merging codes, then final categories.

Your Task:
Write the "Design Space & Taxonomy" section of the paper.

FORMATTING:
- Output RAW MARKDOWN content.
- Do NOT wrap the output in a JSON object or a code block.
- Start directly with the headings (e.g., "## 1. Literature Corpus Analysis").

Please output:
1. Literature Corpus Analysis: extract concepts directly from the {n} provided papers and {mapping}. Cite papers using [Author, Year] format.
2. The Coding Table: a markdown table with columns: Paper Title | Extracted Concept | Open Code | Final Category
3. Gaps: categories the uploaded literature does not support, stated explicitly.
4. References: a bibliography in the format [Author1, Author2, Year] Title. Journal / Venue.

REMINDER: You are analyzing {n} specific papers. Do not reference anything outside this list.
"""


def citation_list(records: list[PaperRecord]) -> str:
    lines = []
    for p in records:
        line = f"- [{', '.join(p.authors) or 'Unknown'}, {_na(p.year)}] {p.title}"
        if p.doi:
            line += f" DOI: {p.doi}"
        if p.url:
            line += f" URL: {p.url}"
        lines.append(line)
    return "\n".join(lines)


@dataclass
class TaxonomyDraft:
    """Generated taxonomy text and the corpus size it was built from."""

    text: str
    paper_count: int
    created_at: float = field(default_factory=time.time)

    def is_stale(self, current_count: int) -> bool:
        """True once the number of complete papers has changed."""
        return current_count != self.paper_count

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2, ensure_ascii=False)
        return path

    @classmethod
    def load(cls, path: Path) -> Optional["TaxonomyDraft"]:
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(
            text=data.get("text", ""),
            paper_count=int(data.get("paper_count", 0)),
            created_at=float(data.get("created_at", 0)),
        )


class TaxonomyGenerator:
    """Drafts the taxonomy section from the complete papers."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    def generate(
        self,
        records: list[PaperRecord],
        profile: ResearchProfile,
        categories: Optional[list[str]] = None,
    ) -> TaxonomyDraft:
        """Generate a markdown draft.

        Raises:
            EmptyCorpusError: If *records* is empty
        """
        if not records:
            raise EmptyCorpusError(
                "Cannot generate a taxonomy without analyzed papers. "
                "Add and analyze PDFs first."
            )
        prompt = build_taxonomy_prompt(records, profile, categories)
        text = self.gateway.invoke(prompt, mode=ResponseMode.FREE_TEXT)
        body = strip_outer_fence(text)
        full = (
            f"{body}\n\n---\n\n## Paper Metadata (for your records)\n"
            f"{citation_list(records)}"
        )
        logger.info("Taxonomy draft generated from %d paper(s)", len(records))
        return TaxonomyDraft(text=full, paper_count=len(records))


@dataclass
class CitationGap:
    section: str
    gap: str
    search_queries: list[str] = field(default_factory=list)


def build_strategy_prompt(records: list[PaperRecord], profile: ResearchProfile) -> str:
    summary = "\n".join(
        f"- {p.title} ({p.year}): {p.category_a.core_problem}" for p in records
    )
    return f"""You are a research strategy advisor for a research paper titled:
"{profile.title}"

PROJECT DESCRIPTION:
{profile.description}

RESEARCH KEYWORDS: {profile.keywords_text}

CURRENT DATASET ({len(records)} papers):
{summary}

YOUR TASK:
Identify critical gaps across the sections of the paper. For each gap, provide specific, actionable search queries.

PAPER SECTIONS:
{profile.sections_text()}

Return a JSON array with this structure:
[
  {{
    "section": "Section name",
    "gap": "Brief description of what's missing",
    "searchQueries": ["specific search query 1", "specific search query 2"]
  }}
]

IMPORTANT:
- Analyze what topics are ALREADY covered by the papers above
- Only suggest queries for MISSING topics
- Make queries specific and actionable
"""


def parse_strategy(text: str) -> list[CitationGap]:
    """Accept a bare array or ``{"recommendations": [...]}``.

    Raises:
        ExtractionParseError: If the answer is not usable JSON
    """
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise ExtractionParseError(f"Citation strategy is not valid JSON: {e}") from e
    if isinstance(data, dict):
        data = data.get("recommendations") or []
    if not isinstance(data, list):
        raise ExtractionParseError("Citation strategy is not a list")

    gaps = []
    for item in data:
        if not isinstance(item, dict):
            continue
        queries = item.get("searchQueries") or item.get("search_queries") or []
        if isinstance(queries, str):
            queries = [queries]
        gaps.append(
            CitationGap(
                section=str(item.get("section", "")),
                gap=str(item.get("gap", "")),
                search_queries=[str(q) for q in queries],
            )
        )
    return gaps


class CitationStrategyAdvisor:
    """Suggests searches for sections the corpus does not cover yet."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    def recommend(self, records: list[PaperRecord], profile: ResearchProfile) -> list[CitationGap]:
        text = self.gateway.invoke(build_strategy_prompt(records, profile))
        return parse_strategy(text)
