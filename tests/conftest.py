"""Shared fixtures: a scripted model gateway, an in-memory Crossref and sample data."""

import json
from typing import Any, Callable, Optional, Union

import pytest

from litreview.config import ResearchProfile, SectionTarget
from litreview.errors import RegistryError
from litreview.models.paper import (
    CategoryA,
    CategoryB,
    CategoryC,
    CategoryD,
    CategoryE,
    PaperRecord,
)
from litreview.services.llm_service import ResponseMode


class FakeGateway:
    """Stands in for ``ModelGateway``; answers from a script.

    Each scripted item is a string (returned), an exception (raised) or
    a callable taking the prompt.
    """

    def __init__(self, *answers: Union[str, Exception, Callable[[str], str]]):
        self.answers = list(answers)
        self.calls: list[dict[str, Any]] = []

    def invoke(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        mode: ResponseMode = ResponseMode.STRUCTURED_JSON,
    ) -> str:
        self.calls.append(
            {"prompt": prompt, "system_instruction": system_instruction, "mode": mode}
        )
        if not self.answers:
            raise AssertionError("FakeGateway ran out of scripted answers")
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(prompt)
        return answer


class FakeCrossref:
    """Stands in for ``CrossrefService`` with canned works."""

    def __init__(self, works: Optional[dict[str, dict]] = None, search_hits: Optional[list[dict]] = None):
        self.works = works or {}
        self.search_hits = search_hits or []
        self.lookups: list[str] = []
        self.queries: list[str] = []

    def lookup(self, doi: str) -> dict:
        self.lookups.append(doi)
        if doi.lower() not in self.works:
            raise RegistryError(f"Crossref returned HTTP 404 for {doi}")
        return self.works[doi.lower()]

    def top_match(self, query: str) -> Optional[dict]:
        self.queries.append(query)
        return self.search_hits[0] if self.search_hits else None


def crossref_work(
    doi: str = "10.1145/3544548.3581000",
    title: str = "Registry Title",
    journal: str = "Proceedings of CHI",
    year: int = 2023,
    volume: str = "12",
    issue: str = "3",
    **extra: Any,
) -> dict:
    work = {
        "DOI": doi,
        "title": [title],
        "container-title": [journal],
        "published": {"date-parts": [[year, 4, 19]]},
        "volume": volume,
        "issue": issue,
        "author": [{"family": "Gaebert", "given": "Carl"}, {"family": "Rehren", "given": "Oliver"}],
    }
    work.update(extra)
    return work


def analysis_payload(**overrides: Any) -> dict:
    """A complete structured analysis answer."""
    payload = {
        "citationKey": "Gaebert2024",
        "title": "Gesture Generation for Avatar Robots",
        "authors": ["Gaebert, Carl", "Rehren, Oliver"],
        "journal": "",
        "year": "2024",
        "doi": "",
        "volume": "",
        "issue": "",
        "abstract": "We study gestures.",
        "categoryA": {
            "coreProblem": "Teleoperation is tiring",
            "theVillain": "Direct joint control",
            "gapClaim": "No semantic control",
            "keyDefinitions": "Avatar robot",
        },
        "categoryB": {
            "interactionParadigm": "Supervisory",
            "embodimentType": "Humanoid",
            "inputModality": "Text",
            "autonomyLevel": "Shared",
            "socialGestures": "Pointing, nodding",
            "motionGeneration": "VLM to motion primitives",
        },
        "categoryC": {
            "algorithmModel": "GPT-4V",
            "hardwareSpecs": "Pepper",
            "latencyPerformance": "1.2 s",
            "safetyMechanisms": "Emergency stop",
        },
        "categoryD": {
            "studyDesign": "Within-subjects",
            "sampleSize": "24 participants",
            "taskDescription": "Remote guidance",
            "independentVariables": "Control mode",
            "dependentVariables": "NASA-TLX",
        },
        "categoryE": {
            "keyFinding": "Lower workload",
            "unexpectedResults": "",
            "limitations": "Lab setting",
            "futureWork": "Field study",
            "relevanceToProject": "Direct",
        },
    }
    payload.update(overrides)
    return payload


def make_record(**overrides: Any) -> PaperRecord:
    fields = dict(
        title="Gesture Generation for Avatar Robots",
        authors=["Gaebert, Carl", "Rehren, Oliver"],
        citation_key="Gaebert2024",
        journal="ACM CHI",
        year="2024",
        doi="10.1145/3544548.3581000",
        url="https://doi.org/10.1145/3544548.3581000",
        abstract="We study gestures.",
        category_a=CategoryA(core_problem="Teleoperation is tiring", gap_claim="No semantic control"),
        category_b=CategoryB(interaction_paradigm="Supervisory", embodiment_type="Humanoid"),
        category_c=CategoryC(),
        category_d=CategoryD(sample_size="24 participants"),
        category_e=CategoryE(key_finding="Lower workload"),
    )
    fields.update(overrides)
    return PaperRecord(**fields)


@pytest.fixture
def profile() -> ResearchProfile:
    return ResearchProfile(
        title="Semantic Telepresence",
        description="VLM-driven avatar robots for remote guidance",
        keywords=["teleoperation", "avatar robots"],
        target_venue="CHI",
        sections=[
            SectionTarget("Introduction & Concept", 15, "motivation"),
            SectionTarget("System Implementation", 20),
        ],
        citation_goal=35,
    )


@pytest.fixture
def relevance_json() -> Callable[..., str]:
    def _make(score: Any = 85, **extra: Any) -> str:
        body = {
            "isRelevant": True,
            "score": score,
            "reasoning": "Discusses avatar teleoperation",
            "matchedSections": ["Abstract", "System Design"],
        }
        body.update(extra)
        return json.dumps(body)

    return _make
