"""Paper data models.

Serialized forms use the camelCase keys of the review JSON format, so
backups and exports stay compatible with files produced by earlier
versions of the tool.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Optional


def _key(name: str) -> Any:
    """Dataclass field whose JSON key is *name*."""
    return field(default="", metadata={"json": name})


@dataclass
class _Category:
    """Flat mapping of named string fields."""

    @classmethod
    def json_keys(cls) -> list[str]:
        return [f.metadata["json"] for f in fields(cls) if "json" in f.metadata]

    def to_dict(self) -> dict[str, str]:
        return {
            f.metadata["json"]: getattr(self, f.name)
            for f in fields(self)
            if "json" in f.metadata
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "_Category":
        """Build a category; absent or null fields become empty strings."""
        data = data if isinstance(data, dict) else {}
        # json key -> older key accepted on read
        legacy: dict[str, str] = getattr(cls, "LEGACY_KEYS", {})
        values = {}
        for f in fields(cls):
            if "json" not in f.metadata:
                continue
            key = f.metadata["json"]
            value = data.get(key)
            if value is None and key in legacy:
                value = data.get(legacy[key])
            values[f.name] = _as_text(value)
        return cls(**values)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "; ".join(str(v) for v in value if v is not None)
    return str(value)


@dataclass
class CategoryA(_Category):
    """Problem framing."""

    core_problem: str = _key("coreProblem")
    obstacle: str = _key("theVillain")
    gap_claim: str = _key("gapClaim")
    key_definitions: str = _key("keyDefinitions")


@dataclass
class CategoryB(_Category):
    """Design space and taxonomy."""

    interaction_paradigm: str = _key("interactionParadigm")
    embodiment_type: str = _key("embodimentType")
    input_modality: str = _key("inputModality")
    autonomy_level: str = _key("autonomyLevel")
    social_gestures: str = _key("socialGestures")
    motion_generation: str = _key("motionGeneration")


@dataclass
class CategoryC(_Category):
    """System."""

    algorithm_model: str = _key("algorithmModel")
    hardware_specs: str = _key("hardwareSpecs")
    latency_performance: str = _key("latencyPerformance")
    safety_mechanisms: str = _key("safetyMechanisms")


@dataclass
class CategoryD(_Category):
    """Study."""

    study_design: str = _key("studyDesign")
    sample_size: str = _key("sampleSize")
    task_description: str = _key("taskDescription")
    independent_variables: str = _key("independentVariables")
    dependent_variables: str = _key("dependentVariables")


@dataclass
class CategoryE(_Category):
    """Results."""

    LEGACY_KEYS = {"relevanceToProject": "relevanceToTelementoring"}

    key_finding: str = _key("keyFinding")
    unexpected_results: str = _key("unexpectedResults")
    limitations: str = _key("limitations")
    future_work: str = _key("futureWork")
    relevance_to_project: str = _key("relevanceToProject")


CATEGORY_TYPES: dict[str, type[_Category]] = {
    "categoryA": CategoryA,
    "categoryB": CategoryB,
    "categoryC": CategoryC,
    "categoryD": CategoryD,
    "categoryE": CategoryE,
}


@dataclass
class PaperRecord:
    """Structured analysis of one paper."""

    title: str
    authors: list[str] = field(default_factory=list)
    citation_key: str = ""
    journal: str = ""
    year: str = ""
    doi: Optional[str] = None
    url: Optional[str] = None
    volume: str = ""
    issue: str = ""
    abstract: str = ""
    category_a: CategoryA = field(default_factory=CategoryA)
    category_b: CategoryB = field(default_factory=CategoryB)
    category_c: CategoryC = field(default_factory=CategoryC)
    category_d: CategoryD = field(default_factory=CategoryD)
    category_e: CategoryE = field(default_factory=CategoryE)
    id: Optional[str] = None

    def categories(self) -> dict[str, _Category]:
        return {
            "categoryA": self.category_a,
            "categoryB": self.category_b,
            "categoryC": self.category_c,
            "categoryD": self.category_d,
            "categoryE": self.category_e,
        }

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "citationKey": self.citation_key,
            "title": self.title,
            "authors": list(self.authors),
            "journal": self.journal,
            "year": self.year,
            "doi": self.doi,
            "url": self.url,
            "volume": self.volume,
            "issue": self.issue,
            "abstract": self.abstract,
        }
        if self.id is not None:
            data["id"] = self.id
        for key, category in self.categories().items():
            data[key] = category.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaperRecord":
        """Build a record from its JSON form.

        Scalar fields missing from *data* become empty strings; nothing
        else is invented.
        """
        authors = data.get("authors") or []
        if isinstance(authors, str):
            authors = [authors]
        return cls(
            id=data.get("id"),
            citation_key=_as_text(data.get("citationKey")),
            title=_as_text(data.get("title")),
            authors=[str(a) for a in authors if a],
            journal=_as_text(data.get("journal")),
            year=_as_text(data.get("year")),
            doi=data.get("doi") or None,
            url=data.get("url") or None,
            volume=_as_text(data.get("volume")),
            issue=_as_text(data.get("issue")),
            abstract=_as_text(data.get("abstract")),
            category_a=CategoryA.from_dict(data.get("categoryA")),
            category_b=CategoryB.from_dict(data.get("categoryB")),
            category_c=CategoryC.from_dict(data.get("categoryC")),
            category_d=CategoryD.from_dict(data.get("categoryD")),
            category_e=CategoryE.from_dict(data.get("categoryE")),
        )


class PaperStatus(str, Enum):
    """Lifecycle state of an analyzed paper."""

    PENDING_RELEVANCE = "pending-relevance"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class AnalyzedPaper:
    """A paper in the collection, wrapping its analysis lifecycle."""

    id: str
    file_name: str
    upload_date: int  # epoch milliseconds
    status: PaperStatus = PaperStatus.ANALYZING
    data: Optional[PaperRecord] = None
    error_msg: Optional[str] = None
    is_duplicate: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "fileName": self.file_name,
            "status": self.status.value,
            "uploadDate": self.upload_date,
        }
        if self.data is not None:
            out["data"] = self.data.to_dict()
        if self.error_msg is not None:
            out["errorMsg"] = self.error_msg
        if self.is_duplicate is not None:
            out["isDuplicate"] = self.is_duplicate
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalyzedPaper":
        raw = data.get("data")
        dup = data.get("isDuplicate")
        return cls(
            id=str(data["id"]),
            file_name=str(data.get("fileName", "")),
            upload_date=int(data.get("uploadDate") or 0),
            status=PaperStatus(data.get("status", PaperStatus.ANALYZING.value)),
            data=PaperRecord.from_dict(raw) if isinstance(raw, dict) else None,
            error_msg=data.get("errorMsg"),
            is_duplicate=bool(dup) if dup is not None else None,
        )


@dataclass
class RelevanceResult:
    """Outcome of the relevance check for one paper."""

    is_relevant: bool
    score: int
    reasoning: str = ""
    matched_sections: list[str] = field(default_factory=list)

    @property
    def band(self) -> str:
        if self.score >= 70:
            return "high"
        if self.score >= 40:
            return "moderate"
        return "skip"

    def to_dict(self) -> dict[str, Any]:
        return {
            "isRelevant": self.is_relevant,
            "score": self.score,
            "reasoning": self.reasoning,
            "matchedSections": list(self.matched_sections),
        }


@dataclass
class ScreeningDecision:
    """A screened upload waiting for the accept/reject decision.

    Never stored in the collection.
    """

    file_name: str
    content: bytes = field(repr=False)
    result: RelevanceResult
    filename_seen: bool = False
    status: PaperStatus = PaperStatus.PENDING_RELEVANCE
