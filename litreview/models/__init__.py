"""Data models."""

from litreview.models.paper import (
    AnalyzedPaper,
    CategoryA,
    CategoryB,
    CategoryC,
    CategoryD,
    CategoryE,
    PaperRecord,
    PaperStatus,
    RelevanceResult,
    ScreeningDecision,
)

__all__ = [
    "AnalyzedPaper",
    "CategoryA",
    "CategoryB",
    "CategoryC",
    "CategoryD",
    "CategoryE",
    "PaperRecord",
    "PaperStatus",
    "RelevanceResult",
    "ScreeningDecision",
]
