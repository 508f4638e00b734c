"""litreview - relevance-gated PDF intake for literature reviews.

Screens uploaded papers against a research profile, extracts a
structured five-category analysis with a language model, enriches
bibliographic metadata via Crossref and keeps the collection in SQLite.
"""

__version__ = "1.0.0"

from litreview.config import Settings
from litreview.models.paper import AnalyzedPaper, PaperRecord

__all__ = ["AnalyzedPaper", "PaperRecord", "Settings", "__version__"]
