"""SQLite persistence."""

from litreview.database.repository import PaperRepository

__all__ = ["PaperRepository"]
