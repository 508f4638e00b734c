"""Paper repository for database operations."""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from litreview.models.paper import AnalyzedPaper, PaperRecord, PaperStatus


class PaperRepository:
    """Repository for analyzed-paper persistence using SQLite.

    The repository only stores what it is given; status rules and
    duplicate flags are owned by ``PaperCollection``.
    """

    def __init__(self, db_path: Path):
        """Initialize repository with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._init_db()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS analyzed_papers (
                    id TEXT PRIMARY KEY,
                    file_name TEXT NOT NULL,
                    upload_date INTEGER NOT NULL,
                    status TEXT NOT NULL,
                    data TEXT,
                    error_msg TEXT,
                    is_duplicate INTEGER
                );
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_upload_date ON analyzed_papers(upload_date);"
            )
            conn.commit()

    @staticmethod
    def _row_to_paper(row: sqlite3.Row) -> AnalyzedPaper:
        data = json.loads(row["data"]) if row["data"] else None
        dup = row["is_duplicate"]
        return AnalyzedPaper(
            id=row["id"],
            file_name=row["file_name"],
            upload_date=row["upload_date"],
            status=PaperStatus(row["status"]),
            data=PaperRecord.from_dict(data) if data else None,
            error_msg=row["error_msg"],
            is_duplicate=bool(dup) if dup is not None else None,
        )

    @staticmethod
    def _paper_params(paper: AnalyzedPaper) -> tuple:
        return (
            paper.id,
            paper.file_name,
            paper.upload_date,
            paper.status.value,
            json.dumps(paper.data.to_dict(), ensure_ascii=False) if paper.data else None,
            paper.error_msg,
            None if paper.is_duplicate is None else int(paper.is_duplicate),
        )

    def save(self, paper: AnalyzedPaper) -> None:
        """Insert or replace a paper by id.

        Args:
            paper: Paper to store
        """
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO analyzed_papers
                (id, file_name, upload_date, status, data, error_msg, is_duplicate)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                self._paper_params(paper),
            )
            conn.commit()

    def delete(self, paper_id: str) -> bool:
        """Delete a paper.

        Returns:
            True if a row was deleted
        """
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM analyzed_papers WHERE id = ?", (paper_id,))
            conn.commit()
            return cursor.rowcount > 0

    def replace_all(self, papers: list[AnalyzedPaper]) -> None:
        """Discard every stored paper and store *papers* in one transaction."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM analyzed_papers")
            cursor.executemany(
                """
                INSERT INTO analyzed_papers
                (id, file_name, upload_date, status, data, error_msg, is_duplicate)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [self._paper_params(p) for p in papers],
            )
            conn.commit()

    def find_all(self) -> list[AnalyzedPaper]:
        """Return all papers, newest upload first."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM analyzed_papers ORDER BY upload_date DESC, rowid DESC"
            )
            rows = cursor.fetchall()
        return [self._row_to_paper(row) for row in rows]
