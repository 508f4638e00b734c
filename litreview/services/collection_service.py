"""The collection of analyzed papers.

``PaperCollection`` is the only writer of paper status and duplicate
flags.  Pipelines report their outcome through ``apply()`` with a
``CompleteAnalysis`` or ``FailAnalysis`` command; every mutation runs
under one lock and is written through to the SQLite repository when
one is attached.

Duplicate detection is one-directional: when a paper completes, it is
flagged if another completed paper already has the same DOI.  The
earlier paper is never touched.  Two papers completing at the same
instant may both miss each other; that is accepted behavior.
"""

import copy
import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

from litreview.database.repository import PaperRepository
from litreview.errors import (
    CollectionError,
    DuplicateConfirmationRequired,
    InvalidTransitionError,
    PaperNotFoundError,
)
from litreview.models.paper import AnalyzedPaper, PaperRecord, PaperStatus
from litreview.utils.text import normalize_doi

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Analysis was interrupted before it finished"

# (doi, conflicting paper ids) -> proceed?
ConfirmCallback = Callable[[str, list[str]], bool]


class ImportMode(str, Enum):
    REPLACE = "replace"
    MERGE = "merge"


@dataclass(frozen=True)
class CompleteAnalysis:
    """Pipeline finished: attach *record* and compute the duplicate flag."""

    record_id: str
    record: PaperRecord


@dataclass(frozen=True)
class FailAnalysis:
    """Pipeline failed with a human-readable *message*."""

    record_id: str
    message: str


Command = Union[CompleteAnalysis, FailAnalysis]


def _now_ms() -> int:
    return int(time.time() * 1000)


class PaperCollection:
    """In-memory collection of ``AnalyzedPaper`` objects, newest first."""

    def __init__(
        self,
        repository: Optional[PaperRepository] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        """Initialize collection.

        Args:
            repository: Optional SQLite repository; mutations are written through
            clock: Returns the upload timestamp in epoch milliseconds
        """
        self._repo = repository
        self._clock = clock
        self._lock = threading.RLock()
        self._papers: dict[str, AnalyzedPaper] = {}

    @classmethod
    def from_repository(cls, repository: PaperRepository) -> "PaperCollection":
        """Load the stored collection.

        Papers still ``analyzing`` belong to a pipeline of a previous
        process that can no longer finish; they are failed.
        """
        collection = cls(repository)
        for paper in repository.find_all():
            collection._papers[paper.id] = paper
        for paper in list(collection._papers.values()):
            if paper.status is PaperStatus.ANALYZING:
                collection.fail_analysis(paper.id, INTERRUPTED_MESSAGE)
        return collection

    # ── Queries ───────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._papers)

    def __iter__(self) -> Iterator[AnalyzedPaper]:
        return iter(self.snapshot())

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._papers

    def get(self, record_id: str) -> AnalyzedPaper:
        """Return a copy of one paper.

        Raises:
            PaperNotFoundError: If no paper has this id
        """
        with self._lock:
            return copy.deepcopy(self._get(record_id))

    def _get(self, record_id: str) -> AnalyzedPaper:
        try:
            return self._papers[record_id]
        except KeyError:
            raise PaperNotFoundError(record_id) from None

    def snapshot(self) -> list[AnalyzedPaper]:
        """Consistent deep copy of the whole collection."""
        with self._lock:
            return copy.deepcopy(list(self._papers.values()))

    def completed_records(self) -> list[PaperRecord]:
        """Records of all complete papers, collection order."""
        return [
            p.data
            for p in self.snapshot()
            if p.status is PaperStatus.COMPLETE and p.data is not None
        ]

    def status_counts(self) -> dict[str, int]:
        counts = {s.value: 0 for s in PaperStatus if s is not PaperStatus.PENDING_RELEVANCE}
        with self._lock:
            for paper in self._papers.values():
                counts[paper.status.value] += 1
        return counts

    def filename_exists(self, file_name: str) -> bool:
        """Whether a paper with this file name exists, in any status.

        Advisory only: callers ask the user before submitting again.
        """
        with self._lock:
            return any(p.file_name == file_name for p in self._papers.values())

    def find_doi_conflicts(self, record_id: Optional[str], doi: Optional[str]) -> list[str]:
        """Ids of other complete papers whose DOI matches *doi*."""
        key = normalize_doi(doi)
        if not key:
            return []
        with self._lock:
            return [
                p.id
                for p in self._papers.values()
                if p.id != record_id
                and p.status is PaperStatus.COMPLETE
                and p.data is not None
                and normalize_doi(p.data.doi) == key
            ]

    # ── Lifecycle ─────────────────────────────────────────────────────

    def accept(self, file_name: str) -> str:
        """Register an accepted upload as ``analyzing`` and return its id."""
        paper = AnalyzedPaper(
            id=str(uuid.uuid4()),
            file_name=file_name,
            upload_date=self._clock(),
            status=PaperStatus.ANALYZING,
        )
        with self._lock:
            self._papers = {paper.id: paper, **self._papers}
            self._persist(paper)
        logger.info("Accepted %s as %s", file_name, paper.id)
        return paper.id

    def apply(self, command: Command) -> AnalyzedPaper:
        """Single entry point for pipeline outcomes.

        Raises:
            PaperNotFoundError: The paper was removed meanwhile
            InvalidTransitionError: The paper is no longer ``analyzing``
        """
        with self._lock:
            paper = self._get(command.record_id)
            if paper.status is not PaperStatus.ANALYZING:
                raise InvalidTransitionError(
                    f"Paper {paper.id} is {paper.status.value}, not analyzing"
                )

            if isinstance(command, CompleteAnalysis):
                record = replace(copy.deepcopy(command.record), id=paper.id)
                conflicts = self.find_doi_conflicts(paper.id, record.doi)
                paper.status = PaperStatus.COMPLETE
                paper.data = record
                paper.is_duplicate = bool(conflicts)
                if conflicts:
                    logger.warning(
                        "%s duplicates DOI %s of %s", paper.file_name, record.doi, ", ".join(conflicts)
                    )
            elif isinstance(command, FailAnalysis):
                paper.status = PaperStatus.ERROR
                paper.error_msg = command.message
                logger.warning("Analysis of %s failed: %s", paper.file_name, command.message)
            else:
                raise TypeError(f"Unknown command {command!r}")

            self._persist(paper)
            return copy.deepcopy(paper)

    def complete_analysis(self, record_id: str, record: PaperRecord) -> AnalyzedPaper:
        """``analyzing`` -> ``complete`` with duplicate detection."""
        return self.apply(CompleteAnalysis(record_id, record))

    def fail_analysis(self, record_id: str, message: str) -> AnalyzedPaper:
        """``analyzing`` -> ``error``."""
        return self.apply(FailAnalysis(record_id, message))

    def remove(self, record_id: str) -> None:
        """Delete a paper in any status.

        Raises:
            PaperNotFoundError: If no paper has this id
        """
        with self._lock:
            self._get(record_id)
            del self._papers[record_id]
            if self._repo is not None:
                self._repo.delete(record_id)

    def edit_record(
        self,
        record_id: str,
        record: PaperRecord,
        confirm: Optional[ConfirmCallback] = None,
    ) -> AnalyzedPaper:
        """Replace the record of a complete paper.

        If the new DOI matches another complete paper, *confirm* is asked
        first.  Applying the edit always clears the duplicate flag.

        Raises:
            PaperNotFoundError: If no paper has this id
            InvalidTransitionError: If the paper is not complete
            DuplicateConfirmationRequired: DOI conflict not confirmed
        """
        with self._lock:
            paper = self._get(record_id)
            if paper.status is not PaperStatus.COMPLETE:
                raise InvalidTransitionError(
                    f"Only complete papers can be edited ({paper.id} is {paper.status.value})"
                )
            conflicts = self.find_doi_conflicts(record_id, record.doi)

        # Outside the lock: confirmation may wait on a person
        if conflicts and not (confirm is not None and confirm(record.doi or "", conflicts)):
            raise DuplicateConfirmationRequired(record.doi or "", conflicts)

        with self._lock:
            paper = self._get(record_id)
            if paper.status is not PaperStatus.COMPLETE:
                raise InvalidTransitionError(f"Paper {paper.id} changed while editing")
            paper.data = replace(copy.deepcopy(record), id=paper.id)
            paper.is_duplicate = False
            self._persist(paper)
            return copy.deepcopy(paper)

    # ── Import / backup ───────────────────────────────────────────────

    def import_batch(
        self,
        papers: list[AnalyzedPaper],
        mode: Union[ImportMode, str] = ImportMode.MERGE,
    ) -> int:
        """Import papers from a backup.

        ``replace`` discards the current collection.  ``merge`` keeps it and
        adds only papers whose id is not present yet; colliding papers are
        skipped without a report.

        Returns:
            Number of papers added
        """
        mode = ImportMode(mode)
        incoming = copy.deepcopy(papers)
        with self._lock:
            if mode is ImportMode.REPLACE:
                self._papers = {p.id: p for p in incoming}
                if self._repo is not None:
                    self._repo.replace_all(list(self._papers.values()))
                added = len(self._papers)
            else:
                added = 0
                for paper in incoming:
                    if paper.id in self._papers:
                        logger.debug("Skipping imported paper %s: id exists", paper.id)
                        continue
                    self._papers[paper.id] = paper
                    self._persist(paper)
                    added += 1
        logger.info("Imported %d paper(s) (%s)", added, mode.value)
        return added

    def export_backup(self, path: Path) -> Path:
        """Write the full collection as a JSON array."""
        write_backup(path, self.snapshot())
        return path

    def restore_backup(
        self,
        path: Path,
        mode: Union[ImportMode, str] = ImportMode.REPLACE,
    ) -> int:
        """Import a backup file written by ``export_backup``."""
        return self.import_batch(load_backup(path), mode)

    # ── Private ───────────────────────────────────────────────────────

    def _persist(self, paper: AnalyzedPaper) -> None:
        if self._repo is not None:
            self._repo.save(paper)


def write_backup(path: Path, papers: list[AnalyzedPaper]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([p.to_dict() for p in papers], f, indent=2, ensure_ascii=False)


def parse_backup(raw: object) -> list[AnalyzedPaper]:
    """Validate a decoded backup.

    Raises:
        CollectionError: If *raw* is not an array of paper objects
    """
    if not isinstance(raw, list):
        raise CollectionError("Backup is not a JSON array")
    try:
        return [AnalyzedPaper.from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CollectionError(f"Invalid paper in backup: {e}") from e


def load_backup(path: Path) -> list[AnalyzedPaper]:
    """Read a backup file."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise CollectionError(f"Backup is not valid JSON: {e}") from e
    return parse_backup(raw)
