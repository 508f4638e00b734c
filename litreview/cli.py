"""Command-line interface handlers."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.progress import Progress, SpinnerColumn, TextColumn

from litreview.config import Settings
from litreview.console import ConsoleUI
from litreview.database.repository import PaperRepository
from litreview.errors import LitReviewError, PaperNotFoundError
from litreview.models.paper import PaperStatus
from litreview.services.collection_service import ImportMode, PaperCollection
from litreview.services.crossref_service import CrossrefService
from litreview.services.enrichment_service import Enricher
from litreview.services.export_service import EXPORT_FORMATS, ReviewExporter
from litreview.services.llm_service import ModelGateway
from litreview.services.pipeline_service import IntakePipeline
from litreview.services.taxonomy_service import (
    CitationStrategyAdvisor,
    TaxonomyDraft,
    TaxonomyGenerator,
)

logger = logging.getLogger(__name__)

TAXONOMY_DRAFT_FILE = "taxonomy_draft.json"


class LitReviewCLI:
    """CLI application for the literature review collection."""

    def __init__(self, settings: Optional[Settings] = None, ui: Optional[ConsoleUI] = None):
        """Initialize CLI with settings.

        Args:
            settings: Application settings (loads from .metadata if not provided)
            ui: Console output (a new Rich console if not provided)
        """
        self.settings = settings or Settings.load()
        self.ui = ui or ConsoleUI()
        self.repo = PaperRepository(self.settings.db_path)
        self.collection = PaperCollection.from_repository(self.repo)
        self.crossref = CrossrefService(self.settings.contact_email)
        self.gateway = ModelGateway(self.settings.provider_config)
        self._pipeline: Optional[IntakePipeline] = None

    @property
    def pipeline(self) -> IntakePipeline:
        if self._pipeline is None:
            self._pipeline = IntakePipeline.create(
                self.collection, self.gateway, self.crossref, self.settings.workers
            )
        return self._pipeline

    def _resolve_id(self, id_or_prefix: str) -> str:
        """Full paper id from an id or a unique prefix of one."""
        if id_or_prefix in self.collection:
            return id_or_prefix
        matches = [p.id for p in self.collection if p.id.startswith(id_or_prefix)]
        if len(matches) != 1:
            raise PaperNotFoundError(id_or_prefix)
        return matches[0]

    # ── Intake ────────────────────────────────────────────────────────

    def cmd_screen(self, path: Path) -> None:
        """Run the relevance check only.  Nothing is stored."""
        decision = self.pipeline.screen(path.name, path.read_bytes(), self.settings.research_profile())
        self.ui.relevance(path.name, decision.result)
        if decision.filename_seen:
            self.ui.warning(f"{path.name} is already in the collection")

    def cmd_add(self, paths: list[Path], yes: bool = False) -> None:
        """Screen each PDF, ask whether to keep it, then analyze the kept ones.

        Args:
            paths: PDF files
            yes: Keep relevant papers and skip the rest without asking
        """
        profile = self.settings.research_profile()
        accepted: list[str] = []

        for path in paths:
            if self.pipeline.check_filename(path.name) and not yes:
                if not self.ui.confirm(f"{path.name} is already in the collection. Add it again?"):
                    continue
            try:
                decision = self.pipeline.screen(path.name, path.read_bytes(), profile)
            except LitReviewError as e:
                self.ui.error(f"{path.name}: {e}")
                continue

            self.ui.relevance(path.name, decision.result)
            if yes:
                keep = decision.result.is_relevant
            else:
                keep = self.ui.confirm("Analyze this paper?", default=decision.result.is_relevant)

            if keep:
                record_id, _ = self.pipeline.accept(decision, profile)
                accepted.append(record_id)
            else:
                self.pipeline.reject(decision)

        if not accepted:
            self.ui.info("No papers to analyze.")
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            console=self.ui.console,
        ) as progress:
            progress.add_task(f"Analyzing {len(accepted)} paper(s)...", total=None)
            self.pipeline.wait_all()

        for record_id in accepted:
            if record_id not in self.collection:
                continue
            paper = self.collection.get(record_id)
            if paper.status is PaperStatus.COMPLETE:
                note = " (duplicate DOI)" if paper.is_duplicate else ""
                self.ui.success(f"{paper.file_name}: {paper.data.title}{note}")
            else:
                self.ui.error(f"{paper.file_name}: {paper.error_msg}")

    # ── Collection ────────────────────────────────────────────────────

    def cmd_list(self, status: Optional[str] = None) -> None:
        papers = self.collection.snapshot()
        if status:
            papers = [p for p in papers if p.status.value == status]
        self.ui.display_papers(papers, status or "all")

    def cmd_show(self, paper_id: str) -> None:
        self.ui.display_paper(self.collection.get(self._resolve_id(paper_id)))

    def cmd_remove(self, paper_id: str) -> None:
        record_id = self._resolve_id(paper_id)
        self.collection.remove(record_id)
        self.ui.success(f"Removed {record_id}")

    def cmd_refresh(self, paper_id: str) -> None:
        """Re-read title, authors and abstract from Crossref by the paper's DOI."""
        record_id = self._resolve_id(paper_id)
        paper = self.collection.get(record_id)
        if paper.data is None:
            self.ui.error(f"{paper.file_name} has no analysis to refresh")
            return
        record = Enricher(self.crossref).refresh_from_doi(paper.data)
        self.collection.edit_record(
            record_id,
            record,
            confirm=lambda doi, ids: self.ui.confirm(
                f"DOI {doi} is also used by {', '.join(i[:8] for i in ids)}. Save anyway?"
            ),
        )
        self.ui.success(f"Refreshed {record.title}")

    def cmd_export(self, fmt: str = "json") -> None:
        records = self.collection.completed_records()
        if not records:
            self.ui.warning("No complete papers to export.")
            return
        filepath = ReviewExporter(self.settings.export_dir).export(records, fmt)
        self.ui.exported(len(records), filepath)

    def cmd_backup(self, path: Path) -> None:
        self.collection.export_backup(path)
        self.ui.success(f"Backed up {len(self.collection)} paper(s) to {path}")

    def cmd_restore(self, path: Path, merge: bool = False) -> None:
        mode = ImportMode.MERGE if merge else ImportMode.REPLACE
        if mode is ImportMode.REPLACE and len(self.collection):
            if not self.ui.confirm(f"Replace all {len(self.collection)} paper(s) in the collection?"):
                return
        added = self.collection.restore_backup(path, mode)
        self.ui.success(f"Imported {added} paper(s) ({mode.value})")

    # ── Synthesis ─────────────────────────────────────────────────────

    def cmd_taxonomy(self, regenerate: bool = False, categories: Optional[list[str]] = None) -> None:
        """Show the saved taxonomy draft, generating it when missing or stale."""
        records = self.collection.completed_records()
        draft_path = self.settings.export_dir / TAXONOMY_DRAFT_FILE
        draft = TaxonomyDraft.load(draft_path)

        if draft is not None and draft.is_stale(len(records)) and not regenerate:
            self.ui.warning(
                f"Draft was built from {draft.paper_count} paper(s); "
                f"the collection now has {len(records)}. Use --regenerate to update it."
            )
        if draft is None or regenerate:
            with Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                console=self.ui.console,
            ) as progress:
                progress.add_task(f"Drafting taxonomy from {len(records)} paper(s)...", total=None)
                draft = TaxonomyGenerator(self.gateway).generate(
                    records, self.settings.research_profile(), categories
                )
            draft.save(draft_path)

        self.ui.console.print(Markdown(draft.text))

    def cmd_strategy(self) -> None:
        """Suggest searches for under-covered sections."""
        records = self.collection.completed_records()
        gaps = CitationStrategyAdvisor(self.gateway).recommend(records, self.settings.research_profile())
        if not gaps:
            self.ui.info("No gaps suggested.")
        for gap in gaps:
            self.ui.info(f"[bold]{gap.section}[/bold]: {gap.gap}")
            for query in gap.search_queries:
                self.ui.info(f"  - {query}")

    def close(self) -> None:
        if self._pipeline is not None:
            self._pipeline.shutdown()


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="litreview",
        description="PDF → relevance check → structured analysis → Crossref → SQLite",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    screen_parser = subparsers.add_parser("screen", help="Relevance check only (nothing is stored)")
    screen_parser.add_argument("pdf", type=Path)

    add_parser = subparsers.add_parser("add", help="Screen and analyze PDFs")
    add_parser.add_argument("pdfs", nargs="+", type=Path)
    add_parser.add_argument(
        "--yes",
        action="store_true",
        help="Keep relevant papers and skip the rest without asking",
    )

    list_parser = subparsers.add_parser("list", help="List papers")
    list_parser.add_argument(
        "--status",
        choices=[s.value for s in PaperStatus if s is not PaperStatus.PENDING_RELEVANCE],
        help="Filter by status",
    )

    show_parser = subparsers.add_parser("show", help="Show one paper's analysis")
    show_parser.add_argument("id", help="Paper id or unique id prefix")

    remove_parser = subparsers.add_parser("remove", help="Delete a paper")
    remove_parser.add_argument("id", help="Paper id or unique id prefix")

    refresh_parser = subparsers.add_parser("refresh", help="Re-read metadata from Crossref by DOI")
    refresh_parser.add_argument("id", help="Paper id or unique id prefix")

    export_parser = subparsers.add_parser("export", help="Export complete papers")
    export_parser.add_argument(
        "--format",
        default="json",
        choices=list(EXPORT_FORMATS),
        dest="fmt",
        help="Output format (default: json)",
    )

    backup_parser = subparsers.add_parser("backup", help="Write the whole collection to a JSON file")
    backup_parser.add_argument("path", type=Path)

    restore_parser = subparsers.add_parser("restore", help="Load a JSON backup")
    restore_parser.add_argument("path", type=Path)
    restore_parser.add_argument(
        "--merge",
        action="store_true",
        help="Keep the current collection and add papers with new ids",
    )

    taxonomy_parser = subparsers.add_parser("taxonomy", help="Draft the taxonomy section")
    taxonomy_parser.add_argument("--regenerate", action="store_true")
    taxonomy_parser.add_argument(
        "--category",
        action="append",
        dest="categories",
        help="Taxonomy category to map papers to (repeatable)",
    )

    subparsers.add_parser("strategy", help="Suggest searches for citation gaps")

    return parser


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    cli = LitReviewCLI()
    try:
        if args.command == "screen":
            cli.cmd_screen(args.pdf)
        elif args.command == "add":
            cli.cmd_add(args.pdfs, yes=args.yes)
        elif args.command == "list":
            cli.cmd_list(args.status)
        elif args.command == "show":
            cli.cmd_show(args.id)
        elif args.command == "remove":
            cli.cmd_remove(args.id)
        elif args.command == "refresh":
            cli.cmd_refresh(args.id)
        elif args.command == "export":
            cli.cmd_export(args.fmt)
        elif args.command == "backup":
            cli.cmd_backup(args.path)
        elif args.command == "restore":
            cli.cmd_restore(args.path, merge=args.merge)
        elif args.command == "taxonomy":
            cli.cmd_taxonomy(args.regenerate, args.categories)
        elif args.command == "strategy":
            cli.cmd_strategy()
    except (LitReviewError, OSError) as e:
        cli.ui.error(str(e))
        return 1
    finally:
        cli.close()
    return 0


def run_cli() -> None:
    sys.exit(main())
