"""Console UI for terminal output using Rich."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from litreview.models.paper import AnalyzedPaper, PaperStatus, RelevanceResult

_STATUS_STYLE = {
    PaperStatus.ANALYZING: "cyan",
    PaperStatus.COMPLETE: "green",
    PaperStatus.ERROR: "red",
}

_BAND_STYLE = {"high": "green", "moderate": "yellow", "skip": "red"}

_CATEGORY_TITLES = {
    "categoryA": "A. Problem framing",
    "categoryB": "B. Design & taxonomy",
    "categoryC": "C. System",
    "categoryD": "D. Study",
    "categoryE": "E. Results",
}


class ConsoleUI:
    """Rich-based console UI for paper display and prompts."""

    def __init__(self, console: Console = None):
        """Initialize console."""
        self.console = console or Console()

    def info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(message)

    def success(self, message: str) -> None:
        """Print a success message in green."""
        self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Print a warning message in yellow."""
        self.console.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Print an error message in red."""
        self.console.print(f"[red]Error:[/red] {message}")

    def confirm(self, question: str, default: bool = False) -> bool:
        return Confirm.ask(question, default=default, console=self.console)

    def relevance(self, file_name: str, result: RelevanceResult) -> None:
        """Show a relevance check result."""
        style = _BAND_STYLE[result.band]
        verdict = "KEEP" if result.is_relevant else "SKIP"
        body = f"[bold {style}]{result.score}/100 {verdict}[/bold {style}]\n\n{result.reasoning}"
        if result.matched_sections:
            body += "\n\n[bold]Matched sections:[/bold] " + ", ".join(result.matched_sections)
        self.console.print(Panel(body, title=file_name, border_style=style))

    def exported(self, count: int, filepath: Path) -> None:
        self.console.print(
            f"[green]Exported[/green] {count} paper(s) to [bold]{filepath}[/bold]"
        )

    def display_papers(self, papers: list[AnalyzedPaper], status: str = "all") -> None:
        """Display papers in a formatted table.

        Args:
            papers: Papers to display
            status: Status filter used (for title)
        """
        table = Table(title=f"Papers (status={status})")
        table.add_column("ID", overflow="fold")
        table.add_column("File", overflow="fold")
        table.add_column("Status")
        table.add_column("Year", width=6)
        table.add_column("Title", overflow="fold")
        table.add_column("DOI", overflow="fold")

        for paper in papers:
            data = paper.data
            status_text = f"[{_STATUS_STYLE[paper.status]}]{paper.status.value}[/]"
            if paper.is_duplicate:
                status_text += " [yellow](duplicate)[/yellow]"
            table.add_row(
                paper.id[:8],
                paper.file_name,
                status_text,
                (data.year if data else "") or "-",
                data.title if data else (paper.error_msg or "-"),
                (data.doi if data else None) or "-",
            )

        if papers:
            self.console.print(table)
        else:
            self.console.print("No papers found.")

    def display_paper(self, paper: AnalyzedPaper) -> None:
        """Show one paper with all analysis categories."""
        if paper.data is None:
            self.console.print(
                Panel(
                    paper.error_msg or paper.status.value,
                    title=paper.file_name,
                    border_style=_STATUS_STYLE[paper.status],
                )
            )
            return

        r = paper.data
        header = f"[bold]{r.title}[/bold]\n{'; '.join(r.authors)}"
        if r.journal or r.year:
            header += f"\n{r.journal} {r.year}".rstrip()
        if r.doi:
            header += f"\n{r.url or r.doi}"
        if paper.is_duplicate:
            header += "\n[yellow]Same DOI as another paper in the collection[/yellow]"
        self.console.print(Panel(header, title=paper.file_name))

        for name, category in r.categories().items():
            table = Table(title=_CATEGORY_TITLES[name], show_header=False, expand=True)
            table.add_column("Field", style="bold", width=24)
            table.add_column("Value", overflow="fold")
            for key, value in category.to_dict().items():
                table.add_row(key, value or "-")
            self.console.print(table)
