"""Export of completed paper records (JSON, CSV, RIS, Markdown)."""

import json
from datetime import date
from pathlib import Path

import pandas as pd

from litreview.models.paper import PaperRecord
from litreview.utils.text import clean_doi, strip_tags

EXPORT_FORMATS = {
    "json": ".json",
    "csv": ".csv",
    "ris": ".ris",
    "md": ".md",
}

# (column header, category attribute, field attribute)
CSV_COLUMNS: list[tuple[str, str, str]] = [
    ("Core Problem", "category_a", "core_problem"),
    ("The Villain", "category_a", "obstacle"),
    ("Gap Claim", "category_a", "gap_claim"),
    ("Key Definitions", "category_a", "key_definitions"),
    ("Interaction Paradigm", "category_b", "interaction_paradigm"),
    ("Embodiment Type", "category_b", "embodiment_type"),
    ("Input Modality", "category_b", "input_modality"),
    ("Autonomy Level", "category_b", "autonomy_level"),
    ("Social Gestures", "category_b", "social_gestures"),
    ("Motion Generation", "category_b", "motion_generation"),
    ("Algorithm/Model", "category_c", "algorithm_model"),
    ("Hardware Specs", "category_c", "hardware_specs"),
    ("Latency/Performance", "category_c", "latency_performance"),
    ("Safety Mechanisms", "category_c", "safety_mechanisms"),
    ("Study Design", "category_d", "study_design"),
    ("Sample Size", "category_d", "sample_size"),
    ("Task Description", "category_d", "task_description"),
    ("Independent Variables", "category_d", "independent_variables"),
    ("Dependent Variables", "category_d", "dependent_variables"),
    ("Key Finding", "category_e", "key_finding"),
    ("Unexpected Results", "category_e", "unexpected_results"),
    ("Limitations", "category_e", "limitations"),
    ("Future Work", "category_e", "future_work"),
    ("Relevance to Project", "category_e", "relevance_to_project"),
]


def records_to_json(records: list[PaperRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False)


def records_to_dataframe(records: list[PaperRecord]) -> pd.DataFrame:
    """One row per paper, bibliographic columns first, then the categories."""
    rows = []
    for r in records:
        row = {
            "Citation Key": r.citation_key,
            "Title": r.title,
            "Authors": "; ".join(r.authors),
            "Year": r.year,
            "Journal": r.journal,
            "DOI": r.doi or "",
        }
        for header, category, attr in CSV_COLUMNS:
            row[header] = getattr(getattr(r, category), attr)
        rows.append(row)
    columns = ["Citation Key", "Title", "Authors", "Year", "Journal", "DOI"]
    columns += [c[0] for c in CSV_COLUMNS]
    return pd.DataFrame(rows, columns=columns)


def records_to_csv(records: list[PaperRecord]) -> str:
    return records_to_dataframe(records).to_csv(index=False, lineterminator="\n")


def _ris_line(tag: str, value: str) -> str:
    # RIS values are single-line
    return f"{tag}  - {' '.join(str(value).split())}\n"


def records_to_ris(records: list[PaperRecord]) -> str:
    """RIS (journal article) entries with the analysis packed into one N1 note."""
    out = []
    for r in records:
        entry = "TY  - JOUR\n"
        if r.abstract:
            entry += _ris_line("AB", strip_tags(r.abstract))
        for author in r.authors:
            entry += _ris_line("AU", author)
        if r.year:
            entry += f"DA  - {r.year}///\n"
            entry += _ris_line("PY", r.year)
        if r.doi:
            entry += _ris_line("DO", clean_doi(r.doi))
        if r.issue:
            entry += _ris_line("IS", r.issue)
        if r.volume:
            entry += _ris_line("VL", r.volume)
        entry += _ris_line("TI", r.title)
        if r.journal:
            entry += _ris_line("T2", r.journal)
        notes = " | ".join([
            f"Core Problem: {r.category_a.core_problem}",
            f"Gap: {r.category_a.gap_claim}",
            f"Paradigm: {r.category_b.interaction_paradigm}",
            f"Embodiment: {r.category_b.embodiment_type}",
            f"Findings: {r.category_e.key_finding}",
        ])
        entry += _ris_line("N1", notes)
        entry += "ER  - \n"
        out.append(entry)
    return "\n".join(out)


def records_to_markdown(records: list[PaperRecord]) -> str:
    """Reading list grouped by year, newest first."""
    year_groups: dict[str, list[PaperRecord]] = {}
    for record in records:
        year_groups.setdefault(record.year or "Undated", []).append(record)

    lines = []
    for year in sorted(year_groups, key=lambda y: (y != "Undated", y), reverse=True):
        lines.append(f"## {year}\n")
        for r in year_groups[year]:
            lines.append(f"### {r.title}")
            if r.authors:
                lines.append(f"- Authors: {', '.join(r.authors)}")
            if r.journal:
                lines.append(f"- Venue: {r.journal}")
            if r.doi:
                lines.append(f"- DOI: {r.doi}")
                lines.append(f"- Link: {r.url or 'https://doi.org/' + clean_doi(r.doi)}")
            if r.category_e.key_finding:
                lines.append(f"- Key finding: {r.category_e.key_finding}")
            lines.append("")
    return "\n".join(lines)


_RENDERERS = {
    "json": records_to_json,
    "csv": records_to_csv,
    "ris": records_to_ris,
    "md": records_to_markdown,
}


class ReviewExporter:
    """Service for writing export files."""

    def __init__(self, export_dir: Path):
        """Initialize exporter.

        Args:
            export_dir: Directory to save exported files
        """
        self.export_dir = export_dir
        self.export_dir.mkdir(parents=True, exist_ok=True)

    def render(self, records: list[PaperRecord], fmt: str) -> str:
        try:
            renderer = _RENDERERS[fmt]
        except KeyError:
            raise ValueError(f"Unknown export format '{fmt}'") from None
        return renderer(records)

    def export(self, records: list[PaperRecord], fmt: str = "json") -> Path:
        """Export records to a file named by today's date.

        Args:
            records: Records to export
            fmt: One of ``EXPORT_FORMATS``

        Returns:
            Path to the created file
        """
        content = self.render(records, fmt)
        filepath = self.export_dir / f"literature_review_{date.today().isoformat()}{EXPORT_FORMATS[fmt]}"

        # Write to file (overwrites if exists)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)

        return filepath
