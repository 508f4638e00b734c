"""Configuration management.

``Settings`` is a **metaclass-based singleton**: the first call to
``Settings.load()`` creates the instance; every later call returns
the same object.  Use ``update()`` to change values at runtime, or
``reload()`` to re-read everything from disk.

All user-editable configuration lives under ``.metadata/``:

* ``email.yaml``     – Crossref polite-pool email
* ``provider.yaml``  – model provider selection and credentials
* ``profile.yaml``   – research profile (title, keywords, section targets)

On first run, missing files are copied from ``.metadata.example/``.

The pipeline never reads ``Settings`` itself.  The CLI and the API read a
``ResearchProfile`` and a ``ProviderConfig`` at the call boundary and pass
them down explicitly.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from litreview.errors import ConfigurationError

logger = logging.getLogger(__name__)

PROVIDER_PROXY = "proxy"
PROVIDER_GEMINI = "gemini"
PROVIDERS = (PROVIDER_PROXY, PROVIDER_GEMINI)

DEFAULT_PROXY_BASE_URL = "https://llmproxy.ai.orange/v1"
DEFAULT_PROXY_MODEL = "vertex_ai/claude4-sonnet"
DEFAULT_GEMINI_MODEL = "gemini-3-flash-preview"

# Environment fallbacks for credentials left empty in provider.yaml
PROXY_KEY_ENV = "LITREVIEW_PROXY_API_KEY"
GEMINI_KEY_ENV = "GEMINI_API_KEY"


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------

@dataclass
class SectionTarget:
    """A section of the paper being written and its citation goal."""

    name: str
    citation_goal: int = 0
    description: str = ""


@dataclass
class ResearchProfile:
    """What the literature review is about.  Read-only for the pipeline."""

    title: str = "Literature Review"
    description: str = ""
    keywords: list[str] = field(default_factory=list)
    target_venue: str = ""
    sections: list[SectionTarget] = field(default_factory=list)
    citation_goal: int = 0

    @property
    def keywords_text(self) -> str:
        return ", ".join(self.keywords)

    def sections_text(self) -> str:
        """Numbered section definitions for prompts."""
        lines = []
        for i, s in enumerate(self.sections, start=1):
            line = f"{i}. {s.name} ({s.citation_goal} papers target)"
            if s.description:
                line += f": {s.description}"
            lines.append(line)
        return "\n".join(lines)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResearchProfile":
        keywords = data.get("keywords") or []
        if isinstance(keywords, str):
            keywords = [k.strip() for k in keywords.split(",") if k.strip()]
        sections = []
        for s in data.get("sections") or []:
            if isinstance(s, dict) and s.get("name"):
                sections.append(
                    SectionTarget(
                        name=str(s["name"]),
                        citation_goal=int(s.get("citation_goal") or 0),
                        description=str(s.get("description") or ""),
                    )
                )
        citation_goal = data.get("citation_goal")
        if citation_goal is None:
            citation_goal = sum(s.citation_goal for s in sections)
        return cls(
            title=str(data.get("title") or "Literature Review"),
            description=str(data.get("description") or ""),
            keywords=[str(k) for k in keywords],
            target_venue=str(data.get("target_venue") or ""),
            sections=sections,
            citation_goal=int(citation_goal),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "keywords": list(self.keywords),
            "target_venue": self.target_venue,
            "sections": [
                {
                    "name": s.name,
                    "citation_goal": s.citation_goal,
                    "description": s.description,
                }
                for s in self.sections
            ],
            "citation_goal": self.citation_goal,
        }


@dataclass
class ProviderConfig:
    """Which model provider to call and with which credential."""

    provider: str = PROVIDER_PROXY
    proxy_api_key: str = ""
    gemini_api_key: str = ""
    proxy_base_url: str = DEFAULT_PROXY_BASE_URL
    proxy_model: str = DEFAULT_PROXY_MODEL
    gemini_model: str = DEFAULT_GEMINI_MODEL
    temperature: float = 0.3

    @property
    def api_key(self) -> str:
        """Credential of the selected provider ('' when not configured)."""
        if self.provider == PROVIDER_GEMINI:
            return self.gemini_api_key
        return self.proxy_api_key

    @property
    def model(self) -> str:
        if self.provider == PROVIDER_GEMINI:
            return self.gemini_model
        return self.proxy_model

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProviderConfig":
        provider = str(data.get("provider") or PROVIDER_PROXY).lower()
        # Older settings call the proxied provider "claude"
        if provider == "claude":
            provider = PROVIDER_PROXY
        if provider not in PROVIDERS:
            raise ConfigurationError(f"Unknown model provider '{provider}'")
        return cls(
            provider=provider,
            proxy_api_key=str(data.get("proxy_api_key") or os.getenv(PROXY_KEY_ENV, "")),
            gemini_api_key=str(data.get("gemini_api_key") or os.getenv(GEMINI_KEY_ENV, "")),
            proxy_base_url=str(data.get("proxy_base_url") or DEFAULT_PROXY_BASE_URL),
            proxy_model=str(data.get("proxy_model") or DEFAULT_PROXY_MODEL),
            gemini_model=str(data.get("gemini_model") or DEFAULT_GEMINI_MODEL),
            temperature=float(data.get("temperature", 0.3)),
        )


# ---------------------------------------------------------------------------
# Singleton metaclass
# ---------------------------------------------------------------------------

class _SettingsMeta(type):
    """Metaclass that enforces a process-wide singleton for *Settings*.

    * First ``Settings(...)`` creates and caches the instance.
    * Later ``Settings(...)`` calls return the cached instance (args ignored).
    """

    _instances: dict[type, Any] = {}

    def __call__(cls, *args: Any, **kwargs: Any) -> Any:
        if cls not in cls._instances:
            cls._instances[cls] = super().__call__(*args, **kwargs)
        return cls._instances[cls]


# ---------------------------------------------------------------------------
# Settings dataclass (singleton)
# ---------------------------------------------------------------------------

@dataclass
class Settings(metaclass=_SettingsMeta):
    """Application settings: a singleton with runtime-mutable fields.

    Usage::

        settings = Settings.load()          # first call → create
        settings = Settings.load()          # later → same object
        settings.update(db_path=Path(...))  # runtime change
        settings = Settings.reload()        # re-read from disk
    """

    contact_email: Optional[str] = None
    db_path: Path = Path("papers.db")
    metadata_dir: Path = Path(".metadata")
    export_dir: Path = Path("exports")
    workers: int = 4

    # ── Per-call readers ──────────────────────────────────────────────

    @property
    def provider_path(self) -> Path:
        return self.metadata_dir / "provider.yaml"

    @property
    def profile_path(self) -> Path:
        return self.metadata_dir / "profile.yaml"

    def provider_config(self) -> ProviderConfig:
        """Read the provider selection from disk.

        Not cached: the operator may switch provider or key between uploads.
        """
        return load_provider_config(self.provider_path)

    def research_profile(self) -> ResearchProfile:
        """Read the research profile from disk."""
        return load_research_profile(self.profile_path)

    # ── Runtime helpers ───────────────────────────────────────────────

    def update(self, **kwargs: Any) -> None:
        """Mutate settings fields at runtime.

        >>> Settings.load().update(db_path=Path("/tmp/test.db"))
        """
        for key, value in kwargs.items():
            if not hasattr(self, key):
                raise AttributeError(f"Settings has no field '{key}'")
            setattr(self, key, value)

    # ── Factory / lifecycle ───────────────────────────────────────────

    @classmethod
    def load(cls, base_dir: Optional[Path] = None) -> "Settings":
        """Load or return the singleton Settings instance.

        On first call the singleton is created; subsequent calls return
        the cached instance.  Pass *base_dir* to override the project
        root (defaults to the current working directory).
        """
        if cls in _SettingsMeta._instances:
            return _SettingsMeta._instances[cls]  # type: ignore[return-value]

        if base_dir is None:
            base_dir = Path.cwd()

        metadata_dir = base_dir / ".metadata"
        cls._ensure_default_files(base_dir, metadata_dir)

        return cls(
            contact_email=_load_email(metadata_dir / "email.yaml"),
            db_path=base_dir / "papers.db",
            metadata_dir=metadata_dir,
            export_dir=base_dir / "exports",
        )

    @classmethod
    def reload(cls, base_dir: Optional[Path] = None) -> "Settings":
        """Discard the current singleton and re-load from disk."""
        cls.reset()
        return cls.load(base_dir)

    @classmethod
    def reset(cls) -> None:
        """Discard the singleton so the next ``load()`` re-creates it."""
        _SettingsMeta._instances.pop(cls, None)

    # ── Private ───────────────────────────────────────────────────────

    @staticmethod
    def _ensure_default_files(base_dir: Path, metadata_dir: Path) -> None:
        """Copy ``.metadata.example/`` templates when real files are missing."""
        metadata_dir.mkdir(parents=True, exist_ok=True)

        example_dir = base_dir / ".metadata.example"
        if not example_dir.exists():
            example_dir = Path(__file__).resolve().parent.parent / ".metadata.example"
        if not example_dir.exists():
            return

        for example_file in example_dir.iterdir():
            if example_file.is_file():
                target = metadata_dir / example_file.name
                if not target.exists():
                    shutil.copy2(example_file, target)
                    logger.info("Created .metadata/%s from template", example_file.name)


# ---------------------------------------------------------------------------
# YAML loaders
# ---------------------------------------------------------------------------

def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _load_email(path: Path) -> Optional[str]:
    """Load contact email from ``email.yaml``."""
    try:
        email = _read_yaml(path).get("contact_email")
    except yaml.YAMLError as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return None
    return email if email else None


def load_provider_config(path: Path) -> ProviderConfig:
    """Load the provider selection from ``provider.yaml``.

    A missing file yields the default (proxied provider, key from the
    environment).
    """
    return ProviderConfig.from_dict(_read_yaml(path))


def save_provider_config(path: Path, config: ProviderConfig) -> None:
    """Persist the provider selection to ``provider.yaml``."""
    data = {
        "provider": config.provider,
        "proxy_api_key": config.proxy_api_key,
        "gemini_api_key": config.gemini_api_key,
        "proxy_base_url": config.proxy_base_url,
        "proxy_model": config.proxy_model,
        "gemini_model": config.gemini_model,
        "temperature": config.temperature,
    }
    with open(path, "w", encoding="utf-8") as f:
        f.write("# Model provider: proxy (OpenAI-compatible LLM proxy) or gemini\n")
        f.write(f"# Empty keys fall back to ${PROXY_KEY_ENV} / ${GEMINI_KEY_ENV}\n\n")
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)


def load_research_profile(path: Path) -> ResearchProfile:
    """Load the research profile from ``profile.yaml``."""
    return ResearchProfile.from_dict(_read_yaml(path))


def save_research_profile(path: Path, profile: ResearchProfile) -> None:
    """Persist the research profile to ``profile.yaml``."""
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(
            profile.to_dict(),
            f,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )
