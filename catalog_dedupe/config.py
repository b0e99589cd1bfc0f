from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .core.matching import MatchOptions, SeriesVariationDetector


class SourceSettings(BaseModel):
    path: Optional[Path] = None
    format: Literal["auto", "csv", "json", "jsonl", "sqlite"] = "auto"
    id_field: str = "id"
    title_field: str = "title"
    order_field: Optional[str] = "created_at"
    author_field: Optional[str] = "author"
    order_type: Literal["text", "number", "datetime"] = "text"
    missing_title: Literal["error", "skip", "empty"] = "error"

    @field_validator("path", mode="before")
    @classmethod
    def _expand_path(cls, value: Optional[str | Path]) -> Optional[Path]:
        if value is None:
            return None
        return Path(value).expanduser().resolve()


class MatchingSettings(BaseModel):
    exact_match_always_groups: bool = True
    high_similarity_threshold: float = 0.95
    containment_threshold: float = 0.85
    review_threshold: float = 0.85
    exclude_series_variations: bool = True
    series_base_threshold: float = 0.8
    strategy: Literal["greedy", "transitive"] = "greedy"
    author_penalty: float = 0.0
    author_similarity_threshold: float = 0.7

    def to_options(self) -> MatchOptions:
        """Build validated matcher options (raises ConfigurationError)."""
        exclude = None
        if self.exclude_series_variations:
            exclude = SeriesVariationDetector(base_threshold=self.series_base_threshold)
        options = MatchOptions(
            exact_match_always_groups=self.exact_match_always_groups,
            high_similarity_threshold=self.high_similarity_threshold,
            containment_threshold=self.containment_threshold,
            exclude_variation=exclude,
            review_threshold=self.review_threshold,
            strategy=self.strategy,
            author_penalty=self.author_penalty,
            author_similarity_threshold=self.author_similarity_threshold,
        )
        options.validate()
        return options


class ReportSettings(BaseModel):
    output: Optional[Path] = Path("./duplicate_report.json")
    max_groups_displayed: int = Field(default=20, ge=0)

    @field_validator("output", mode="before")
    @classmethod
    def _expand_output(cls, value: Optional[str | Path]) -> Optional[Path]:
        if value is None:
            return None
        return Path(value).expanduser().resolve()


class StoreSettings(BaseModel):
    path: Path = Path("./catalog.sqlite3")

    @field_validator("path", mode="before")
    @classmethod
    def _expand_store(cls, value: str | Path) -> Path:
        return Path(value).expanduser().resolve()


class Settings(BaseModel):
    source: SourceSettings = SourceSettings()
    matching: MatchingSettings = MatchingSettings()
    report: ReportSettings = ReportSettings()
    store: StoreSettings = StoreSettings()

    @classmethod
    def load(cls, path: Optional[Path]) -> "Settings":
        if path is None:
            return cls()
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        if not explicit_path.exists():
            raise FileNotFoundError(f"Config file not found: {explicit_path}")
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    return None
