"""YAML-driven seed catalog of subject areas (career tracks)."""
from __future__ import annotations

from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field


class SubjectAreaSeed(BaseModel):
    """Subject area definition as written in the catalog file."""

    name: str
    area: str
    description: str = ""
    duration_years: int = Field(default=3, ge=1)
    competencies: List[str] = Field(default_factory=list)


def load_catalog(path: str | Path) -> List[SubjectAreaSeed]:
    """Parse the catalog file, returning an empty list when it does not exist."""

    catalog_path = Path(path)
    if not catalog_path.exists():
        return []
    with open(catalog_path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    entries = data.get("subject_areas", [])
    return [SubjectAreaSeed.model_validate(entry) for entry in entries]


__all__ = ["SubjectAreaSeed", "load_catalog"]
