"""SQLite schema migrations and catalog seeding."""
from __future__ import annotations

import json
import os
import sqlite3
from typing import Iterable, Optional, Sequence

from config.catalog import SubjectAreaSeed, load_catalog
from config.settings import settings

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS candidates (
  candidate_id TEXT PRIMARY KEY,
  full_name TEXT NOT NULL,
  email TEXT,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS subject_areas (
  subject_area_id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL UNIQUE,
  area TEXT NOT NULL,
  description TEXT NOT NULL DEFAULT '',
  duration_years INTEGER,
  competencies_json TEXT NOT NULL DEFAULT '[]'
);
""",
    """
CREATE TABLE IF NOT EXISTS interview_sessions (
  session_id TEXT PRIMARY KEY,
  candidate_id TEXT NOT NULL,
  subject_area_id INTEGER NOT NULL,
  difficulty TEXT NOT NULL,
  state TEXT NOT NULL,
  history_json TEXT NOT NULL,
  score REAL,
  performance_level TEXT,
  strengths_json TEXT,
  improvement_areas_json TEXT,
  final_comment TEXT,
  duration_minutes INTEGER,
  evaluation_json TEXT,
  ai_evaluated INTEGER,
  started_at TEXT NOT NULL,
  completed_at TEXT,
  updated_at TEXT NOT NULL,
  version INTEGER NOT NULL DEFAULT 1
);
""",
    """
CREATE UNIQUE INDEX IF NOT EXISTS ux_interview_sessions_one_open
  ON interview_sessions(candidate_id)
  WHERE state IN ('started', 'in_progress');
""",
    """
CREATE INDEX IF NOT EXISTS ix_interview_sessions_candidate
  ON interview_sessions(candidate_id, started_at);
""",
    """
CREATE TABLE IF NOT EXISTS interview_audit (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  session_id TEXT NOT NULL,
  candidate_id TEXT NOT NULL,
  subject_area_id INTEGER NOT NULL,
  result TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS cvs (
  cv_id TEXT PRIMARY KEY,
  candidate_id TEXT NOT NULL,
  filename TEXT NOT NULL,
  content TEXT NOT NULL,
  status TEXT NOT NULL,
  uploaded_at TEXT NOT NULL,
  processed_at TEXT
);
""",
    """
CREATE TABLE IF NOT EXISTS skills (
  skill_id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  kind TEXT NOT NULL,
  UNIQUE(name, kind)
);
""",
    """
CREATE TABLE IF NOT EXISTS cv_skills (
  cv_id TEXT NOT NULL,
  skill_id INTEGER NOT NULL,
  level TEXT,
  PRIMARY KEY (cv_id, skill_id)
);
""",
    """
CREATE TABLE IF NOT EXISTS reports (
  report_id INTEGER PRIMARY KEY AUTOINCREMENT,
  cv_id TEXT NOT NULL UNIQUE,
  completeness_score REAL NOT NULL,
  validation_score REAL NOT NULL,
  analysis_json TEXT NOT NULL,
  ai_available INTEGER NOT NULL,
  created_at TEXT NOT NULL
);
""",
]


def migrate(db_path: str = "data/interview.db") -> None:
    """Apply schema migrations to the SQLite database."""

    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


def seed_subject_areas(db_path: str, seeds: Optional[Sequence[SubjectAreaSeed]] = None) -> int:
    """Insert catalog subject areas that are not stored yet; return how many were added."""

    if seeds is None:
        seeds = load_catalog(settings.SUBJECT_CATALOG_PATH)
    conn = sqlite3.connect(db_path)
    try:
        added = 0
        for seed in seeds:
            cur = conn.execute(
                """INSERT OR IGNORE INTO subject_areas
                   (name, area, description, duration_years, competencies_json)
                   VALUES (?, ?, ?, ?, ?)""",
                (seed.name, seed.area, seed.description, seed.duration_years, json.dumps(seed.competencies)),
            )
            added += cur.rowcount
        conn.commit()
        return added
    finally:
        conn.close()


if __name__ == "__main__":
    migrate(settings.DB_PATH)
    seed_subject_areas(settings.DB_PATH)
