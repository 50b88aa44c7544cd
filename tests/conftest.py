"""Shared pytest fixtures for the ritual-grove test suite.

Provides reusable fixtures for:
- A complete ritual tree (manifest, templates, static files, _shared/)
- The parsed sample manifest
- A fixed clock for computed variables
- Isolation from RITUAL_* environment variables
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
import yaml

from ritual_grove.manifest import Manifest


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_ritual_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep RITUAL_* variables from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("RITUAL_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 9, 12, 30, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Sample manifest
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_manifest_data() -> dict[str, Any]:
    """A blog ritual exercising conditions, shared templates and migrations."""
    return {
        "ritual": {"name": "blog", "version": "1.1.0", "description": "A small blog"},
        "questions": [
            {
                "name": "app_name",
                "prompt": "Application name",
                "type": "text",
                "required": True,
                "default": "my-app",
                "validate": {"pattern": "^[a-z][a-z0-9-]*$"},
            },
            {"name": "use_db", "prompt": "Use a database?", "type": "boolean", "default": True},
            {
                "name": "db_type",
                "prompt": "Database",
                "type": "choice",
                "choices": ["postgres", "mysql", "sqlite"],
                "default": "postgres",
                "condition": {"field": "use_db", "equals": True},
            },
            {
                "name": "db_password",
                "prompt": "Database password",
                "type": "password",
                "condition": "use_db && db_type != 'sqlite'",
            },
            {"name": "port", "prompt": "HTTP port", "type": "number", "default": 8080,
             "validate": {"min": 1024, "max": 65535}},
        ],
        "files": {
            "directories": ["logs", "[[ app_name ]]/data"],
            "templates": [
                {"src": "README.md.tmpl", "dest": "README.md"},
                {"src": "config", "dest": "config"},
                {"src": "db.yaml.tmpl", "dest": "config/[[ db_type ]].yaml", "condition": "use_db"},
                {"src": "_shared:Dockerfile", "dest": "Dockerfile"},
                {"src": "missing.tmpl", "dest": "missing.txt", "optional": True},
            ],
            "static": [
                {"src": "run.sh", "dest": "bin/run.sh"},
            ],
            "protected": ["config/settings.yaml"],
        },
        "migrations": [
            {
                "from_version": "1.0.0",
                "to_version": "1.1.0",
                "description": "Add posts table",
                "up": {"sql": ["CREATE TABLE posts (id INTEGER PRIMARY KEY, title TEXT)"]},
                "down": {"sql": ["DROP TABLE posts"]},
            },
        ],
    }


@pytest.fixture
def sample_manifest(sample_manifest_data: dict[str, Any]) -> Manifest:
    return Manifest.model_validate(sample_manifest_data)


# ---------------------------------------------------------------------------
# Ritual tree on disk
# ---------------------------------------------------------------------------


@pytest.fixture
def ritual_dir(tmp_path: Path, sample_manifest_data: dict[str, Any]) -> Path:
    """A ritual directory with a sibling ``_shared/`` library.

    Layout::

        rituals/
          _shared/Dockerfile
          blog/
            ritual.yaml
            templates/README.md.tmpl
            templates/db.yaml.tmpl
            templates/config/settings.yaml.tmpl
            templates/config/nested/app.env.tmpl
            static/run.sh            (mode 0755)
    """
    rituals = tmp_path / "rituals"
    ritual = rituals / "blog"
    templates = ritual / "templates"
    static = ritual / "static"
    shared = rituals / "_shared"
    for directory in (templates / "config" / "nested", static, shared):
        directory.mkdir(parents=True)

    (ritual / "ritual.yaml").write_text(
        yaml.safe_dump(sample_manifest_data, sort_keys=False), encoding="utf-8"
    )
    (templates / "README.md.tmpl").write_text(
        "# [[ app_name ]]\nModule: [[ snake(app_name) ]]\n", encoding="utf-8"
    )
    (templates / "db.yaml.tmpl").write_text("driver: [[ db_type ]]\n", encoding="utf-8")
    (templates / "config" / "settings.yaml.tmpl").write_text(
        "name: [[ app_name ]]\nport: [[ port ]]\n", encoding="utf-8"
    )
    (templates / "config" / "nested" / "app.env.tmpl").write_text(
        "APP_NAME=[[ app_name | upper ]]\n", encoding="utf-8"
    )
    (shared / "Dockerfile").write_text(
        "FROM python:3.12-slim\nLABEL app=[[ app_name ]]\n", encoding="utf-8"
    )
    run_sh = static / "run.sh"
    run_sh.write_text("#!/bin/sh\necho '{{ not a template }}'\n", encoding="utf-8")
    run_sh.chmod(0o755)
    return ritual


@pytest.fixture
def sample_answers() -> dict[str, Any]:
    return {
        "app_name": "my-app",
        "use_db": True,
        "db_type": "postgres",
        "db_password": "s3cret",
        "port": 8080,
    }
