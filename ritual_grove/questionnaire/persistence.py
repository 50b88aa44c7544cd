"""Saving and re-loading questionnaire answers as YAML.

Secret answers are never written in clear text: ``save_with_secrets``
replaces them with a placeholder naming the environment variable that
``load_with_secrets`` reads them back from.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from ritual_grove.errors import ConfigurationError

SECRET_PLACEHOLDER = "<SECRET_FROM_ENV>"


def env_var_name(field: str) -> str:
    """``db_password`` -> ``DB_PASSWORD``."""
    return field.upper()


class AnswerPersistence:
    """Reads and writes an answers file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def save(self, answers: dict[str, Any]) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(dict(answers), sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        return self.path

    def load(self) -> dict[str, Any]:
        """Load answers.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If the file does not hold a mapping.
        """
        data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"answers file {self.path} must contain a mapping")
        return data

    def save_with_secrets(self, answers: dict[str, Any], secret_fields: list[str]) -> Path:
        secrets = set(secret_fields)
        masked = {
            key: f"{SECRET_PLACEHOLDER} (from ${env_var_name(key)})" if key in secrets else value
            for key, value in answers.items()
        }
        return self.save(masked)

    def load_with_secrets(self, secret_env: dict[str, str]) -> dict[str, Any]:
        """Load answers, restoring secrets from ``{field: ENV_VAR}``.

        Masked secrets whose variable is unset are dropped so they get asked
        again instead of leaking the placeholder into templates.
        """
        answers = self.load()
        for field, env_var in secret_env.items():
            if env_var in os.environ:
                answers[field] = os.environ[env_var]
            elif isinstance(answers.get(field), str) and SECRET_PLACEHOLDER in answers[field]:
                del answers[field]
        return answers

    def exists(self) -> bool:
        return self.path.exists()

    def delete(self) -> None:
        if self.exists():
            self.path.unlink()
