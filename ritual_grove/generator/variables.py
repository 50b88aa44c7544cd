"""The variable store consumed by every renderer.

Holds questionnaire answers plus environment-derived and computed values.
Keys are case-sensitive; iteration follows insertion order so logs and
serialised snapshots are deterministic.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from ritual_grove.generator.case import (
    to_camel_case,
    to_kebab_case,
    to_pascal_case,
    to_snake_case,
    to_title_case,
)
from ritual_grove.values import stringify, to_bool

SECRET_MARKERS = ("password", "secret", "token")
MASK = "***"


class Variables:
    """Mutable key/value store for one generation run."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def get_string(self, key: str) -> str:
        return stringify(self._data[key]) if key in self._data else ""

    def get_bool(self, key: str) -> bool:
        return key in self._data and to_bool(self._data[key])

    def set_from_answers(self, answers: Mapping[str, Any]) -> None:
        self._data.update(answers)

    def set_from_environment(self, prefix: str = "") -> None:
        """Import environment variables.

        With a *prefix*, only matching variables are imported and the prefix
        is stripped.  Keys are lower-cased.
        """
        for key, value in os.environ.items():
            if prefix:
                if not key.startswith(prefix):
                    continue
                key = key[len(prefix):]
            if key:
                self._data[key.lower()] = value

    def add_computed(self, now: datetime | None = None) -> None:
        """Add timestamps and case-transformed variants of existing keys.

        For every key present before the call, ``<key>_upper``, ``_lower``,
        ``_title``, ``_pascal``, ``_camel``, ``_snake`` and ``_kebab`` are
        added.
        """
        moment = now or datetime.now(timezone.utc)
        existing = list(self._data.items())

        self._data["now"] = moment.isoformat(timespec="seconds")
        self._data["timestamp"] = int(moment.timestamp())
        self._data["year"] = moment.year

        for key, value in existing:
            text = stringify(value)
            self._data[f"{key}_upper"] = text.upper()
            self._data[f"{key}_lower"] = text.lower()
            self._data[f"{key}_title"] = to_title_case(text)
            self._data[f"{key}_pascal"] = to_pascal_case(text)
            self._data[f"{key}_camel"] = to_camel_case(text)
            self._data[f"{key}_snake"] = to_snake_case(text)
            self._data[f"{key}_kebab"] = to_kebab_case(text)

    def all(self) -> dict[str, Any]:
        """Return a shallow copy of every variable."""
        return dict(self._data)

    def mask_secrets(self, secret_keys: Iterable[str] = ()) -> dict[str, Any]:
        """Return a copy safe for logging, with secret-looking values masked."""
        explicit = set(secret_keys)
        masked: dict[str, Any] = {}
        for key, value in self._data.items():
            lowered = key.lower()
            if key in explicit or any(marker in lowered for marker in SECRET_MARKERS):
                masked[key] = MASK
            else:
                masked[key] = value
        return masked
