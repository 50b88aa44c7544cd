"""Pydantic v2 models for a parsed ritual manifest.

A manifest (``ritual.yaml``) describes the questions asked before
generation, the template and static file mappings, and the ordered list of
version migrations.  The engine treats a loaded ``Manifest`` as read-only.

Conditions are modelled as a closed set of frozen dataclasses so the
evaluator can dispatch on the node type instead of probing optional fields.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional, Union

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PlainValidator,
    ValidationError,
    field_validator,
    model_validator,
)

from ritual_grove.errors import ConfigurationError


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldCondition:
    """Compare one answer against an expected value.

    With neither ``equals`` nor ``not_equals`` set, the answer is tested for
    truthiness instead.
    """

    field: str
    equals: Any = None
    not_equals: Any = None


@dataclass(frozen=True)
class ExpressionCondition:
    """A condition written in the minimal expression grammar."""

    expression: str


@dataclass(frozen=True)
class AllOf:
    conditions: tuple[Condition, ...]


@dataclass(frozen=True)
class AnyOf:
    conditions: tuple[Condition, ...]


@dataclass(frozen=True)
class NotCondition:
    condition: Condition


Condition = Union[FieldCondition, ExpressionCondition, AllOf, AnyOf, NotCondition]

_CONDITION_TYPES = (FieldCondition, ExpressionCondition, AllOf, AnyOf, NotCondition)
_CONDITION_KINDS = ("field", "expression", "and", "or", "not")


def parse_condition(raw: Any) -> Optional[Condition]:
    """Build a condition tree from its manifest representation.

    Accepts ``None``, an existing condition node, a bare expression string or
    a mapping with exactly one of ``field``, ``expression``, ``and``, ``or``
    and ``not``.  An empty mapping or string means "always".

    Raises:
        ConfigurationError: If the mapping mixes kinds or has unknown keys.
    """
    if raw is None or isinstance(raw, _CONDITION_TYPES):
        return raw
    if isinstance(raw, str):
        return ExpressionCondition(raw) if raw.strip() else None
    if not isinstance(raw, dict):
        raise ConfigurationError(f"condition must be a mapping or string, got {type(raw).__name__}")
    if not raw:
        return None

    allowed = set(_CONDITION_KINDS) | {"equals", "not_equals"}
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise ConfigurationError(f"unknown condition keys: {', '.join(unknown)}")

    kinds = [kind for kind in _CONDITION_KINDS if kind in raw]
    if len(kinds) != 1:
        raise ConfigurationError(
            f"condition must define exactly one of {', '.join(_CONDITION_KINDS)} (got {kinds or 'none'})"
        )
    kind = kinds[0]

    if kind != "field" and ("equals" in raw or "not_equals" in raw):
        raise ConfigurationError("equals/not_equals are only valid together with field")

    if kind == "field":
        return FieldCondition(
            field=str(raw["field"]),
            equals=raw.get("equals"),
            not_equals=raw.get("not_equals"),
        )
    if kind == "expression":
        return ExpressionCondition(str(raw["expression"]))
    if kind == "not":
        inner = parse_condition(raw["not"])
        if inner is None:
            raise ConfigurationError("not condition requires a sub-condition")
        return NotCondition(inner)

    items = raw[kind]
    if not isinstance(items, list) or not items:
        raise ConfigurationError(f"{kind} condition requires a non-empty list")
    children = []
    for item in items:
        child = parse_condition(item)
        if child is None:
            raise ConfigurationError(f"{kind} condition contains an empty sub-condition")
        children.append(child)
    return AllOf(tuple(children)) if kind == "and" else AnyOf(tuple(children))


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


class QuestionType(str, Enum):
    """Kinds of answer a question accepts."""
    TEXT = "text"
    PASSWORD = "password"
    CHOICE = "choice"
    MULTI_CHOICE = "multi_choice"
    BOOLEAN = "boolean"
    NUMBER = "number"
    PATH = "path"
    URL = "url"
    EMAIL = "email"


class ValidationRule(BaseModel):
    """Extra constraints applied after the type check."""
    pattern: str = Field(default="", description="Regular expression the answer must match")
    min: Optional[float] = None
    max: Optional[float] = None
    min_len: Optional[int] = Field(default=None, validation_alias=AliasChoices("min_len", "minLen"))
    max_len: Optional[int] = Field(default=None, validation_alias=AliasChoices("max_len", "maxLen"))
    custom: str = Field(default="", description="Name of a registered custom validator")


class QuestionHelper(BaseModel):
    """An optional check offered alongside a question (url_check, path_check, ...)."""
    type: str
    config: dict[str, Any] = Field(default_factory=dict)


class Question(BaseModel):
    """An interactive prompt whose answer becomes a template variable."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    prompt: str = ""
    type: QuestionType = QuestionType.TEXT
    required: bool = False
    default: Any = None
    choices: list[str] = Field(default_factory=list)
    validation: Optional[ValidationRule] = Field(default=None, alias="validate")
    condition: Annotated[Any, PlainValidator(parse_condition)] = None
    helper: Optional[QuestionHelper] = None
    group: str = ""
    help: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_")
        return value


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class FileMapping(BaseModel):
    """Maps a template or static source onto a destination path."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(..., alias="src")
    destination: str = Field(..., alias="dest")
    optional: bool = False
    condition: str = ""


class FilesSection(BaseModel):
    templates: list[FileMapping] = Field(default_factory=list)
    static: list[FileMapping] = Field(default_factory=list)
    directories: list[str] = Field(default_factory=list)
    protected: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


class MigrationHandler(BaseModel):
    """One direction of a migration: SQL statements, a script or inline code."""

    sql: list[str] = Field(default_factory=list)
    script: str = ""
    code: str = Field(default="", validation_alias=AliasChoices("code", "go_code"))

    def kinds(self) -> list[str]:
        """Return the names of the populated handler kinds."""
        populated = []
        if self.sql:
            populated.append("sql")
        if self.script:
            populated.append("script")
        if self.code:
            populated.append("code")
        return populated

    def is_empty(self) -> bool:
        return not self.kinds()


class Migration(BaseModel):
    """A declared transition between two ritual versions."""
    from_version: str
    to_version: str
    description: str = ""
    up: MigrationHandler = Field(default_factory=MigrationHandler)
    down: MigrationHandler = Field(default_factory=MigrationHandler)
    idempotent: bool = False


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class RitualMeta(BaseModel):
    name: str = ""
    version: str = ""
    description: str = ""
    author: str = ""
    template_engine: str = ""


class Manifest(BaseModel):
    """A parsed ritual recipe."""

    model_config = ConfigDict(frozen=True)

    ritual: RitualMeta = Field(default_factory=RitualMeta)
    questions: list[Question] = Field(default_factory=list)
    files: FilesSection = Field(default_factory=FilesSection)
    migrations: list[Migration] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_question_names(self) -> "Manifest":
        seen: set[str] = set()
        for question in self.questions:
            if question.name in seen:
                raise ValueError(f"duplicate question name: {question.name}")
            seen.add(question.name)
        return self

    @classmethod
    def load(cls, path: str | Path) -> "Manifest":
        """Load a manifest from a YAML or JSON file.

        A directory is accepted too, in which case ``ritual.yaml`` (or
        ``ritual.yml`` / ``ritual.json``) inside it is read.
        """
        manifest_path = Path(path)
        if manifest_path.is_dir():
            for candidate in ("ritual.yaml", "ritual.yml", "ritual.json"):
                if (manifest_path / candidate).is_file():
                    manifest_path = manifest_path / candidate
                    break
            else:
                raise ConfigurationError(f"no ritual manifest found in {path}")

        raw = manifest_path.read_text(encoding="utf-8")
        try:
            if manifest_path.suffix == ".json":
                data = json.loads(raw)
            else:
                data = yaml.safe_load(raw) or {}
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"invalid manifest {manifest_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"manifest {manifest_path} must contain a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"invalid manifest {manifest_path}: {exc}") from exc
