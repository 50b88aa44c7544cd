"""Ritual Grove: declarative project generation.

A ritual is a directory holding a ``ritual.yaml`` manifest plus ``templates/``
and ``static/`` sources.  The engine asks the manifest's questions, renders
the file mappings against the answers and, for existing projects, runs the
declared version migrations.

Quick usage::

    from ritual_grove import Manifest, Controller, AnswerCollector, Variables, FileGenerator

    manifest = Manifest.load("rituals/blog")
    controller = Controller(manifest.questions)
    answers = AnswerCollector(controller, {"app_name": "my-blog"}, use_defaults=True).collect()

    variables = Variables()
    variables.set_from_answers(answers)
    variables.add_computed()
    FileGenerator(variables).generate_files(manifest, "rituals/blog", "./my-blog")
"""

from ritual_grove.config import GeneratorConfig
from ritual_grove.errors import (
    AnswerValidationError,
    ConditionParseError,
    ConfigurationError,
    GenerationError,
    MigrationError,
    RenderError,
    RitualError,
    SourceNotFoundError,
)
from ritual_grove.generator import FileGenerator, TemplateRenderer, Variables
from ritual_grove.manifest import Manifest, Migration, Question, QuestionType
from ritual_grove.migration import MigrationRecord, MigrationRunner, MigrationStatus
from ritual_grove.questionnaire import AnswerCollector, ConditionEvaluator, Controller, Validator

__version__ = "0.1.0"

__all__ = [
    "AnswerCollector",
    "AnswerValidationError",
    "ConditionEvaluator",
    "ConditionParseError",
    "ConfigurationError",
    "Controller",
    "FileGenerator",
    "GenerationError",
    "GeneratorConfig",
    "Manifest",
    "Migration",
    "MigrationError",
    "MigrationRecord",
    "MigrationRunner",
    "MigrationStatus",
    "Question",
    "QuestionType",
    "RenderError",
    "RitualError",
    "SourceNotFoundError",
    "TemplateRenderer",
    "Validator",
    "Variables",
]
