"""File generation: variables, template rendering and output materialisation."""

from ritual_grove.generator.files import FileGenerator
from ritual_grove.generator.template import TemplateRenderer
from ritual_grove.generator.variables import Variables

__all__ = [
    "FileGenerator",
    "TemplateRenderer",
    "Variables",
]
