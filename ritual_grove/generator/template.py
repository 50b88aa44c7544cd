"""Jinja2 template rendering for ritual files.

Provides the TemplateRenderer class which renders template text (or a
template file) against the variable store.  Delimiters default to ``[[ ]]``
for expressions and ``[% %]`` for blocks so that the ``{{ }}`` braces common
in generated code pass through untouched.

Case helpers are exposed both as filters and as functions::

    [[ app_name | snake ]]      [[ pascal(app_name) ]]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from jinja2 import Environment, StrictUndefined, TemplateError, TemplateSyntaxError, Undefined, UndefinedError

from ritual_grove.errors import RenderError
from ritual_grove.generator.case import (
    to_camel_case,
    to_kebab_case,
    to_pascal_case,
    to_snake_case,
    to_title_case,
)

DEFAULT_VARIABLE_START = "[["
DEFAULT_VARIABLE_END = "]]"
DEFAULT_BLOCK_START = "[%"
DEFAULT_BLOCK_END = "%]"
DEFAULT_COMMENT_START = "[#"
DEFAULT_COMMENT_END = "#]"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders delimited templates with the built-in case helpers.

    Any reference to an unknown variable is an error rather than an empty
    string, and no partial output is ever returned.  File-mapping
    conditions are the exception: ``render_condition`` treats an unknown
    variable as empty, so an absent answer reads as false.
    """

    def __init__(
        self,
        variable_start: str = DEFAULT_VARIABLE_START,
        variable_end: str = DEFAULT_VARIABLE_END,
        block_start: str = DEFAULT_BLOCK_START,
        block_end: str = DEFAULT_BLOCK_END,
    ) -> None:
        self.variable_start = variable_start
        self.variable_end = variable_end
        self.block_start = block_start
        self.block_end = block_end
        self.env = self._build_environment(StrictUndefined)
        self.condition_env = self._build_environment(Undefined)

    def _build_environment(self, undefined: type[Undefined]) -> Environment:
        env = Environment(
            variable_start_string=self.variable_start,
            variable_end_string=self.variable_end,
            block_start_string=self.block_start,
            block_end_string=self.block_end,
            comment_start_string=DEFAULT_COMMENT_START,
            comment_end_string=DEFAULT_COMMENT_END,
            undefined=undefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Register helpers as filters and as callables
        for name, fn in HELPERS.items():
            env.filters[name] = fn
            env.globals[name] = fn
        return env

    def has_markup(self, text: str) -> bool:
        """Return ``True`` if *text* contains expression or block delimiters."""
        return self.variable_start in text or self.block_start in text

    # -- Rendering -------------------------------------------------------------

    def render(self, template_text: str, variables: Mapping[str, Any], *, name: str = "<string>") -> str:
        """Render *template_text* with *variables*.

        Args:
            template_text: The template source.
            variables: Values available inside the template.
            name: Identifies the template in error messages.

        Raises:
            RenderError: On syntax errors or references to unknown variables.
        """
        return self._render(self.env, template_text, variables, name)

    def render_condition(self, condition: str, variables: Mapping[str, Any], *, name: str = "condition") -> str:
        """Render a file-mapping condition; unknown variables render empty.

        Raises:
            RenderError: On syntax errors.
        """
        return self._render(self.condition_env, condition, variables, name)

    def _render(self, env: Environment, template_text: str, variables: Mapping[str, Any], name: str) -> str:
        try:
            template = env.from_string(template_text)
            return template.render(**dict(variables))
        except TemplateSyntaxError as exc:
            raise RenderError(name, f"syntax error on line {exc.lineno}: {exc.message}") from exc
        except UndefinedError as exc:
            raise RenderError(name, f"missing variable: {exc.message}") from exc
        except TemplateError as exc:
            raise RenderError(name, str(exc)) from exc

    def render_file(self, template_path: str | Path, variables: Mapping[str, Any]) -> str:
        """Read a template file and render it.

        Raises:
            RenderError: If rendering fails.
            OSError: If the file cannot be read.
        """
        path = Path(template_path)
        return self.render(path.read_text(encoding="utf-8"), variables, name=str(path))


# ---------------------------------------------------------------------------
# Helpers exposed to templates
# ---------------------------------------------------------------------------


def _upper(value: Any) -> str:
    return str(value).upper()


def _lower(value: Any) -> str:
    return str(value).lower()


HELPERS = {
    "upper": _upper,
    "lower": _lower,
    "title": lambda value: to_title_case(str(value)),
    "pascal": lambda value: to_pascal_case(str(value)),
    "camel": lambda value: to_camel_case(str(value)),
    "snake": lambda value: to_snake_case(str(value)),
    "kebab": lambda value: to_kebab_case(str(value)),
}
