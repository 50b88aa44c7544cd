"""Collecting answers for a questionnaire.

``AnswerCollector`` walks a ``Controller`` and takes each answer from, in
order: a pre-supplied mapping (usually an answers file), the question's
evaluated default when ``use_defaults`` is set, or an interactive prompt.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt

from ritual_grove.errors import AnswerValidationError
from ritual_grove.manifest import Question, QuestionType
from ritual_grove.questionnaire.controller import Controller
from ritual_grove.questionnaire.helpers import run_helper
from ritual_grove.questionnaire.validator import convert_value
from ritual_grove.values import stringify

logger = logging.getLogger(__name__)

AskFunc = Callable[[Question, Any], Any]


class AnswerCollector:
    """Fills a controller with answers.

    Args:
        controller: The questionnaire to drive.
        answers: Pre-supplied answers keyed by question name.
        use_defaults: Accept evaluated defaults without prompting.
        ask: Prompt function ``(question, default) -> value``; defaults to a
            rich console prompt.
        max_attempts: How many times an interactive answer may be retried.
    """

    def __init__(
        self,
        controller: Controller,
        answers: Optional[dict[str, Any]] = None,
        *,
        use_defaults: bool = False,
        ask: Optional[AskFunc] = None,
        console: Optional[Console] = None,
        max_attempts: int = 3,
        run_helpers: bool = True,
    ) -> None:
        self.controller = controller
        self.answers = dict(answers or {})
        self.use_defaults = use_defaults
        self.console = console or Console()
        self.ask = ask or self._ask_interactive
        self.max_attempts = max_attempts
        self.run_helpers = run_helpers

    def collect(self) -> dict[str, Any]:
        """Answer every applicable question and return the valid answers.

        Raises:
            AnswerValidationError: If a pre-supplied or default answer is
                invalid, or an interactive answer keeps failing.
        """
        current_group = ""
        while (question := self.controller.get_next_question()) is not None:
            if question.group and question.group != current_group:
                current_group = question.group
                self.console.rule(f"[bold cyan]{current_group}[/bold cyan]")

            default = self.controller.evaluator.evaluate_default(
                question.default, self.controller.get_answers()
            )

            if question.name in self.answers:
                self._submit(question, self.answers[question.name])
            elif self.use_defaults and default is not None:
                self._submit(question, default)
            elif not self.use_defaults or question.required:
                self._ask_until_valid(question, default)
            else:
                self._submit(question, "" if question.type is not QuestionType.MULTI_CHOICE else [])

        return self.controller.get_answers()

    def _submit(self, question: Question, value: Any) -> None:
        logger.debug("Submitting answer for %s", question.name)
        if self.run_helpers and question.helper is not None and value not in (None, ""):
            try:
                run_helper(question.helper, value)
            except ValueError as exc:
                raise AnswerValidationError(question.name, str(exc)) from exc
        self.controller.submit_answer(question.name, value)

    def _ask_until_valid(self, question: Question, default: Any) -> None:
        for attempt in range(1, self.max_attempts + 1):
            value = self.ask(question, default)
            try:
                self._submit(question, value)
                return
            except AnswerValidationError as exc:
                if attempt == self.max_attempts:
                    raise
                self.console.print(f"[bold red]{exc}[/bold red]")

    def _ask_interactive(self, question: Question, default: Any) -> Any:
        message = question.prompt or question.name
        if question.required:
            message += " *"
        if question.help:
            self.console.print(f"[dim]{question.help}[/dim]")

        if question.type is QuestionType.BOOLEAN:
            return Confirm.ask(message, default=bool(default), console=self.console)

        kwargs: dict[str, Any] = {"console": self.console}
        if default is not None:
            kwargs["default"] = _default_text(default)
        if question.type is QuestionType.CHOICE and question.choices:
            return Prompt.ask(message, choices=question.choices, **kwargs)

        raw = Prompt.ask(message, password=question.type is QuestionType.PASSWORD, **kwargs)
        try:
            return convert_value(raw or "", question.type)
        except ValueError:
            return raw


def _default_text(default: Any) -> Optional[str]:
    if default is None:
        return None
    if isinstance(default, (list, tuple)):
        return ", ".join(stringify(item) for item in default)
    return stringify(default)
