"""Questionnaire flow: which question comes next, and when are we done.

``QuestionFlow`` tracks per-question state and stored answers;
``Controller`` walks a manifest's ordered question list over that state,
evaluating conditions and validating submissions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ritual_grove.errors import AnswerValidationError, ConfigurationError
from ritual_grove.manifest import Question
from ritual_grove.questionnaire.condition import ConditionEvaluator
from ritual_grove.questionnaire.validator import Validator
from ritual_grove.values import AnswerValue

logger = logging.getLogger(__name__)


class QuestionState(str, Enum):
    NOT_REACHED = "not_reached"
    ACTIVE = "active"
    ANSWERED = "answered"
    SKIPPED = "skipped"


@dataclass
class AnswerRecord:
    """A submitted answer.  Invalid answers are kept for display only."""
    value: Any
    is_valid: bool = True
    error: str = ""


class QuestionFlow:
    """Per-question state and answer storage for one run."""

    def __init__(self, names: list[str] | None = None) -> None:
        self._states: dict[str, QuestionState] = {}
        self._answers: dict[str, AnswerRecord] = {}
        for name in names or []:
            self.add_question(name)

    def add_question(self, name: str) -> None:
        self._states[name] = QuestionState.NOT_REACHED

    def get_state(self, name: str) -> QuestionState:
        return self._states.get(name, QuestionState.NOT_REACHED)

    def set_state(self, name: str, state: QuestionState) -> None:
        self._states[name] = state

    def set_answer(self, name: str, value: Any) -> None:
        self._answers[name] = AnswerRecord(value=value)
        self._states[name] = QuestionState.ANSWERED

    def set_invalid_answer(self, name: str, value: Any, error: str) -> None:
        self._answers[name] = AnswerRecord(value=value, is_valid=False, error=error)

    def get_answer(self, name: str) -> Optional[AnswerRecord]:
        return self._answers.get(name)

    def all_answers(self) -> dict[str, AnswerValue]:
        """Return valid answers only, in submission order."""
        return {name: record.value for name, record in self._answers.items() if record.is_valid}


class Controller:
    """Drives a questionnaire over an ordered list of questions.

    Typical use::

        controller = Controller(manifest.questions)
        while (question := controller.get_next_question()) is not None:
            controller.submit_answer(question.name, ask(question))
        answers = controller.get_answers()
    """

    def __init__(
        self,
        questions: list[Question],
        *,
        evaluator: ConditionEvaluator | None = None,
        validator: Validator | None = None,
    ) -> None:
        names = [q.name for q in questions]
        if len(set(names)) != len(names):
            raise ConfigurationError("question names must be unique")
        self.questions = list(questions)
        self.evaluator = evaluator or ConditionEvaluator()
        self.validator = validator or Validator()
        self.flow = QuestionFlow(names)

    # -- Navigation -----------------------------------------------------------

    def get_next_question(self) -> Optional[Question]:
        """Return the next question to ask, or ``None`` when nothing is left.

        Questions whose condition does not hold are marked skipped on the
        way.  Skipped questions are re-evaluated on every call, so one
        becomes askable again once a later or revised answer satisfies its
        condition.

        Raises:
            ConditionParseError: If a question's condition is malformed.
        """
        for question in self.questions:
            if self.flow.get_state(question.name) is QuestionState.ANSWERED:
                continue

            if question.condition is not None:
                if not self.evaluator.evaluate(question.condition, self.flow.all_answers()):
                    logger.debug("Skipping question %s: condition not met", question.name)
                    self.flow.set_state(question.name, QuestionState.SKIPPED)
                    continue

            self.flow.set_state(question.name, QuestionState.ACTIVE)
            return question
        return None

    def submit_answer(self, name: str, value: Any) -> None:
        """Validate and store an answer.

        Raises:
            ConfigurationError: If no question is called *name*.
            AnswerValidationError: If the value is rejected; the value is
                stored as invalid and the question stays unanswered.
        """
        question = self.get_question(name)
        if question is None:
            raise ConfigurationError(f"question not found: {name}")

        try:
            self.validator.validate(question, value)
        except AnswerValidationError as exc:
            logger.debug("Answer for %s rejected: %s", name, exc)
            self.flow.set_invalid_answer(name, value, str(exc))
            raise

        self.flow.set_answer(name, value)

    # -- Inspection -----------------------------------------------------------

    def get_question(self, name: str) -> Optional[Question]:
        for question in self.questions:
            if question.name == name:
                return question
        return None

    def get_state(self, name: str) -> QuestionState:
        return self.flow.get_state(name)

    def get_answer_record(self, name: str) -> Optional[AnswerRecord]:
        return self.flow.get_answer(name)

    def get_answers(self) -> dict[str, AnswerValue]:
        return self.flow.all_answers()

    def get_progress(self) -> tuple[int, int]:
        """Return ``(answered, total)``."""
        answered = sum(
            1 for q in self.questions if self.flow.get_state(q.name) is QuestionState.ANSWERED
        )
        return answered, len(self.questions)

    def missing_required(self) -> list[str]:
        """Names of required questions whose condition holds but which are unanswered."""
        answers = self.flow.all_answers()
        missing = []
        for question in self.questions:
            if not question.required or self.flow.get_state(question.name) is QuestionState.ANSWERED:
                continue
            if question.condition is not None and not self.evaluator.evaluate(question.condition, answers):
                continue
            missing.append(question.name)
        return missing

    def is_complete(self) -> bool:
        """True when every applicable required question has been answered."""
        return not self.missing_required()

    def reset(self) -> None:
        """Forget every state and answer."""
        self.flow = QuestionFlow([q.name for q in self.questions])
