"""Questionnaire flow: conditions, validation, answer collection and persistence.

Usage::

    from ritual_grove.questionnaire import Controller

    controller = Controller(manifest.questions)
    while (question := controller.get_next_question()) is not None:
        controller.submit_answer(question.name, ask(question))
"""

from ritual_grove.questionnaire.condition import ConditionEvaluator, parse_expression
from ritual_grove.questionnaire.controller import AnswerRecord, Controller, QuestionFlow, QuestionState
from ritual_grove.questionnaire.persistence import AnswerPersistence
from ritual_grove.questionnaire.prompts import AnswerCollector
from ritual_grove.questionnaire.validator import Validator, convert_value

__all__ = [
    "AnswerCollector",
    "AnswerPersistence",
    "AnswerRecord",
    "ConditionEvaluator",
    "Controller",
    "QuestionFlow",
    "QuestionState",
    "Validator",
    "convert_value",
    "parse_expression",
]
