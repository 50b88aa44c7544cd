"""Unit tests for AnswerCollector (ritual_grove.questionnaire.prompts).

The interactive prompt is replaced by an injected ``ask`` function.
"""

from __future__ import annotations

import io
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from ritual_grove.errors import AnswerValidationError
from ritual_grove.manifest import Manifest, Question
from ritual_grove.questionnaire.controller import Controller, QuestionState
from ritual_grove.questionnaire.prompts import AnswerCollector

pytestmark = pytest.mark.unit


@pytest.fixture
def quiet_console() -> Console:
    return Console(file=io.StringIO(), force_terminal=False)


def _scripted(responses: dict[str, list[Any]]) -> MagicMock:
    """An ask function returning queued responses per question name."""
    queues = {name: list(values) for name, values in responses.items()}

    def ask(question: Question, default: Any) -> Any:
        return queues[question.name].pop(0)

    return MagicMock(side_effect=ask)


class TestPreSuppliedAnswers:
    def test_uses_supplied_answers_without_asking(self, sample_manifest: Manifest, sample_answers, quiet_console):
        ask = _scripted({})
        controller = Controller(sample_manifest.questions)
        collected = AnswerCollector(controller, sample_answers, ask=ask, console=quiet_console).collect()

        assert collected == sample_answers
        ask.assert_not_called()
        assert controller.is_complete()

    def test_invalid_supplied_answer_raises(self, sample_manifest: Manifest, quiet_console):
        controller = Controller(sample_manifest.questions)
        collector = AnswerCollector(controller, {"app_name": "Not Valid"}, ask=_scripted({}), console=quiet_console)
        with pytest.raises(AnswerValidationError, match="does not match required pattern"):
            collector.collect()


class TestDefaults:
    def test_use_defaults_fills_everything(self, sample_manifest: Manifest, quiet_console):
        controller = Controller(sample_manifest.questions)
        collected = AnswerCollector(controller, use_defaults=True, ask=_scripted({}), console=quiet_console).collect()

        assert collected["app_name"] == "my-app"
        assert collected["use_db"] is True
        assert collected["db_type"] == "postgres"
        assert collected["db_password"] == ""
        assert collected["port"] == 8080

    def test_defaults_reference_earlier_answers(self, quiet_console):
        questions = [
            Question(name="app_name"),
            Question(name="db_name", default="{{app_name}}_db"),
            Question(name="image", default="$app_name"),
        ]
        controller = Controller(questions)
        collected = AnswerCollector(
            controller, {"app_name": "blog"}, use_defaults=True, console=quiet_console
        ).collect()
        assert collected == {"app_name": "blog", "db_name": "blog_db", "image": "blog"}

    def test_required_without_default_is_still_asked(self, quiet_console):
        ask = _scripted({"token": ["abc"]})
        controller = Controller([Question(name="token", required=True)])
        collected = AnswerCollector(controller, use_defaults=True, ask=ask, console=quiet_console).collect()
        assert collected == {"token": "abc"}
        ask.assert_called_once()


class TestInteractive:
    def test_default_is_passed_to_ask(self, quiet_console):
        ask = _scripted({"name": ["given"]})
        controller = Controller([Question(name="name", default="fallback")])
        AnswerCollector(controller, ask=ask, console=quiet_console).collect()
        question, default = ask.call_args.args
        assert question.name == "name"
        assert default == "fallback"

    def test_retries_until_valid(self, quiet_console):
        ask = _scripted({"port": ["abc", "80", 8080]})
        question = Question.model_validate(
            {"name": "port", "type": "number", "validate": {"min": 1024}}
        )
        controller = Controller([question])
        collected = AnswerCollector(controller, ask=ask, console=quiet_console).collect()
        assert collected == {"port": 8080}
        assert ask.call_count == 3

    def test_gives_up_after_max_attempts(self, quiet_console):
        ask = _scripted({"email": ["nope", "still nope"]})
        controller = Controller([Question(name="email", type="email")])
        collector = AnswerCollector(controller, ask=ask, console=quiet_console, max_attempts=2)
        with pytest.raises(AnswerValidationError, match="invalid email address"):
            collector.collect()
        assert controller.get_answer_record("email").is_valid is False

    def test_skipped_questions_are_never_asked(self, quiet_console):
        ask = _scripted({"use_db": [False]})
        questions = [
            Question(name="use_db", type="boolean"),
            Question(name="db_type", condition={"field": "use_db", "equals": True}),
        ]
        controller = Controller(questions)
        collected = AnswerCollector(controller, ask=ask, console=quiet_console).collect()
        assert collected == {"use_db": False}
        assert controller.get_state("db_type") is QuestionState.SKIPPED


class TestHelpers:
    def test_failing_helper_rejects_answer(self, quiet_console):
        question = Question.model_validate({"name": "port", "type": "number", "helper": {"type": "port_check"}})
        controller = Controller([question])
        with patch("ritual_grove.questionnaire.prompts.run_helper", side_effect=ValueError("port 80 is already in use")):
            with pytest.raises(AnswerValidationError, match="already in use") as exc_info:
                AnswerCollector(controller, {"port": 80}, console=quiet_console).collect()
        assert exc_info.value.question == "port"

    def test_helpers_can_be_disabled(self, quiet_console):
        question = Question.model_validate({"name": "site", "type": "url", "helper": {"type": "url_check"}})
        controller = Controller([question])
        with patch("ritual_grove.questionnaire.prompts.run_helper") as helper:
            collected = AnswerCollector(
                controller, {"site": "https://example.com"}, console=quiet_console, run_helpers=False
            ).collect()
        helper.assert_not_called()
        assert collected == {"site": "https://example.com"}
