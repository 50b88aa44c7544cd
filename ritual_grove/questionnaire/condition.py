"""Condition evaluation over the current answer set.

Two forms are understood:

* structured trees (``FieldCondition``, ``AllOf``, ``AnyOf``, ``NotCondition``)
  built from the manifest, and
* expression strings in a small grammar::

      expr  := term (op term)*        # one operator kind per expression
      term  := IDENT | IDENT ('==' | '!=') VALUE
      op    := '&&' | 'AND' | '||' | 'OR'
      VALUE := 'quoted' | "quoted" | bare-word

There is no precedence, no grouping and no negation operator.  Anything
outside the grammar raises ``ConditionParseError`` instead of being guessed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ritual_grove.errors import ConditionParseError, ConfigurationError
from ritual_grove.manifest import (
    AllOf,
    AnyOf,
    Condition,
    ExpressionCondition,
    FieldCondition,
    NotCondition,
)
from ritual_grove.values import stringify, to_bool

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>'[^']*'|"[^"]*")
      | (?P<op>==|!=|&&|\|\|)
      | (?P<word>[A-Za-z0-9_.:/@+\-]+)
      | (?P<bad>\S)
    )
    """,
    re.VERBOSE,
)

_AND_OPS = {"&&", "AND"}
_OR_OPS = {"||", "OR"}

_TEMPLATE_VAR_RE = re.compile(r"\{\{\.?([A-Za-z_][A-Za-z0-9_]*)\}\}")


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str


@dataclass(frozen=True)
class _Term:
    field: str
    operator: Optional[str] = None
    value: Optional[str] = None


def _tokenize(expression: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    stripped = expression.rstrip()
    while pos < len(stripped):
        match = _TOKEN_RE.match(stripped, pos)
        if match is None:  # pragma: no cover - the pattern always matches one char
            raise ConditionParseError(expression, f"unexpected input at position {pos}")
        pos = match.end()
        if match.group("bad") is not None:
            raise ConditionParseError(expression, f"unsupported character {match.group('bad')!r}")
        if match.group("string") is not None:
            tokens.append(_Token("value", match.group("string")[1:-1]))
        elif match.group("op") is not None:
            tokens.append(_Token("op", match.group("op")))
        else:
            word = match.group("word")
            if word in ("AND", "OR"):
                tokens.append(_Token("op", word))
            else:
                tokens.append(_Token("word", word))
    return tokens


def parse_expression(expression: str) -> tuple[Optional[str], list[_Term]]:
    """Parse an expression into its chain operator and terms.

    Returns:
        ``(joiner, terms)`` where *joiner* is ``"and"``, ``"or"`` or ``None``
        for a single term.

    Raises:
        ConditionParseError: For empty input, mixed chain operators,
            unsupported characters or malformed terms.
    """
    tokens = _tokenize(expression)
    if not tokens:
        raise ConditionParseError(expression, "empty expression")

    # Split on chain operators.
    groups: list[list[_Token]] = [[]]
    joiners: set[str] = set()
    for token in tokens:
        if token.kind == "op" and (token.text in _AND_OPS or token.text in _OR_OPS):
            joiners.add("and" if token.text in _AND_OPS else "or")
            groups.append([])
        else:
            groups[-1].append(token)

    if len(joiners) > 1:
        raise ConditionParseError(expression, "mixing && and || in one expression is not supported")

    terms = [_parse_term(expression, group) for group in groups]
    joiner = joiners.pop() if joiners else None
    return joiner, terms


def _parse_term(expression: str, tokens: list[_Token]) -> _Term:
    if not tokens:
        raise ConditionParseError(expression, "missing operand")

    head = tokens[0]
    if head.kind != "word" or not _IDENT_RE.match(head.text):
        raise ConditionParseError(expression, f"expected a field name, got {head.text!r}")

    if len(tokens) == 1:
        return _Term(field=head.text)

    if len(tokens) == 3 and tokens[1].kind == "op" and tokens[1].text in ("==", "!="):
        value = tokens[2]
        if value.kind not in ("word", "value"):
            raise ConditionParseError(expression, f"expected a value after {tokens[1].text}")
        return _Term(field=head.text, operator=tokens[1].text, value=value.text)

    raise ConditionParseError(
        expression, "terms must be 'field', 'field == value' or 'field != value'"
    )


class ConditionEvaluator:
    """Evaluates conditions and dynamic defaults against an answer mapping.

    The evaluator holds no state; ``evaluate`` is a pure function of its
    arguments.
    """

    def evaluate(self, condition: Optional[Condition], answers: Mapping[str, Any]) -> bool:
        """Return whether *condition* holds for *answers*.

        ``None`` always holds.  Unknown fields make equality checks false
        and inequality checks true.

        Raises:
            ConditionParseError: If an expression is outside the grammar.
            ConfigurationError: If *condition* is not a condition node.
        """
        if condition is None:
            return True
        if isinstance(condition, FieldCondition):
            return self._evaluate_field(condition, answers)
        if isinstance(condition, ExpressionCondition):
            return self.evaluate_expression(condition.expression, answers)
        if isinstance(condition, AllOf):
            return all(self.evaluate(sub, answers) for sub in condition.conditions)
        if isinstance(condition, AnyOf):
            return any(self.evaluate(sub, answers) for sub in condition.conditions)
        if isinstance(condition, NotCondition):
            return not self.evaluate(condition.condition, answers)
        raise ConfigurationError(f"unsupported condition type: {type(condition).__name__}")

    def evaluate_expression(self, expression: str, answers: Mapping[str, Any]) -> bool:
        """Evaluate an expression string.  An empty expression holds."""
        if not expression.strip():
            return True
        joiner, terms = parse_expression(expression)
        if joiner == "or":
            return any(self._evaluate_term(term, answers) for term in terms)
        return all(self._evaluate_term(term, answers) for term in terms)

    def evaluate_default(self, default: Any, answers: Mapping[str, Any]) -> Any:
        """Resolve the sugar allowed in question defaults.

        * ``"$other"`` returns the answer to ``other`` verbatim (when known).
        * ``"{{other}}"`` placeholders are substituted from the answers;
          unknown placeholders are left in place.
        """
        if not isinstance(default, str):
            return default
        if default.startswith("$"):
            name = default[1:]
            if name in answers:
                return answers[name]
        if "{{" in default and "}}" in default:
            return _TEMPLATE_VAR_RE.sub(
                lambda m: stringify(answers[m.group(1)]) if m.group(1) in answers else m.group(0),
                default,
            )
        return default

    # -- Internals ------------------------------------------------------------

    def _evaluate_field(self, condition: FieldCondition, answers: Mapping[str, Any]) -> bool:
        exists = condition.field in answers
        actual = answers.get(condition.field)
        if condition.equals is not None:
            return exists and _compare(actual, condition.equals)
        if condition.not_equals is not None:
            return not exists or not _compare(actual, condition.not_equals)
        return exists and to_bool(actual)

    def _evaluate_term(self, term: _Term, answers: Mapping[str, Any]) -> bool:
        exists = term.field in answers
        if term.operator is None:
            return exists and to_bool(answers[term.field])
        if term.operator == "==":
            return exists and _compare(answers[term.field], term.value)
        return not exists or not _compare(answers[term.field], term.value)


def _compare(actual: Any, expected: Any) -> bool:
    """Type-agnostic equality: both sides are stringified before comparing."""
    if actual is None and expected is None:
        return True
    if actual is None or expected is None:
        return False
    return stringify(actual) == stringify(expected)
