"""Stateless case-conversion helpers shared by templates and variables.

Words are split on ``-``, ``_``, whitespace and every ASCII uppercase letter
after the first character.  Acronyms therefore break into single letters:
``to_snake_case("HTTPServer") == "h_t_t_p_server"``.
"""

from __future__ import annotations


def split_words(value: str) -> list[str]:
    """Split *value* into words for the case transforms."""
    text = value.replace("-", " ").replace("_", " ")
    words: list[str] = []
    current: list[str] = []

    for index, char in enumerate(text):
        if index > 0 and "A" <= char <= "Z" and current:
            words.append("".join(current))
            current = []
        if char.isspace():
            if current:
                words.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        words.append("".join(current))
    return words


def to_pascal_case(value: str) -> str:
    """``my-app`` -> ``MyApp``."""
    return "".join(word[:1].upper() + word[1:].lower() for word in split_words(value))


def to_camel_case(value: str) -> str:
    """``my-app`` -> ``myApp``."""
    pascal = to_pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def to_snake_case(value: str) -> str:
    """``MyApp`` -> ``my_app``."""
    return "_".join(word.lower() for word in split_words(value))


def to_kebab_case(value: str) -> str:
    """``MyApp`` -> ``my-app``."""
    return "-".join(word.lower() for word in split_words(value))


def to_title_case(value: str) -> str:
    return value.title()
