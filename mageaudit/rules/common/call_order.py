"""Classify where an around-style wrapper invokes its continuation."""

import re
from enum import Enum

from mageaudit.symbols.constructors import parse_parameter
from mageaudit.utils.php_text import remove_comments, split_top_level

# Conventional name of the wrapped callable in an around plugin
CONTINUATION_NAMES: frozenset[str] = frozenset({"proceed"})
CALLABLE_TYPES: frozenset[str] = frozenset({"callable", "closure", "mixed"})


class CallOrder(Enum):
    """Position of the continuation call relative to the rest of the body."""

    BEFORE = "before"
    AFTER = "after"
    AROUND = "around"
    OVERRIDE = "override"


def invocation_pattern(name: str) -> re.Pattern:
    """Matches ``$name(...)`` and ``call_user_func($name, ...)``."""
    name = re.escape(name.lstrip("$"))
    return re.compile(rf"\${name}\s*\(|call_user_func(?:_array)?\s*\(\s*\${name}\b")


def is_invoked(text: str, name: str) -> bool:
    return bool(invocation_pattern(name).search(text))


def find_continuation(parameter_list: str, body: str) -> str | None:
    """Name (without ``$``) of the parameter acting as the continuation.

    Tried in order: the conventional name, a callable/Closure/mixed type,
    then the first parameter invoked somewhere in the body.
    """
    parameters = [p for p in map(parse_parameter, split_top_level(parameter_list)) if p]
    for parameter in parameters:
        if parameter.name in CONTINUATION_NAMES:
            return parameter.name
    for parameter in parameters:
        if parameter.type_token and parameter.type_token.lstrip("\\").lower() in CALLABLE_TYPES:
            return parameter.name
    for parameter in parameters:
        if is_invoked(body, parameter.name):
            return parameter.name
    return None


def statement_lines(body: str) -> list[str]:
    """Top-level statements of a body, comments and blanks removed.

    A statement ends at a ";" or at the "}" closing a top-level block, so
    several statements sharing one physical line are still told apart.
    """
    statements: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    text = remove_comments(body)
    for index, char in enumerate(text):
        current.append(char)
        if quote:
            if char == quote and text[index - 1] != "\\":
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
            if char == "}" and depth == 0:
                statements.append("".join(current))
                current = []
        elif char == ";" and depth == 0:
            statements.append("".join(current))
            current = []
    statements.append("".join(current))
    return [" ".join(s.split()) for s in statements if s.strip()]


def classify_call_order(body: str, continuation: str | None) -> CallOrder:
    """Classify a wrapper body by where the continuation is called.

    The last statement is checked before the first, so a single-statement body
    classifies as AFTER.
    """
    if not continuation:
        return CallOrder.OVERRIDE
    statements = statement_lines(body)
    pattern = invocation_pattern(continuation)
    if not statements or not any(pattern.search(s) for s in statements):
        return CallOrder.OVERRIDE
    if pattern.search(statements[-1]):
        return CallOrder.AFTER
    if pattern.search(statements[0]):
        return CallOrder.BEFORE
    return CallOrder.AROUND
