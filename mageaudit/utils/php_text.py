"""Text helpers for PHP and template sources.

Everything here works on raw text with plain counting and regular
expressions. None of these helpers raise on malformed input: a construct
that cannot be delimited is reported as None so the caller can skip it.
"""

import re
from dataclasses import dataclass

FUNCTION_DECL_RE = re.compile(
    r"^[ \t]*(?:(?:public|protected|private|static|final|abstract)\s+)*function\s+&?\s*(\w+)\s*\(",
    re.MULTILINE | re.IGNORECASE,
)

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
# "://" guards URLs, "#[" guards PHP 8 attributes
_LINE_COMMENT_RE = re.compile(r"(?<!:)//.*$", re.MULTILINE)
_HASH_COMMENT_RE = re.compile(r"#(?!\[).*$", re.MULTILINE)


@dataclass(frozen=True)
class CodeBlock:
    """A delimited region of text.

    ``start`` and ``end`` are offsets of the opening and closing delimiters;
    ``inner`` is the text strictly between them.
    """

    inner: str
    start: int
    end: int
    start_line: int
    end_line: int


def line_number_at(text: str, offset: int) -> int:
    """1-based line number of a character offset."""
    return text.count("\n", 0, max(0, offset)) + 1


def line_offset(text: str, line: int) -> int:
    """Character offset where a 1-based line starts (end of text if past the end)."""
    if line <= 1:
        return 0
    offset = -1
    for _ in range(line - 1):
        offset = text.find("\n", offset + 1)
        if offset == -1:
            return len(text)
    return offset + 1


def find_matching(text: str, open_index: int, opener: str = "{", closer: str = "}") -> int | None:
    """Index of the delimiter closing the one at ``open_index``, or None if unbalanced."""
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
    return None


def locate_brace_block(text: str, offset: int = 0) -> CodeBlock | None:
    """Find the first ``{`` at or after ``offset`` and its matching ``}``.

    Braces before the first opening brace are ignored. Returns None when no
    opening brace follows the offset or the text ends before the block is
    balanced again.
    """
    open_index = text.find("{", max(0, offset))
    if open_index == -1:
        return None
    close_index = find_matching(text, open_index)
    if close_index is None:
        return None
    return CodeBlock(
        inner=text[open_index + 1:close_index],
        start=open_index,
        end=close_index,
        start_line=line_number_at(text, open_index),
        end_line=line_number_at(text, close_index),
    )


def extract_brace_block(text: str, offset: int = 0) -> str | None:
    """Return the text between the first ``{`` after ``offset`` and its matching ``}``."""
    block = locate_brace_block(text, offset)
    return block.inner if block else None


def extract_paren_group(text: str, open_index: int) -> CodeBlock | None:
    """Delimit a parenthesised group whose ``(`` sits at ``open_index``."""
    if open_index >= len(text) or text[open_index] != "(":
        return None
    close_index = find_matching(text, open_index, "(", ")")
    if close_index is None:
        return None
    return CodeBlock(
        inner=text[open_index + 1:close_index],
        start=open_index,
        end=close_index,
        start_line=line_number_at(text, open_index),
        end_line=line_number_at(text, close_index),
    )


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on ``separator`` outside of (), [] and {} nesting and quotes."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for index, char in enumerate(text):
        if quote:
            current.append(char)
            if char == quote and text[index - 1] != "\\":
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def function_block(text: str, start_line: int) -> CodeBlock | None:
    """Body of the first function declared at or after ``start_line``.

    Returns None when no declaration follows or its body never closes
    (abstract and interface methods have no body).
    """
    match = FUNCTION_DECL_RE.search(text, line_offset(text, start_line))
    if not match:
        return None
    params = extract_paren_group(text, match.end() - 1)
    if params is None:
        return None
    # Stop at ";" for bodiless declarations
    cursor = params.end + 1
    while cursor < len(text) and text[cursor] not in "{;":
        cursor += 1
    if cursor >= len(text) or text[cursor] == ";":
        return None
    return locate_brace_block(text, cursor)


def get_line_number(text: str, needle: str) -> int | None:
    """1-based number of the first line containing ``needle``."""
    for number, line in enumerate(text.split("\n"), start=1):
        if needle in line:
            return number
    return None


def remove_comments(text: str) -> str:
    """Strip PHP comments, keeping line breaks so line numbers stay valid."""
    text = _BLOCK_COMMENT_RE.sub(lambda m: "\n" * m.group(0).count("\n"), text)
    text = _LINE_COMMENT_RE.sub("", text)
    return _HASH_COMMENT_RE.sub("", text)
