"""
Keyword Tokenizer
=================

Turns the free-text keyword fields authors type into ordered token lists,
keeping phrases intact, and formats token lists back for display.

Accepted forms, mixable in one field::

    dragon, "old king"; [silver sword] fire ice,  elf

gives ``["dragon", "old king", "silver sword", "fire ice", "elf"]``.
"""

import enum

from lorebook.core.rules.domain.rule import MAX_KEYWORD_LENGTH, MAX_KEYWORDS_PER_FIELD


QUOTE_CHARS = ('"', "'", "`")
SEPARATORS = frozenset(",;")
BRACKET_OPEN = "["
BRACKET_CLOSE = "]"

# Characters that parse as structure outside quotes
_STRUCTURAL = frozenset(QUOTE_CHARS) | SEPARATORS | {BRACKET_OPEN, BRACKET_CLOSE}


class _ScanState(enum.Enum):
    NORMAL = "normal"
    IN_QUOTE = "in_quote"
    IN_BRACKET = "in_bracket"


def _is_separating_whitespace(text: str, start: int, end: int) -> bool:
    """
    Decide whether the whitespace run ``text[start:end]`` ends a token.

    A single space followed by more content stays inside the token so that
    unquoted phrases survive; anything wider, any line break, trailing
    whitespace, or whitespace before a separator splits.
    """
    run = text[start:end]
    if len(run) > 1 or "\n" in run or "\r" in run:
        return True
    if end >= len(text):
        return True
    return text[end] in SEPARATORS


def _finalize(raw_tokens: list[str]) -> list[str]:
    tokens = [t.strip() for t in raw_tokens]
    tokens = [t for t in tokens if t and len(t) <= MAX_KEYWORD_LENGTH]
    return tokens[:MAX_KEYWORDS_PER_FIELD]


def parse_keywords(text: str | None) -> list[str]:
    """
    Parse a raw keyword field into tokens.

    Never raises on malformed input: unterminated quotes or brackets are
    flushed at end of input, and anything unusable yields an empty list.
    """
    if not isinstance(text, str) or not text.strip():
        return []

    raw_tokens: list[str] = []
    buffer: list[str] = []
    state = _ScanState.NORMAL
    quote_char = ""

    def flush() -> None:
        if buffer:
            raw_tokens.append("".join(buffer))
            buffer.clear()

    i = 0
    length = len(text)
    while i < length:
        char = text[i]

        if state is _ScanState.IN_QUOTE:
            if char == quote_char:
                flush()
                state = _ScanState.NORMAL
            else:
                buffer.append(char)
            i += 1
            continue

        if state is _ScanState.IN_BRACKET:
            if char == BRACKET_CLOSE:
                flush()
                state = _ScanState.NORMAL
            else:
                buffer.append(char)
            i += 1
            continue

        # NORMAL
        if char in QUOTE_CHARS:
            flush()
            state = _ScanState.IN_QUOTE
            quote_char = char
            i += 1
        elif char == BRACKET_OPEN:
            flush()
            state = _ScanState.IN_BRACKET
            i += 1
        elif char == BRACKET_CLOSE or char in SEPARATORS:
            flush()
            i += 1
        elif char.isspace():
            end = i
            while end < length and text[end].isspace():
                end += 1
            if _is_separating_whitespace(text, i, end):
                flush()
            else:
                buffer.append(char)
            i = end
        else:
            buffer.append(char)
            i += 1

    flush()
    return _finalize(raw_tokens)


def _quote_for(token: str) -> str:
    for quote in QUOTE_CHARS:
        if quote not in token:
            return quote
    return QUOTE_CHARS[0]


def _needs_quoting(token: str) -> bool:
    return any(c.isspace() or c in _STRUCTURAL for c in token)


def format_keywords(tokens: list[str] | None) -> str:
    """
    Format tokens for display.

    Tokens containing whitespace or structural characters are wrapped in a
    quote they do not contain, so the output parses back to ``tokens``.
    """
    if not tokens:
        return ""

    formatted = []
    for token in tokens:
        if _needs_quoting(token):
            quote = _quote_for(token)
            formatted.append(f"{quote}{token}{quote}")
        else:
            formatted.append(token)
    return ", ".join(formatted)
