"""Keyword string helpers: quote-aware tokenizing and boolean-mode terms."""

from dataclasses import dataclass
from typing import List

DEFAULT_QUOTATION_MARKS = "\"'"
BOOLEAN_OPERATORS = "+-"


def tokenize_quoted(
    text: str,
    quotation_marks: str = DEFAULT_QUOTATION_MARKS,
    operators: str = "",
) -> List[str]:
    """
    Split a string into space-delimited tokens, keeping quoted runs together.

    A token starting with a quotation mark extends to the next occurrence of that
    same mark, and the marks are stripped. An unterminated quote absorbs the rest
    of the string. Characters listed in ``operators`` may prefix a token (or a
    quoted run) and are kept on the resulting token.

    >>> tokenize_quoted('foo "bar baz" \\'qux\\'')
    ['foo', 'bar baz', 'qux']
    >>> tokenize_quoted('foo "bar')
    ['foo', 'bar']
    """
    tokens: List[str] = []
    position = 0
    length = len(text)

    while position < length:
        if text[position] == " ":
            position += 1
            continue

        end = text.find(" ", position)
        if end == -1:
            end = length
        token = text[position:end]

        prefix = ""
        while token and token[0] in operators and len(token) > 1:
            prefix += token[0]
            token = token[1:]

        if token[0] in quotation_marks:
            if len(token) > 1 and token[-1] in quotation_marks:
                value = token[1:-1]
                position = end
            else:
                closing = text.find(token[0], end)
                if closing == -1:
                    value = token[1:] + text[end:]
                    position = length
                else:
                    value = token[1:] + text[end:closing]
                    position = closing + 1
            value = value.strip()
        else:
            value = token
            position = end

        if value:
            tokens.append(prefix + value)

    return tokens


@dataclass(frozen=True)
class KeywordTerm:
    """One term of a boolean-mode keyword search."""
    text: str
    required: bool = False
    excluded: bool = False


def parse_boolean_terms(keywords: str) -> List[KeywordTerm]:
    """
    Parse a keyword string into boolean-mode terms.

    ``+term`` must match, ``-term`` must not match, bare terms are optional.
    A trailing ``*`` wildcard is dropped since terms already match as substrings.
    Duplicate terms collapse into the first occurrence.
    """
    terms: List[KeywordTerm] = []
    seen = set()
    for token in tokenize_quoted(keywords or "", operators=BOOLEAN_OPERATORS):
        if not token.strip(BOOLEAN_OPERATORS):
            continue
        required = excluded = False
        if token[0] in BOOLEAN_OPERATORS and len(token) > 1:
            required = token[0] == "+"
            excluded = token[0] == "-"
            token = token.lstrip(BOOLEAN_OPERATORS)
        token = token.rstrip("*").strip()
        if not token:
            continue
        key = (token.lower(), required, excluded)
        if key in seen:
            continue
        seen.add(key)
        terms.append(KeywordTerm(token, required=required, excluded=excluded))
    return terms
