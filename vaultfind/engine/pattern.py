"""Turns a user query into a compiled, always-global pattern."""

import re
from dataclasses import dataclass
from typing import Iterator

from .errors import InvalidPatternError


# Characters with special meaning in a pattern; escaped in literal mode.
_METACHARACTERS = re.compile(r"[.*+?^${}()|\[\]\\]")


@dataclass(frozen=True)
class Query:
    """Immutable search input."""
    text: str
    regex_enabled: bool = False
    case_sensitive: bool = False

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class CompiledPattern:
    """
    A compiled query.

    Matching is always find-all: callers iterate every non-overlapping match
    in a line, left to right.
    """
    query: Query
    regex: re.Pattern

    def finditer(self, text: str) -> Iterator[re.Match]:
        return self.regex.finditer(text)


def escape_literal(text: str) -> str:
    """Escape pattern metacharacters so text matches only itself."""
    return _METACHARACTERS.sub(lambda m: "\\" + m.group(0), text)


def compile_query(
    query: str,
    regex_enabled: bool,
    case_sensitive: bool
) -> CompiledPattern:
    """
    Compile a query.

    Raises InvalidPatternError when regex mode is on and the query is not a
    valid pattern. Blank queries are not special-cased here.
    """
    source = query if regex_enabled else escape_literal(query)
    flags = 0 if case_sensitive else re.IGNORECASE

    try:
        regex = re.compile(source, flags)
    except re.error as e:
        raise InvalidPatternError(query, e.msg, e.pos) from e

    return CompiledPattern(
        query=Query(query, regex_enabled, case_sensitive),
        regex=regex
    )
