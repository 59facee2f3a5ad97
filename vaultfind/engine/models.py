"""Data models for search and replace results."""

from dataclasses import dataclass, field
from typing import Tuple, Optional

from .backend import DocumentRef


@dataclass(frozen=True)
class MatchRecord:
    """
    One match occurrence inside one line.

    `start` and `end` are 0-based character offsets and both inclusive, so
    the matched text is `line[start:end + 1]`.
    """
    path: str
    line_number: int  # 1-based
    line: str
    start: int
    end: int
    document: Optional[DocumentRef] = field(default=None, compare=False)

    def __post_init__(self):
        if not 0 <= self.start <= self.end < len(self.line):
            raise ValueError(
                f"Match offsets [{self.start}, {self.end}] out of range "
                f"for line of length {len(self.line)}"
            )
        if self.line_number < 1:
            raise ValueError(f"Line numbers are 1-based, got {self.line_number}")

    @property
    def text(self) -> str:
        return self.line[self.start:self.end + 1]

    @property
    def column(self) -> int:
        """1-based column of the first matched character."""
        return self.start + 1


@dataclass(frozen=True)
class SearchOutcome:
    """Ordered matches across the collection plus distinct-document count."""
    results: Tuple[MatchRecord, ...] = ()
    files_with_matches: int = 0

    @property
    def match_count(self) -> int:
        return len(self.results)

    def for_path(self, path: str) -> Tuple[MatchRecord, ...]:
        return tuple(r for r in self.results if r.path == path)


EMPTY_SEARCH_OUTCOME = SearchOutcome()


@dataclass(frozen=True)
class ReplaceOutcome:
    """Matches remaining on the affected line after one replacement."""
    path: str
    line_number: int
    line_results: Tuple[MatchRecord, ...] = ()
