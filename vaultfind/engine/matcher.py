"""Per-line match extraction."""

from typing import List, Optional

from .backend import DocumentRef
from .models import MatchRecord
from .pattern import CompiledPattern


def match_line(
    line: str,
    line_number: int,
    document: Optional[DocumentRef],
    pattern: CompiledPattern,
    path: Optional[str] = None
) -> List[MatchRecord]:
    """
    Return every match of pattern in line, left to right.

    Empty matches (e.g. `^` or `x*`) cover no character and cannot be
    selected or replaced, so they are not reported.
    """
    if path is None:
        path = document.path if document is not None else ""

    records = []
    for match in pattern.finditer(line):
        if match.end() == match.start():
            continue
        records.append(MatchRecord(
            path=path,
            line_number=line_number,
            line=line,
            start=match.start(),
            end=match.end() - 1,
            document=document
        ))
    return records
