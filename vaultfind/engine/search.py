"""Search across every document in the collection."""

import time
from typing import List, Optional, Sequence

from loguru import logger

from .backend import DocumentRef, NoteBackend
from .bus import Event, EventBus, SEARCH_COMPLETED, get_event_bus
from .front_matter import front_matter_span
from .lines import split_lines
from .matcher import match_line
from .models import EMPTY_SEARCH_OUTCOME, MatchRecord, SearchOutcome
from .pattern import CompiledPattern, compile_query


def search_text(
    text: str,
    document: DocumentRef,
    pattern: CompiledPattern,
    ignore_front_matter: bool
) -> List[MatchRecord]:
    """
    Match every line of one document's text.

    When front matter is ignored its lines are skipped, but line numbers
    still count them so records address the full document.
    """
    first_line = 1
    if ignore_front_matter:
        span = front_matter_span(text)
        text = text[span.length:]
        first_line += span.line_count

    records = []
    for i, line in enumerate(split_lines(text)):
        records.extend(match_line(line, first_line + i, document, pattern))
    return records


def accumulate(outcome: SearchOutcome, records: Sequence[MatchRecord]) -> SearchOutcome:
    """Fold one document's records into the running outcome."""
    if not records:
        return outcome
    return SearchOutcome(
        results=outcome.results + tuple(records),
        files_with_matches=outcome.files_with_matches + 1
    )


class SearchService:
    """Runs a query against every document the backend enumerates."""

    def __init__(self, backend: NoteBackend, event_bus: Optional[EventBus] = None):
        self.backend = backend
        self._event_bus = event_bus or get_event_bus()

    async def search(
        self,
        query: str,
        regex_enabled: bool,
        case_sensitive: bool,
        ignore_front_matter: bool
    ) -> SearchOutcome:
        """
        Search the whole collection.

        Blank queries return an empty outcome without reading anything.
        InvalidPatternError and ReadFailure propagate; a failed read aborts
        the search instead of returning partial results.
        """
        if not query.strip():
            return EMPTY_SEARCH_OUTCOME

        start_time = time.perf_counter()
        pattern = compile_query(query, regex_enabled, case_sensitive)

        outcome = EMPTY_SEARCH_OUTCOME
        documents = self.backend.list_documents()
        for document in documents:
            text = await self.backend.read_document(document)
            records = search_text(text, document, pattern, ignore_front_matter)
            if records:
                logger.debug(f"{len(records)} match(es) in {document.path}")
            outcome = accumulate(outcome, records)

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Search {query!r}: {outcome.match_count} match(es) in "
            f"{outcome.files_with_matches}/{len(documents)} document(s), {latency_ms:.1f}ms"
        )

        await self._event_bus.emit(Event(
            type=SEARCH_COMPLETED,
            data={
                "query": query,
                "regex": regex_enabled,
                "case_sensitive": case_sensitive,
                "match_count": outcome.match_count,
                "files_with_matches": outcome.files_with_matches,
                "latency_ms": latency_ms
            },
            source="search_service"
        ))

        return outcome
