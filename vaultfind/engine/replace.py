"""Replace a single previously reported match through the live editor."""

from typing import Optional

from loguru import logger

from .backend import NoteBackend
from .bus import Event, EventBus, REPLACE_ABANDONED, REPLACE_APPLIED, get_event_bus
from .front_matter import front_matter_span
from .lines import split_lines
from .matcher import match_line
from .models import MatchRecord, ReplaceOutcome
from .pattern import compile_query


class ReplaceService:
    """
    Replaces one match at its recorded position.

    The edit goes through the backend's live editing surface, which holds
    unsaved changes, and is then persisted before returning. Any doubt about
    whether the surface still shows the recorded match makes the replace
    return None with nothing written.

    Not reentrant per document: callers must wait for one replace to finish
    before issuing another against the same document.
    """

    def __init__(self, backend: NoteBackend, event_bus: Optional[EventBus] = None):
        self.backend = backend
        self._event_bus = event_bus or get_event_bus()

    async def replace(
        self,
        match: MatchRecord,
        replacement: str,
        query: str,
        regex_enabled: bool,
        case_sensitive: bool,
        ignore_front_matter: bool
    ) -> Optional[ReplaceOutcome]:
        document = match.document
        if document is None:
            return await self._abandon(match, "match has no document reference")
        if not query.strip():
            return await self._abandon(match, "blank query")

        await self.backend.activate_for_editing(document.path)
        surface = self.backend.current_editing_surface()
        session = surface.session_token if surface is not None else None

        if self.backend.current_active_document() != document:
            return await self._abandon(match, "document could not be activated")
        if surface is None or surface.document != document:
            return await self._abandon(match, "no editing surface for document")

        line_index = match.line_number - 1
        if line_index >= surface.line_count():
            return await self._abandon(match, "line no longer exists")
        if ignore_front_matter and match.line_number <= front_matter_span(
            surface.get_full_text()
        ).line_count:
            return await self._abandon(match, "line is now inside front matter")

        # Recorded end is inclusive, selection end is exclusive
        surface.set_selection(line_index, match.start, line_index, match.end + 1)
        selected = surface.get_selection_text()
        if selected != match.text:
            return await self._abandon(match, "document changed since the search")

        # Lookarounds depend on the rest of the line, so re-match in place
        pattern = compile_query(query, regex_enabled, case_sensitive)
        found = pattern.regex.match(surface.get_line(line_index), match.start)
        if found is None or found.end() != match.end + 1:
            return await self._abandon(match, "pattern no longer matches at the recorded position")

        surface.replace_selection(replacement)
        full_text = surface.get_full_text()
        await self.backend.persist(document, full_text)

        if self.backend.current_editing_surface() is not surface or surface.session_token != session:
            logger.debug(f"Editor session for {document.path} changed during persist")
            line = split_lines(full_text)[line_index]
        else:
            line = surface.get_line(line_index)
        line_results = match_line(line, match.line_number, document, pattern)
        logger.info(
            f"Replaced {selected!r} with {replacement!r} in {document.path}:"
            f"{match.line_number}:{match.column}"
        )

        await self._event_bus.emit(Event(
            type=REPLACE_APPLIED,
            data={
                "path": document.path,
                "line_number": match.line_number,
                "start": match.start,
                "replaced": selected,
                "replacement": replacement,
                "remaining_on_line": len(line_results)
            },
            source="replace_service"
        ))

        return ReplaceOutcome(
            path=document.path,
            line_number=match.line_number,
            line_results=tuple(line_results)
        )

    async def _abandon(self, match: MatchRecord, reason: str) -> None:
        logger.debug(f"Replace abandoned for {match.path}:{match.line_number}: {reason}")
        await self._event_bus.emit(Event(
            type=REPLACE_ABANDONED,
            data={"path": match.path, "line_number": match.line_number, "reason": reason},
            source="replace_service"
        ))
        return None
