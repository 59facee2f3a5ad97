"""Tests for the single-match replace protocol."""

import pytest

from vaultfind.engine.backend import DocumentRef
from vaultfind.engine.bus import REPLACE_ABANDONED, REPLACE_APPLIED
from vaultfind.engine.errors import InvalidPatternError
from vaultfind.engine.models import MatchRecord
from vaultfind.engine.replace import ReplaceService
from vaultfind.engine.search import SearchService
from vaultfind.engine.vault import VaultBackend


@pytest.fixture
def searcher(backend, event_bus):
    return SearchService(backend, event_bus=event_bus)


@pytest.fixture
def replacer(backend, event_bus):
    return ReplaceService(backend, event_bus=event_bus)


async def find(searcher, query, regex=False, case_sensitive=False, ignore_front_matter=True):
    outcome = await searcher.search(query, regex, case_sensitive, ignore_front_matter)
    return list(outcome.results)


@pytest.mark.asyncio
async def test_replace_literal(searcher, replacer, write_note, temp_vault):
    note = write_note("x.md", "hello foo world\nfoo again\n")
    first = (await find(searcher, "foo"))[0]

    result = await replacer.replace(first, "bar", "foo", False, False, True)

    assert result.path == "x.md"
    assert result.line_number == 1
    assert result.line_results == ()
    assert note.read_bytes() == b"hello bar world\nfoo again\n"


@pytest.mark.asyncio
async def test_replace_returns_remaining_line_matches(searcher, replacer, write_note):
    note = write_note("x.md", "foo foo foo\n")
    middle = (await find(searcher, "foo"))[1]
    assert middle.start == 4

    result = await replacer.replace(middle, "X", "foo", False, False, True)

    assert note.read_text() == "foo X foo\n"
    assert [(r.start, r.end) for r in result.line_results] == [(0, 2), (6, 8)]
    assert all(r.line == "foo X foo" for r in result.line_results)


@pytest.mark.asyncio
async def test_neighbouring_characters_untouched(searcher, replacer, write_note):
    note = write_note("x.md", "abcfoodef\n")
    [match] = await find(searcher, "foo")

    await replacer.replace(match, "", "foo", False, False, True)

    assert note.read_text() == "abcdef\n"


@pytest.mark.asyncio
async def test_replace_last_character_of_line(searcher, replacer, write_note):
    note = write_note("x.md", "ends with x\nmore\n")
    [match] = await find(searcher, "x", case_sensitive=True)
    assert (match.start, match.end) == (10, 10)

    await replacer.replace(match, "Y", "x", False, True, True)

    assert note.read_text() == "ends with Y\nmore\n"


@pytest.mark.asyncio
async def test_regex_replacement_is_literal(searcher, replacer, write_note):
    note = write_note("x.md", "xfooy\n")
    [match] = await find(searcher, r"f(o+)", regex=True)

    await replacer.replace(match, r"\1-$1", r"f(o+)", True, False, True)

    assert note.read_text() == "x\\1-$1y\n"


@pytest.mark.asyncio
async def test_replace_after_front_matter(searcher, replacer, write_note):
    note = write_note("x.md", "---\ntitle: foo\n---\nbody foo\n")
    [match] = await find(searcher, "foo", ignore_front_matter=True)
    assert match.line_number == 4

    await replacer.replace(match, "bar", "foo", False, False, True)

    assert note.read_text() == "---\ntitle: foo\n---\nbody bar\n"


@pytest.mark.asyncio
async def test_replace_keeps_crlf(searcher, replacer, write_note):
    note = write_note("x.md", "one foo\r\ntwo foo\r\n")
    second = (await find(searcher, "foo"))[1]

    await replacer.replace(second, "bar", "foo", False, False, True)

    assert note.read_bytes() == b"one foo\r\ntwo bar\r\n"


@pytest.mark.asyncio
async def test_search_after_replace_does_not_find_old_occurrence(searcher, replacer, write_note):
    write_note("x.md", "foo foo\n")
    first = (await find(searcher, "foo"))[0]

    await replacer.replace(first, "bar", "foo", False, False, True)
    after = await find(searcher, "foo")

    assert [(r.line_number, r.start) for r in after] == [(1, 4)]


@pytest.mark.asyncio
async def test_unsaved_edits_elsewhere_are_persisted(searcher, replacer, backend, write_note):
    note = write_note("x.md", "draft\nfoo\n")
    [match] = await find(searcher, "foo")

    await backend.activate_for_editing("x.md")
    surface = backend.current_editing_surface()
    surface.set_selection(0, 0, 0, 5)
    surface.replace_selection("final")

    result = await replacer.replace(match, "bar", "foo", False, False, True)

    assert result is not None
    assert note.read_text() == "final\nbar\n"


class TestAbandon:
    """Every doubt about the live surface returns None and writes nothing."""

    @pytest.mark.asyncio
    async def test_no_document_reference(self, replacer, write_note):
        note = write_note("x.md", "foo\n")
        match = MatchRecord(path="x.md", line_number=1, line="foo", start=0, end=2)

        assert await replacer.replace(match, "bar", "foo", False, False, True) is None
        assert note.read_text() == "foo\n"

    @pytest.mark.asyncio
    async def test_document_cannot_be_activated(self, searcher, test_config, event_bus, write_note):
        class StuckBackend(VaultBackend):
            async def activate_for_editing(self, path):
                return None

        note = write_note("x.md", "foo\n")
        [match] = await find(searcher, "foo")

        result = await ReplaceService(StuckBackend(test_config), event_bus=event_bus).replace(
            match, "bar", "foo", False, False, True
        )

        assert result is None
        assert note.read_bytes() == b"foo\n"

    @pytest.mark.asyncio
    async def test_focus_on_another_document(self, searcher, test_config, event_bus, write_note):
        class WrongFocusBackend(VaultBackend):
            async def activate_for_editing(self, path):
                await super().activate_for_editing("other.md")

        write_note("other.md", "other\n")
        note = write_note("x.md", "foo\n")
        [match] = await find(searcher, "foo")

        result = await ReplaceService(WrongFocusBackend(test_config), event_bus=event_bus).replace(
            match, "bar", "foo", False, False, True
        )

        assert result is None
        assert note.read_bytes() == b"foo\n"

    @pytest.mark.asyncio
    async def test_document_deleted_after_search(self, searcher, replacer, write_note):
        note = write_note("x.md", "foo\n")
        [match] = await find(searcher, "foo")
        note.unlink()

        assert await replacer.replace(match, "bar", "foo", False, False, True) is None
        assert not note.exists()

    @pytest.mark.asyncio
    async def test_document_changed_on_disk(self, searcher, replacer, write_note):
        note = write_note("x.md", "hello foo\n")
        [match] = await find(searcher, "foo")
        note.write_bytes(b"hi foo\n")

        assert await replacer.replace(match, "bar", "foo", False, False, True) is None
        assert note.read_bytes() == b"hi foo\n"

    @pytest.mark.asyncio
    async def test_line_removed_in_editor(self, searcher, replacer, backend, write_note):
        note = write_note("x.md", "a\nfoo")
        match = (await find(searcher, "foo"))[0]

        await backend.activate_for_editing("x.md")
        surface = backend.current_editing_surface()
        surface.set_selection(0, 0, 1, 3)
        surface.replace_selection("gone")

        assert await replacer.replace(match, "bar", "foo", False, False, True) is None
        assert note.read_bytes() == b"a\nfoo"

    @pytest.mark.asyncio
    async def test_line_moved_into_front_matter(self, searcher, replacer, backend, write_note):
        note = write_note("x.md", "intro\nfoo\n")
        [match] = await find(searcher, "foo")

        await backend.activate_for_editing("x.md")
        surface = backend.current_editing_surface()
        surface.set_selection(0, 0, 0, 5)
        surface.replace_selection("---")
        surface.set_selection(1, 3, 1, 3)
        surface.replace_selection("\n---")

        assert surface.get_line(1) == "foo"
        assert await replacer.replace(match, "bar", "foo", False, False, True) is None
        assert note.read_bytes() == b"intro\nfoo\n"

    @pytest.mark.asyncio
    async def test_blank_query(self, searcher, replacer, write_note):
        write_note("x.md", "foo\n")
        [match] = await find(searcher, "foo")
        assert await replacer.replace(match, "bar", "  ", False, False, True) is None

    @pytest.mark.asyncio
    async def test_lookahead_context_edited_away(self, searcher, replacer, backend, write_note):
        note = write_note("x.md", "ab\n")
        [match] = await find(searcher, r"a(?=b)", regex=True, case_sensitive=True)

        await backend.activate_for_editing("x.md")
        surface = backend.current_editing_surface()
        surface.set_selection(0, 1, 0, 2)
        surface.replace_selection("c")

        assert surface.get_line(0) == "ac"
        assert await replacer.replace(match, "X", r"a(?=b)", True, True, True) is None
        assert note.read_bytes() == b"ab\n"

    @pytest.mark.asyncio
    async def test_unsaved_edits_and_external_change(self, searcher, replacer, backend, write_note):
        note = write_note("x.md", "draft\nfoo\n")
        [match] = await find(searcher, "foo")

        await backend.activate_for_editing("x.md")
        surface = backend.current_editing_surface()
        surface.set_selection(0, 0, 0, 5)
        surface.replace_selection("final")
        note.write_bytes(b"other\nfoo\n")

        assert await replacer.replace(match, "bar", "foo", False, False, True) is None
        assert note.read_bytes() == b"other\nfoo\n"
        assert surface.get_full_text() == "final\nfoo\n"


@pytest.mark.asyncio
async def test_replace_regex_with_lookahead(searcher, replacer, write_note):
    note = write_note("x.md", "ab\n")
    [match] = await find(searcher, r"a(?=b)", regex=True, case_sensitive=True)
    assert (match.start, match.end) == (0, 0)

    result = await replacer.replace(match, "X", r"a(?=b)", True, True, True)

    assert note.read_bytes() == b"Xb\n"
    assert result.line_results == ()


@pytest.mark.asyncio
async def test_replace_after_external_edit(searcher, replacer, write_note):
    note = write_note("x.md", "foo one\nfoo two\n")
    first = (await find(searcher, "foo"))[0]
    await replacer.replace(first, "bar", "foo", False, False, True)
    assert note.read_bytes() == b"bar one\nfoo two\n"

    note.write_bytes(b"EXTERNAL EDIT\nfoo two\n")
    [second] = await find(searcher, "foo")
    assert second.line_number == 2

    result = await replacer.replace(second, "bar", "foo", False, False, True)

    assert result is not None
    assert note.read_bytes() == b"EXTERNAL EDIT\nbar two\n"


@pytest.mark.asyncio
async def test_line_results_follow_persisted_text(searcher, test_config, event_bus, write_note):
    class TypingBackend(VaultBackend):
        """Someone refocuses the note and types right after it is saved."""

        async def persist(self, ref, full_text):
            await super().persist(ref, full_text)
            await self.activate_for_editing(ref.path)
            surface = self.current_editing_surface()
            surface.set_selection(0, 0, 0, 0)
            surface.replace_selection("foo ")

    note = write_note("x.md", "foo\n")
    [match] = await find(searcher, "foo")
    backend = TypingBackend(test_config)

    result = await ReplaceService(backend, event_bus=event_bus).replace(
        match, "bar", "foo", False, False, True
    )

    assert result.line_results == ()
    assert note.read_bytes() == b"bar\n"
    assert backend.current_editing_surface().get_full_text() == "foo bar\n"


@pytest.mark.asyncio
async def test_invalid_regex_propagates_without_write(searcher, replacer, write_note):
    note = write_note("x.md", "foo\n")
    [match] = await find(searcher, "foo")

    with pytest.raises(InvalidPatternError):
        await replacer.replace(match, "bar", "(", True, False, True)
    assert note.read_bytes() == b"foo\n"


@pytest.mark.asyncio
async def test_replace_events(searcher, replacer, event_bus, write_note):
    write_note("x.md", "foo foo\n")
    events = []
    event_bus.subscribe("replace.*", events.append)

    first = (await find(searcher, "foo"))[0]
    await replacer.replace(first, "bar", "foo", False, False, True)
    orphan = MatchRecord(path="y.md", line_number=1, line="foo", start=0, end=2)
    await replacer.replace(orphan, "bar", "foo", False, False, True)
    await event_bus.drain()

    assert [e.type for e in events] == [REPLACE_APPLIED, REPLACE_ABANDONED]
    assert events[0].data["remaining_on_line"] == 1
    assert events[1].data["reason"] == "match has no document reference"


def test_match_document_ref():
    ref = DocumentRef("notes/deep/x.md")
    assert ref.name == "x.md"
