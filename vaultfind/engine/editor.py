"""In-memory editing surface used by the vault backend."""

from typing import List, Tuple

import ulid
from loguru import logger

from .backend import DocumentRef, EditableSurface
from .lines import LINE_TERMINATOR


class TextBuffer(EditableSurface):
    """
    Editable text of one open document.

    Addressing is (line, ch), both 0-based, with an exclusive selection end.
    Positions outside the document are clamped to the nearest valid one, the
    way editor widgets treat them. Line terminators are kept as they were.
    """

    def __init__(self, document: DocumentRef, text: str):
        self._document = document
        self._text = text
        self._lines = self._index_lines(text)
        self._selection: Tuple[int, int] = (0, 0)
        self._dirty = False
        self._saved_text = text
        self._session_token = str(ulid.ULID())

    @property
    def document(self) -> DocumentRef:
        return self._document

    @property
    def session_token(self) -> str:
        return self._session_token

    @property
    def saved_text(self) -> str:
        """Content as last loaded from or written to disk."""
        return self._saved_text

    @property
    def is_dirty(self) -> bool:
        """True when the buffer holds edits not yet persisted."""
        return self._dirty

    def renew_session(self) -> str:
        self._session_token = str(ulid.ULID())
        return self._session_token

    def mark_saved(self) -> None:
        self._saved_text = self._text
        self._dirty = False

    def load(self, text: str) -> None:
        """Replace the whole content, e.g. after an external change on disk."""
        self._text = text
        self._lines = self._index_lines(text)
        self._selection = (0, 0)
        self._saved_text = text
        self._dirty = False

    @staticmethod
    def _index_lines(text: str) -> List[Tuple[int, int]]:
        """(start, end) offsets of each line's content, terminators excluded."""
        spans = []
        start = 0
        for terminator in LINE_TERMINATOR.finditer(text):
            spans.append((start, terminator.start()))
            start = terminator.end()
        spans.append((start, len(text)))
        return spans

    def _offset(self, line: int, ch: int) -> int:
        line = min(max(line, 0), len(self._lines) - 1)
        start, end = self._lines[line]
        return start + min(max(ch, 0), end - start)

    def set_selection(self, start_line: int, start_ch: int, end_line: int, end_ch: int) -> None:
        anchor = self._offset(start_line, start_ch)
        head = self._offset(end_line, end_ch)
        self._selection = (min(anchor, head), max(anchor, head))

    def get_selection_text(self) -> str:
        start, end = self._selection
        return self._text[start:end]

    def replace_selection(self, text: str) -> None:
        start, end = self._selection
        self._text = self._text[:start] + text + self._text[end:]
        self._lines = self._index_lines(self._text)
        self._selection = (start + len(text), start + len(text))
        self._dirty = True
        logger.debug(f"Edited {self._document.path} at offset {start}")

    def get_line(self, n: int) -> str:
        if not 0 <= n < len(self._lines):
            raise IndexError(f"Line {n} out of range for {self._document.path}")
        start, end = self._lines[n]
        return self._text[start:end]

    def line_count(self) -> int:
        return len(self._lines)

    def get_full_text(self) -> str:
        return self._text
