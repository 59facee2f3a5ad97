"""
Interfaces of the document store and live editor the engine drives.

The engine never touches files directly. It enumerates and reads documents,
brings one into the live editing surface, edits it there and asks the
backend to persist the result.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class DocumentRef:
    """Identity of one document in the collection."""
    path: str  # vault-relative, forward slashes

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class EditableSurface(ABC):
    """
    Live, possibly unsaved view of the active document.

    Lines are 0-based. Selection end is exclusive.
    """

    @property
    @abstractmethod
    def session_token(self) -> str:
        """Changes every time the surface is (re)activated."""

    @property
    @abstractmethod
    def document(self) -> DocumentRef:
        ...

    @abstractmethod
    def set_selection(self, start_line: int, start_ch: int, end_line: int, end_ch: int) -> None:
        ...

    @abstractmethod
    def get_selection_text(self) -> str:
        ...

    @abstractmethod
    def replace_selection(self, text: str) -> None:
        ...

    @abstractmethod
    def get_line(self, n: int) -> str:
        ...

    @abstractmethod
    def line_count(self) -> int:
        ...

    @abstractmethod
    def get_full_text(self) -> str:
        ...


class NoteBackend(ABC):
    """Document collection plus live editor."""

    @abstractmethod
    def list_documents(self) -> List[DocumentRef]:
        """Enumeration order defines result order."""

    @abstractmethod
    async def read_document(self, ref: DocumentRef) -> str:
        """Raises ReadFailure if the document cannot be read."""

    @abstractmethod
    async def activate_for_editing(self, path: str) -> None:
        """Best effort; may leave focus unchanged."""

    @abstractmethod
    def current_active_document(self) -> Optional[DocumentRef]:
        ...

    @abstractmethod
    def current_editing_surface(self) -> Optional[EditableSurface]:
        ...

    @abstractmethod
    async def persist(self, ref: DocumentRef, full_text: str) -> None:
        """Durable write; complete when the coroutine returns."""
