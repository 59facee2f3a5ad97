"""Filesystem vault backend with an in-memory live editor."""

import os
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles
from loguru import logger

from .backend import DocumentRef, EditableSurface, NoteBackend
from .config import Config
from .editor import TextBuffer
from .errors import PersistFailure, ReadFailure


class VaultBackend(NoteBackend):
    """
    Notes stored as files under `config.vault_path`.

    Opened documents are kept as TextBuffers, one per path, so edits that
    were not persisted survive switching to another document and back.
    Files are read and written with `newline=""` so line terminators are
    preserved byte for byte.
    """

    def __init__(self, config: Config):
        self.config = config
        self.vault_path = config.vault_path
        self.encoding = config.documents.encoding
        self._extensions = tuple(ext.lower() for ext in config.documents.extensions)
        self._exclude_dirs = set(config.documents.exclude_dirs)

        self._buffers: Dict[str, TextBuffer] = {}
        self._active: Optional[TextBuffer] = None

    def _resolve(self, path: str) -> Optional[Path]:
        """Absolute path for a vault-relative one, None if it escapes the vault."""
        full = (self.vault_path / path).resolve()
        try:
            full.relative_to(self.vault_path)
        except ValueError:
            return None
        return full

    def list_documents(self) -> List[DocumentRef]:
        documents = []
        for root, dirs, files in os.walk(self.vault_path):
            # Prune in place so excluded trees are never entered
            dirs[:] = sorted(d for d in dirs if d not in self._exclude_dirs)
            for name in sorted(files):
                if not name.lower().endswith(self._extensions):
                    continue
                relative = (Path(root) / name).relative_to(self.vault_path)
                documents.append(DocumentRef(relative.as_posix()))
        return documents

    async def read_document(self, ref: DocumentRef) -> str:
        full = self._resolve(ref.path)
        if full is None:
            raise ReadFailure(ref.path, "outside the vault")
        try:
            async with aiofiles.open(full, 'r', encoding=self.encoding, newline='') as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ReadFailure(ref.path, str(e)) from e

    async def activate_for_editing(self, path: str) -> None:
        """
        Focus the buffer for path, opening it from disk if needed.

        An open buffer is checked against the file first. A clean buffer is
        reloaded when the file changed underneath it. A dirty one cannot be
        reconciled, so the path is left inactive and its edits are kept.
        """
        buffer = self._buffers.get(path)
        try:
            text = await self.read_document(DocumentRef(path))
        except ReadFailure as e:
            logger.debug(f"Cannot activate {path}: {e}")
            if buffer is not None and buffer is self._active:
                self._active = None
            return

        if buffer is None:
            buffer = TextBuffer(DocumentRef(path), text)
            self._buffers[path] = buffer
            logger.debug(f"Opened buffer for {path}")
        elif text != buffer.saved_text:
            if buffer.is_dirty:
                logger.warning(f"{path} changed on disk while it has unsaved edits")
                if buffer is self._active:
                    self._active = None
                return
            buffer.load(text)
            logger.debug(f"Reloaded {path} after an external change")

        buffer.renew_session()
        self._active = buffer

    def current_active_document(self) -> Optional[DocumentRef]:
        return self._active.document if self._active is not None else None

    def current_editing_surface(self) -> Optional[EditableSurface]:
        return self._active

    def close_document(self, path: str) -> None:
        """Drop the buffer for path; unsaved edits are discarded."""
        buffer = self._buffers.pop(path, None)
        if buffer is not None and buffer is self._active:
            self._active = None

    async def persist(self, ref: DocumentRef, full_text: str) -> None:
        full = self._resolve(ref.path)
        if full is None:
            raise PersistFailure(ref.path, "outside the vault")

        # Write beside the target, then swap it in
        tmp_path = full.with_name(f".{full.name}.vaultfind-tmp")
        try:
            async with aiofiles.open(tmp_path, 'w', encoding=self.encoding, newline='') as f:
                await f.write(full_text)
                await f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, full)
        except OSError as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise PersistFailure(ref.path, str(e)) from e

        buffer = self._buffers.get(ref.path)
        if buffer is not None and buffer.get_full_text() == full_text:
            buffer.mark_saved()
        logger.debug(f"Persisted {ref.path} ({len(full_text)} chars)")
