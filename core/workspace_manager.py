"""
Workspace Manager for Session Document Files

Each loaded document gets a scoped handle: a copy of its bytes inside the
session workspace, served to the viewer. The handle is owned by exactly one
document and released when that document is removed or the session ends.
"""

import hashlib
import re
import shutil
import tempfile
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class DocumentHandle:
    """A transient on-disk copy of one document. `release()` is idempotent."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> bool:
        """Delete the backing file. Returns True only on the call that released it."""
        if self._released:
            return False
        self._released = True
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete document file {self.path}: {e}")
        logger.debug(f"Released document handle {self.path.name}")
        return True

    def __repr__(self) -> str:
        state = "released" if self._released else "open"
        return f"DocumentHandle({self.path.name!r}, {state})"


class WorkspaceManager:
    """
    Manages the workspace directory holding the files of one session.
    """

    def __init__(self, base_workspace_dir: Optional[str] = None):
        """
        Args:
            base_workspace_dir: Directory for document files. Defaults to a
                                fresh temporary directory owned by this manager.
        """
        self._owns_dir = base_workspace_dir is None
        if base_workspace_dir is None:
            base_workspace_dir = tempfile.mkdtemp(prefix="docnav_")

        self.base_workspace_dir = Path(base_workspace_dir)
        self.base_workspace_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"WorkspaceManager initialized with base_dir: {self.base_workspace_dir}")

    def get_document_path(self, document_id: str) -> Path:
        # Sanitizing is lossy; the digest of the raw id keeps paths distinct
        safe = _UNSAFE_CHARS.sub("_", document_id).strip("._") or "document"
        digest = hashlib.sha1(document_id.encode("utf-8")).hexdigest()[:12]
        return self.base_workspace_dir / f"{safe}_{digest}.pdf"

    def create_handle(self, document_id: str, data: bytes) -> DocumentHandle:
        path = self.get_document_path(document_id)
        path.write_bytes(data)
        return DocumentHandle(path)

    def cleanup(self) -> None:
        """Remove the workspace directory if this manager created it."""
        if self._owns_dir and self.base_workspace_dir.exists():
            shutil.rmtree(self.base_workspace_dir, ignore_errors=True)
            logger.info(f"Removed workspace {self.base_workspace_dir}")
