from __future__ import annotations

import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from tex_service.logger import _log_debug, _log_error, _log_warning

WORKSPACE_PREFIX = "tex-render-"

SOURCE_FILENAME = "document.tex"
PDF_FILENAME = "document.pdf"
PNG_FILENAME = "document.png"
SVG_FILENAME = "document.svg"
COMPRESSED_FILENAME = "compressed.pdf"


@dataclass
class Workspace:
    """Scratch directory owned by a single render request."""

    root: Path
    released: bool = field(default=False, compare=False)

    @property
    def source_path(self) -> Path:
        return self.root / SOURCE_FILENAME

    @property
    def pdf_path(self) -> Path:
        return self.root / PDF_FILENAME

    @property
    def png_path(self) -> Path:
        return self.root / PNG_FILENAME

    @property
    def svg_path(self) -> Path:
        return self.root / SVG_FILENAME

    @property
    def compressed_path(self) -> Path:
        return self.root / COMPRESSED_FILENAME

    def write_source(self, data: bytes) -> Path:
        if self.source_path.exists():
            raise FileExistsError(f"source document already written in {self.root}")
        self.source_path.write_bytes(data)
        return self.source_path


class WorkspaceManager:
    """Creates and removes per-request workspaces.

    Directories are never pooled or reused; names come from `tempfile.mkdtemp`,
    which is safe across concurrent callers.
    """

    def __init__(self, root: Path | None = None) -> None:
        self._root = Path(root).resolve() if root is not None else None

    def acquire(self) -> Workspace:
        if self._root is not None:
            self._root.mkdir(parents=True, exist_ok=True)
        path = tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=self._root)
        ws = Workspace(root=Path(path))
        _log_debug(f"Workspace acquired: {ws.root}")
        return ws

    def release(self, workspace: Workspace) -> None:
        """Remove the workspace directory. Errors are logged, never raised."""
        if workspace.released:
            _log_warning(f"Workspace already released: {workspace.root}")
            return
        workspace.released = True
        try:
            shutil.rmtree(workspace.root)
        except OSError as e:
            _log_error(f"Workspace cleanup failed for {workspace.root}: {e}")
            return
        _log_debug(f"Workspace released: {workspace.root}")

    @contextmanager
    def scope(self) -> Iterator[Workspace]:
        ws = self.acquire()
        try:
            yield ws
        finally:
            self.release(ws)
