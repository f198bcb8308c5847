import shutil
from pathlib import Path

import pytest

from tex_service.conversion import WorkspaceManager


def test_acquire_creates_unique_directories(workspaces: WorkspaceManager, workspace_root: Path) -> None:
    acquired = [workspaces.acquire() for _ in range(20)]
    roots = {ws.root for ws in acquired}
    assert len(roots) == 20
    for ws in acquired:
        assert ws.root.is_dir()
        assert ws.root.parent == workspace_root.resolve()


def test_acquire_creates_missing_root(tmp_path: Path) -> None:
    manager = WorkspaceManager(tmp_path / "nested" / "root")
    ws = manager.acquire()
    assert ws.root.is_dir()


def test_release_removes_everything(workspaces: WorkspaceManager) -> None:
    ws = workspaces.acquire()
    ws.write_source(b"\\relax")
    (ws.root / "sub").mkdir()
    (ws.root / "sub" / "file.aux").write_text("x")
    workspaces.release(ws)
    assert not ws.root.exists()
    assert ws.released


def test_release_twice_is_harmless(workspaces: WorkspaceManager) -> None:
    ws = workspaces.acquire()
    workspaces.release(ws)
    workspaces.release(ws)
    assert not ws.root.exists()


def test_release_failure_is_not_raised(workspaces: WorkspaceManager, monkeypatch: pytest.MonkeyPatch) -> None:
    ws = workspaces.acquire()

    def failing_rmtree(path, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(shutil, "rmtree", failing_rmtree)
    workspaces.release(ws)
    assert ws.released


def test_single_source_document(workspaces: WorkspaceManager) -> None:
    with workspaces.scope() as ws:
        path = ws.write_source(b"one")
        assert path.read_bytes() == b"one"
        with pytest.raises(FileExistsError):
            ws.write_source(b"two")


def test_scope_releases_on_normal_exit(workspaces: WorkspaceManager) -> None:
    with workspaces.scope() as ws:
        root = ws.root
        assert root.is_dir()
    assert not root.exists()


def test_scope_releases_on_exception(workspaces: WorkspaceManager) -> None:
    with pytest.raises(RuntimeError):
        with workspaces.scope() as ws:
            root = ws.root
            raise RuntimeError("boom")
    assert not root.exists()
