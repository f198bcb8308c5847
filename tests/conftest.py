from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from tex_service import config
from tex_service.conversion import RenderService, StageResult, WorkspaceManager
from tex_service.conversion.stages import ResolutionLadder
from tex_service.conversion.workspace import COMPRESSED_FILENAME, PDF_FILENAME, PNG_FILENAME, SVG_FILENAME

Behaviour = Callable[[list[str], Path], StageResult]


def produces(filename: str | None, *, returncode: int = 0, stdout: str = "", stderr: str = "") -> Behaviour:
    """Fake tool that optionally writes `filename` and exits with `returncode`."""

    def _run(args: list[str], cwd: Path) -> StageResult:
        if filename is not None:
            (cwd / filename).write_bytes(f"{filename}:{' '.join(args)}".encode())
        return StageResult(returncode=returncode, stdout=stdout, stderr=stderr, elapsed=0.01)

    return _run


def rasterizer(*, returncode: int = 0) -> Behaviour:
    def _run(args: list[str], cwd: Path) -> StageResult:
        dpi = args[args.index("-r") + 1]
        (cwd / PNG_FILENAME).write_bytes(f"png@{dpi}".encode())
        return StageResult(returncode=returncode, elapsed=0.01)

    return _run


class FakeRunner:
    """Stage runner keyed by executable name; records every invocation."""

    def __init__(self, **overrides: Behaviour) -> None:
        self.behaviours: dict[str, Behaviour] = {
            config.LATEX_COMPILER: produces(PDF_FILENAME, stdout="Output written on document.pdf"),
            config.PDFTOPPM: rasterizer(),
            config.PDFTOCAIRO: produces(SVG_FILENAME),
            config.GHOSTSCRIPT: produces(COMPRESSED_FILENAME),
        }
        for name, behaviour in overrides.items():
            self.behaviours[getattr(config, name)] = behaviour
        self.calls: list[tuple[str, list[str], Path]] = []

    async def run(self, command: str, args: list[str], working_dir: Path) -> StageResult:
        self.calls.append((command, list(args), working_dir))
        behaviour = self.behaviours.get(command)
        if behaviour is None:
            raise FileNotFoundError(command)
        return behaviour(args, working_dir)

    def commands(self) -> list[str]:
        return [command for command, _, _ in self.calls]

    def dpis(self) -> list[int]:
        return [int(args[args.index("-r") + 1]) for command, args, _ in self.calls if command == config.PDFTOPPM]


class ScriptedInspector:
    """Returns the queued sizes in order, one per inspected raster."""

    def __init__(self, sizes: list[tuple[int, int]] | None = None) -> None:
        self.sizes = list(sizes or [])
        self.inspected: list[Path] = []

    def dimensions(self, path: Path) -> tuple[int, int]:
        self.inspected.append(path)
        if self.sizes:
            return self.sizes.pop(0)
        return (100, 100)


@pytest.fixture()
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture()
def workspaces(workspace_root: Path) -> WorkspaceManager:
    return WorkspaceManager(workspace_root)


@pytest.fixture()
def ladder() -> ResolutionLadder:
    return ResolutionLadder((600, 300, 150, 100, 50, 2))


@pytest.fixture()
def make_service(workspaces: WorkspaceManager, ladder: ResolutionLadder):
    def _make(runner: FakeRunner | None = None, inspector: ScriptedInspector | None = None, **kwargs) -> RenderService:
        kwargs.setdefault("max_dimension", 8192)
        return RenderService(
            runner=runner or FakeRunner(),
            inspector=inspector or ScriptedInspector(),
            workspaces=workspaces,
            ladder=ladder,
            **kwargs,
        )

    return _make


SIMPLE_SOURCE = rb"\documentclass{article}\begin{document}x\end{document}"
