from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


class ArtifactKind:
    PNG = "png"
    SVG = "svg"
    PDF = "pdf"


MEDIA_TYPES = {
    ArtifactKind.PNG: "image/png",
    ArtifactKind.SVG: "image/svg+xml",
    ArtifactKind.PDF: "application/pdf",
}


@dataclass(frozen=True)
class StageResult:
    """Captured outcome of one external tool invocation.

    `returncode` is negative when the process was ended by a signal.
    """

    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed: float | None = None
    timed_out: bool = False

    @property
    def exited_cleanly(self) -> bool:
        return self.returncode == 0 and not self.timed_out


@dataclass(frozen=True)
class ArtifactRequest:
    kind: str
    max_dimension: int | None = None


@dataclass(frozen=True)
class Artifact:
    data: bytes
    media_type: str


class StageRunner(Protocol):
    async def run(self, command: str, args: list[str], working_dir: Path) -> StageResult:
        """Run `command` with `args` inside `working_dir` and capture its output.

        A nonzero exit is returned as data. Failing to start the executable
        raises (OSError).
        """


class RasterInspector(Protocol):
    def dimensions(self, path: Path) -> tuple[int, int]:
        """Return (width, height) in pixels of the raster image at `path`."""
