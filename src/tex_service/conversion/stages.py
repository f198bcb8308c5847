"""External tool stages of the render pipeline.

Each builder returns `(command, args)` for the stage runner. Arguments use
paths relative to the workspace, since every stage runs with the workspace as
its working directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from tex_service import config

from .workspace import (
    COMPRESSED_FILENAME,
    PDF_FILENAME,
    PNG_FILENAME,
    SOURCE_FILENAME,
    SVG_FILENAME,
    Workspace,
)


class StageKind:
    COMPILE = "compile"
    RASTERIZE = "rasterize"
    VECTORIZE = "vectorize"
    COMPRESS = "compress"


_EXPECTED_OUTPUT = {
    StageKind.COMPILE: PDF_FILENAME,
    StageKind.RASTERIZE: PNG_FILENAME,
    StageKind.VECTORIZE: SVG_FILENAME,
    StageKind.COMPRESS: COMPRESSED_FILENAME,
}


def expected_output(kind: str, workspace: Workspace) -> Path:
    """Path of the file a stage of `kind` must produce to count as successful."""
    return workspace.root / _EXPECTED_OUTPUT[kind]


def compile_command(executable: str = config.LATEX_COMPILER) -> tuple[str, list[str]]:
    # nonstopmode: the compiler keeps going past errors instead of prompting
    return executable, [
        "-interaction=nonstopmode",
        "-no-shell-escape",
        SOURCE_FILENAME,
    ]


def rasterize_command(dpi: int, executable: str = config.PDFTOPPM) -> tuple[str, list[str]]:
    # -singlefile renders the first page to <root>.png without a page suffix
    return executable, [
        "-png",
        "-singlefile",
        "-r",
        str(dpi),
        PDF_FILENAME,
        Path(PNG_FILENAME).stem,
    ]


def vectorize_command(executable: str = config.PDFTOCAIRO) -> tuple[str, list[str]]:
    return executable, ["-svg", PDF_FILENAME, SVG_FILENAME]


def compress_command(executable: str = config.GHOSTSCRIPT) -> tuple[str, list[str]]:
    return executable, [
        "-sDEVICE=pdfwrite",
        "-dNOPAUSE",
        "-dBATCH",
        "-dSAFER",
        "-dQUIET",
        "-dCompatibilityLevel=1.5",
        "-dPDFSETTINGS=/ebook",
        f"-sOutputFile={COMPRESSED_FILENAME}",
        PDF_FILENAME,
    ]


@dataclass(frozen=True)
class ResolutionLadder:
    """Descending raster resolutions tried until the image fits.

    Iterating yields the rungs lazily and from the top each time.
    """

    values: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        if not self.values:
            raise ValueError("resolution ladder must not be empty")
        if any(v <= 0 for v in self.values):
            raise ValueError(f"resolution ladder values must be positive: {self.values}")
        if any(a <= b for a, b in zip(self.values, self.values[1:])):
            raise ValueError(f"resolution ladder must be strictly descending: {self.values}")

    def __iter__(self) -> Iterator[int]:
        yield from self.values

    def __len__(self) -> int:
        return len(self.values)


DEFAULT_LADDER = ResolutionLadder(config.DPI_LADDER)
