import pytest

from tex_service.conversion.stages import (
    DEFAULT_LADDER,
    ResolutionLadder,
    compile_command,
    compress_command,
    rasterize_command,
    vectorize_command,
)


def test_default_ladder_values() -> None:
    assert list(DEFAULT_LADDER) == [600, 300, 150, 100, 50, 2]


def test_ladder_is_restartable() -> None:
    ladder = ResolutionLadder((300, 100))
    it = iter(ladder)
    assert next(it) == 300
    assert list(ladder) == [300, 100]
    assert next(it) == 100


def test_ladder_accepts_lists() -> None:
    assert ResolutionLadder([10, 5]).values == (10, 5)


@pytest.mark.parametrize("values", [(), (300, 300), (100, 300), (300, 0), (300, -1)])
def test_invalid_ladders_are_rejected(values) -> None:
    with pytest.raises(ValueError):
        ResolutionLadder(values)


def test_compile_command_runs_nonstop_on_the_source() -> None:
    command, args = compile_command("pdflatex")
    assert command == "pdflatex"
    assert "-interaction=nonstopmode" in args
    assert args[-1] == "document.tex"


def test_rasterize_command_carries_resolution() -> None:
    command, args = rasterize_command(150, "pdftoppm")
    assert command == "pdftoppm"
    assert args[args.index("-r") + 1] == "150"
    assert args[-2:] == ["document.pdf", "document"]


def test_vectorize_command() -> None:
    assert vectorize_command("pdftocairo") == ("pdftocairo", ["-svg", "document.pdf", "document.svg"])


def test_compress_command_writes_separate_file() -> None:
    command, args = compress_command("gs")
    assert command == "gs"
    assert "-sDEVICE=pdfwrite" in args
    assert "-sOutputFile=compressed.pdf" in args
    assert args[-1] == "document.pdf"
