import os
import tempfile
from pathlib import Path


def _int_list(raw: str) -> tuple[int, ...]:
    return tuple(int(part) for part in raw.split(",") if part.strip())


# Raster constraint and fallback ladder
MAX_RASTER_DIMENSION = int(os.getenv("MAX_RASTER_DIMENSION", "8192"))
DPI_LADDER = _int_list(os.getenv("DPI_LADDER", "600,300,150,100,50,2"))

# Stage and request limits (0 disables)
STAGE_TIMEOUT_SEC = float(os.getenv("STAGE_TIMEOUT_SEC", "0"))
MAX_CONCURRENT_RENDERS = int(os.getenv("MAX_CONCURRENT_RENDERS", "0"))
MAX_SOURCE_KB = int(os.getenv("MAX_SOURCE_KB", "1024"))

WORKSPACE_ROOT = Path(os.getenv("WORKSPACE_ROOT", tempfile.gettempdir())).resolve()

ALLOWED_SOURCE_TYPES = {
    t.strip().lower()
    for t in os.getenv(
        "ALLOWED_SOURCE_TYPES",
        "application/x-tex,application/x-latex,text/x-tex",
    ).split(",")
    if t.strip()
}

# External tools
LATEX_COMPILER = os.getenv("LATEX_COMPILER", "pdflatex")
PDFTOPPM = os.getenv("PDFTOPPM", "pdftoppm")
PDFTOCAIRO = os.getenv("PDFTOCAIRO", "pdftocairo")
GHOSTSCRIPT = os.getenv("GHOSTSCRIPT", "gs")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
