import asyncio
import contextlib
import time
import warnings
from pathlib import Path

from PIL import Image

from .interfaces import RasterInspector, StageResult, StageRunner


class SubprocessStageRunner(StageRunner):
    """Runs external tools as asyncio subprocesses.

    The event loop is never blocked while a tool runs, so other requests keep
    being served. Output is buffered in full; artifacts go to files, not stdout.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout or None

    async def run(self, command: str, args: list[str], working_dir: Path) -> StageResult:
        start = time.monotonic()
        # FileNotFoundError / PermissionError propagate: the tool never ran
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=str(working_dir),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        pending = asyncio.ensure_future(proc.communicate())
        timed_out = False
        try:
            stdout, stderr = await asyncio.wait_for(asyncio.shield(pending), timeout=self._timeout)
        except asyncio.TimeoutError:
            # the tool may exit on its own between the expiry and the kill
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            stdout, stderr = await pending
            timed_out = True
        except asyncio.CancelledError:
            # Let the tool finish writing before the caller tears down the workspace
            await asyncio.wait([pending])
            raise

        return StageResult(
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            elapsed=time.monotonic() - start,
            timed_out=timed_out,
        )


class PillowRasterInspector(RasterInspector):
    def dimensions(self, path: Path) -> tuple[int, int]:
        # Only the header is read; oversized renders are exactly what we are
        # looking for, so Pillow's decompression-bomb guard must not fire here.
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", Image.DecompressionBombWarning)
            max_pixels = Image.MAX_IMAGE_PIXELS
            Image.MAX_IMAGE_PIXELS = None
            try:
                with Image.open(path) as img:
                    return img.size
            finally:
                Image.MAX_IMAGE_PIXELS = max_pixels
