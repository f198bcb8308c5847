import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from tex_service import config
from tex_service.logger import _log_debug, _log_info, _log_warning, log_stage_result, log_stage_start

from .interfaces import MEDIA_TYPES, Artifact, ArtifactKind, ArtifactRequest, RasterInspector, StageRunner
from .outcomes import FailureReason, KnownFailure, StageOutcome, Success, classify
from .stages import (
    DEFAULT_LADDER,
    ResolutionLadder,
    StageKind,
    compile_command,
    compress_command,
    rasterize_command,
    vectorize_command,
)
from .workspace import Workspace, WorkspaceManager


class RenderState:
    COMPILING = "compiling"
    RASTERIZING = "rasterizing"
    VECTORIZING = "vectorizing"
    COMPRESSING = "compressing"
    DONE = "done"
    FAILED = "failed"


FAILURE_LINES = {
    FailureReason.DIMENSION_TOO_LARGE: "Failed: Dimension too large",
    FailureReason.TOO_LARGE: "Failed: Image too large",
    FailureReason.UNKNOWN: "Failed: An unexpected error occurred",
}


@dataclass
class RenderResult:
    state: str
    narrative: list[str] = field(default_factory=list)
    artifact: Artifact | None = None
    reason: FailureReason | None = None
    dpi: int | None = None

    @property
    def ok(self) -> bool:
        return self.state == RenderState.DONE

    @property
    def diagnostic(self) -> str:
        return "\n".join(self.narrative)


class _Trace:
    """Accumulates the per-step narrative and the current pipeline state."""

    def __init__(self) -> None:
        self.state = RenderState.COMPILING
        self.lines: list[str] = []

    def enter(self, state: str, line: str) -> None:
        if state != self.state:
            _log_debug(f"State {self.state} -> {state}")
        self.state = state
        self.step(line)

    def step(self, line: str) -> None:
        self.lines.append(line)

    def fail(self, reason: FailureReason) -> RenderResult:
        self.lines.append(FAILURE_LINES[reason])
        _log_warning(f"Render failed while {self.state}: {reason.value}")
        self.state = RenderState.FAILED
        return RenderResult(state=RenderState.FAILED, narrative=self.lines, reason=reason)

    def done(self, artifact: Artifact, dpi: int | None = None) -> RenderResult:
        self.lines.append("Done.")
        self.state = RenderState.DONE
        return RenderResult(state=RenderState.DONE, narrative=self.lines, artifact=artifact, dpi=dpi)


def _failure_reason(outcome: StageOutcome) -> FailureReason:
    if isinstance(outcome, KnownFailure):
        return outcome.reason
    return FailureReason.UNKNOWN


class RenderService:
    """Core pipeline turning a LaTeX source into one artifact.

    Framework-agnostic: the HTTP layer hands in an ArtifactRequest and the
    source bytes and gets back a RenderResult. Classified failures come back
    as results; only infrastructure errors (tool cannot start, workspace I/O)
    are raised, and the workspace is released on every path.
    """

    def __init__(
        self,
        runner: StageRunner,
        inspector: RasterInspector,
        workspaces: WorkspaceManager,
        *,
        ladder: ResolutionLadder = DEFAULT_LADDER,
        max_dimension: int = config.MAX_RASTER_DIMENSION,
        max_concurrent: int = 0,
    ) -> None:
        self._runner = runner
        self._inspector = inspector
        self._workspaces = workspaces
        self._ladder = ladder
        self._max_dimension = max_dimension
        self._limit = asyncio.Semaphore(max_concurrent) if max_concurrent > 0 else None

    async def render(self, request: ArtifactRequest, source: bytes) -> RenderResult:
        if request.kind not in MEDIA_TYPES:
            raise ValueError(f"unsupported artifact kind: {request.kind}")
        if self._limit is None:
            return await self._render(request, source)
        async with self._limit:
            return await self._render(request, source)

    async def _render(self, request: ArtifactRequest, source: bytes) -> RenderResult:
        trace = _Trace()
        with self._workspaces.scope() as ws:
            await asyncio.to_thread(ws.write_source, source)
            _log_info(f"Rendering {request.kind} ({len(source)} bytes) in {ws.root.name}")

            trace.enter(RenderState.COMPILING, "Generating PDF...")
            outcome = await self._run_stage(StageKind.COMPILE, *compile_command(), ws)
            if not isinstance(outcome, Success):
                return trace.fail(_failure_reason(outcome))

            if request.kind == ArtifactKind.PNG:
                return await self._rasterize(ws, request, trace)
            if request.kind == ArtifactKind.SVG:
                return await self._single(
                    ws, trace, RenderState.VECTORIZING, "Generating SVG...",
                    StageKind.VECTORIZE, vectorize_command(), ws.svg_path, ArtifactKind.SVG,
                )
            return await self._single(
                ws, trace, RenderState.COMPRESSING, "Compressing PDF...",
                StageKind.COMPRESS, compress_command(), ws.compressed_path, ArtifactKind.PDF,
            )

    async def _rasterize(self, ws: Workspace, request: ArtifactRequest, trace: _Trace) -> RenderResult:
        max_dimension = request.max_dimension or self._max_dimension
        for dpi in self._ladder:
            trace.enter(RenderState.RASTERIZING, f"Generating PNG at {dpi} DPI...")
            # every rung rewrites the same file; a stale one must not pass as output
            ws.png_path.unlink(missing_ok=True)
            outcome = await self._run_stage(StageKind.RASTERIZE, *rasterize_command(dpi), ws)
            if not isinstance(outcome, Success):
                return trace.fail(_failure_reason(outcome))

            try:
                width, height = await asyncio.to_thread(self._inspector.dimensions, ws.png_path)
            except OSError as exc:
                # unreadable raster from a tool that exited cleanly
                _log_warning(f"Cannot read PNG rendered at {dpi} DPI: {exc}")
                return trace.fail(FailureReason.UNKNOWN)
            if width <= max_dimension and height <= max_dimension:
                data = await asyncio.to_thread(ws.png_path.read_bytes)
                _log_info(f"PNG {width}x{height} at {dpi} DPI")
                return trace.done(Artifact(data, MEDIA_TYPES[ArtifactKind.PNG]), dpi=dpi)

            trace.step(f"PNG too large ({width}x{height})...")
            _log_info(f"PNG {width}x{height} at {dpi} DPI exceeds {max_dimension}")
        return trace.fail(FailureReason.TOO_LARGE)

    async def _single(
        self,
        ws: Workspace,
        trace: _Trace,
        state: str,
        line: str,
        kind: str,
        command: tuple[str, list[str]],
        output: Path,
        artifact_kind: str,
    ) -> RenderResult:
        trace.enter(state, line)
        outcome = await self._run_stage(kind, *command, ws)
        if not isinstance(outcome, Success):
            return trace.fail(_failure_reason(outcome))
        data = await asyncio.to_thread(output.read_bytes)
        return trace.done(Artifact(data, MEDIA_TYPES[artifact_kind]))

    async def _run_stage(self, kind: str, command: str, args: list[str], ws: Workspace) -> StageOutcome:
        log_stage_start(kind, [command, *args])
        result = await self._runner.run(command, args, ws.root)
        outcome = classify(kind, result, ws)
        log_stage_result(kind, result, outcome)
        return outcome
