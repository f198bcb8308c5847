import os
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from loguru import logger
from starlette.datastructures import UploadFile

from tex_service import __version__, config
from tex_service.conversion import ArtifactKind, ArtifactRequest, RenderResult, RenderService, WorkspaceManager
from tex_service.conversion.adapters import PillowRasterInspector, SubprocessStageRunner
from tex_service.logger import setup_logging

SERVICE: RenderService | None = None

GENERIC_ERROR = "An unexpected error occurred"


class InvalidSourceError(ValueError):
    """The request body is not a usable LaTeX source."""


def _build_service() -> RenderService:
    return RenderService(
        runner=SubprocessStageRunner(timeout=config.STAGE_TIMEOUT_SEC),
        inspector=PillowRasterInspector(),
        workspaces=WorkspaceManager(config.WORKSPACE_ROOT),
        max_dimension=config.MAX_RASTER_DIMENSION,
        max_concurrent=config.MAX_CONCURRENT_RENDERS,
    )


def get_service() -> RenderService:
    global SERVICE
    if SERVICE is None:
        SERVICE = _build_service()
    return SERVICE


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    get_service()
    logger.info(f"TeX render service {__version__} ready (workspaces under {config.WORKSPACE_ROOT})")
    yield


app = FastAPI(
    title="TeX Render Service",
    version=os.getenv("TEX_SERVICE_VERSION", __version__),
    description="Compiles LaTeX sources and returns PNG, SVG or compressed PDF renderings.",
    lifespan=lifespan,
)


@app.middleware("http")
async def _log_requests(request: Request, call_next):
    start = time.monotonic()
    try:
        response = await call_next(request)
    except Exception:
        # the 500 is sent by the outer error middleware after this one unwinds
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info(f"{request.method} {request.url.path} 500 ({elapsed_ms:.0f}ms)")
        raise
    elapsed_ms = (time.monotonic() - start) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} ({elapsed_ms:.0f}ms)")
    return response


@app.exception_handler(InvalidSourceError)
async def _invalid_source(request: Request, exc: InvalidSourceError) -> PlainTextResponse:
    logger.warning(f"Rejected {request.url.path}: {exc}")
    return PlainTextResponse(str(exc), status_code=400)


@app.exception_handler(Exception)
async def _unexpected_error(request: Request, exc: Exception) -> PlainTextResponse:
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return PlainTextResponse(GENERIC_ERROR, status_code=500)


async def _read_source(request: Request) -> bytes:
    """Return the LaTeX source from a raw body or a single-file multipart form."""
    content_type = request.headers.get("content-type", "")
    media_type = content_type.split(";")[0].strip().lower()
    max_bytes = config.MAX_SOURCE_KB * 1024

    if media_type == "multipart/form-data":
        try:
            form = await request.form()
        except Exception as e:
            raise InvalidSourceError("malformed multipart payload") from e
        try:
            files = [v for _, v in form.multi_items() if isinstance(v, UploadFile)]
            if len(files) != 1:
                raise InvalidSourceError(f"expected exactly one file part, got {len(files)}")
            data = await files[0].read(max_bytes + 1)
        finally:
            await form.close()
    elif media_type in config.ALLOWED_SOURCE_TYPES:
        data = await request.body()
    else:
        raise InvalidSourceError(f"unsupported content type: {content_type or '(none)'}")

    if len(data) > max_bytes:
        raise InvalidSourceError(f"source exceeds {config.MAX_SOURCE_KB} KB")
    if not data.strip():
        raise InvalidSourceError("empty source document")
    return data


def _respond(kind: str, result: RenderResult) -> Response:
    if result.ok and result.artifact is not None:
        headers = {
            "Content-Disposition": f'inline; filename="document.{kind}"',
            "Cache-Control": "no-store",
        }
        if result.dpi is not None:
            headers["X-Render-DPI"] = str(result.dpi)
        return Response(content=result.artifact.data, media_type=result.artifact.media_type, headers=headers)

    # The request was well-formed; the failure is about the document, so 200 + narrative
    headers = {"X-Render-Status": "failed"}
    if result.reason is not None:
        headers["X-Render-Reason"] = result.reason.value
    return PlainTextResponse(result.diagnostic, headers=headers)


async def _render(kind: str, request: Request, service: RenderService) -> Response:
    source = await _read_source(request)
    logger.debug(source.decode("utf-8", errors="replace"))
    max_dimension = config.MAX_RASTER_DIMENSION if kind == ArtifactKind.PNG else None
    result = await service.render(ArtifactRequest(kind=kind, max_dimension=max_dimension), source)
    return _respond(kind, result)


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.post("/png")
async def render_png(request: Request, service: RenderService = Depends(get_service)) -> Response:
    """Render the first page of a LaTeX source as PNG, lowering DPI until it fits."""
    return await _render(ArtifactKind.PNG, request, service)


@app.post("/svg")
async def render_svg(request: Request, service: RenderService = Depends(get_service)) -> Response:
    """Render the first page of a LaTeX source as SVG."""
    return await _render(ArtifactKind.SVG, request, service)


@app.post("/pdf")
async def render_pdf(request: Request, service: RenderService = Depends(get_service)) -> Response:
    """Compile a LaTeX source to a compressed PDF."""
    return await _render(ArtifactKind.PDF, request, service)


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    # Enable reload in dev unless explicitly disabled
    reload = os.getenv("RELOAD", "true").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("tex_service.webapi:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()
