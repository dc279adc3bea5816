from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from . import __version__
from .configuration import configure_logging, get_settings
from .converter import ConversionManager, ConversionRequest
from .engine import GhostscriptEngine
from .exceptions import NoFilesError, ServiceError
from .intake import parse_dpi, stage_uploads, validate_dpi
from .models import ConvertResponse, ErrorResponse

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title="PDF DPI Service", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors.origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

conversion_manager = ConversionManager(
    output_root=Path(settings.storage.output_dir),
    upload_root=Path(settings.storage.upload_dir),
    engine=GhostscriptEngine(
        binary=settings.engine.binary,
        timeout_seconds=settings.engine.timeout_seconds,
        fail_on_stderr=settings.engine.fail_on_stderr,
    ),
    max_workers=settings.workers.max_workers,
)


def get_conversion_manager() -> ConversionManager:
    return conversion_manager


def _error_body(exc: ServiceError) -> Dict[str, str]:
    if exc.status_code >= 500:
        return {"error": "Internal Server Error", "details": exc.message}
    return {"error": exc.message}


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected server error on {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal Server Error", "details": str(exc)})


@app.on_event("shutdown")
def _shutdown() -> None:
    conversion_manager.shutdown()


@app.get("/healthz")
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


@app.post(
    "/convert",
    response_model=ConvertResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No files, too many files, non-PDF file or DPI out of range"},
        413: {"model": ErrorResponse, "description": "File exceeds the size limit"},
        500: {"model": ErrorResponse, "description": "A file of the batch failed to convert"},
    },
)
async def convert(
    files: Optional[List[UploadFile]] = File(None),
    dpi: Optional[str] = Form(None),
    manager: ConversionManager = Depends(get_conversion_manager),
) -> ConvertResponse:
    """Normalize the embedded image resolution of one or more PDFs.

    Accepts multipart/form-data with one or more parts named "files" and an
    optional "dpi" field (default 300, valid range 72-2400). Validation
    happens before anything is staged; a failure on any file fails the
    whole request.
    """
    if not files:
        raise NoFilesError()
    target_dpi = validate_dpi(parse_dpi(dpi))
    staged = await stage_uploads(
        files,
        manager.upload_root,
        max_bytes=settings.limits.max_file_size_mb * 1024 * 1024,
        max_files=settings.limits.max_files,
    )
    results = await manager.convert(ConversionRequest(files=staged, target_dpi=target_dpi))
    return ConvertResponse(message="Files processed successfully", files=results)


@app.get(
    "/output/{filename}",
    response_class=FileResponse,
    responses={404: {"model": ErrorResponse, "description": "No output with this name"}},
)
def download_output(filename: str, manager: ConversionManager = Depends(get_conversion_manager)):
    file_path = manager.resolve_output(filename)
    if file_path is None:
        return JSONResponse(status_code=404, content={"error": "File not found"})
    return FileResponse(file_path, media_type="application/pdf", filename=file_path.name)


def run() -> None:
    """Run the ASGI server using uvicorn.

    Binds to server.host:server.port (default 0.0.0.0:5000). Set PORT to override.
    """
    import uvicorn

    configure_logging(settings.logging.level)
    logger.info(f"Starting PDF DPI service on http://{settings.server.host}:{settings.server.port}")
    uvicorn.run(app, host=settings.server.host, port=int(settings.server.port))


if __name__ == "__main__":
    run()
