"""
PDF DPI Service - REST API for normalizing embedded image resolution

This package provides a FastAPI-based web service that rewrites the raster
resolution of uploaded PDF documents with Ghostscript. It enables:

- Batch PDF uploads with MIME type, size and count validation
- Per-file override directives pinning image resolution and metadata
- Sequential per-request conversion with guaranteed cleanup of temporary files
- Download of converted outputs by unguessable token

Key Components:
    - main: FastAPI application and HTTP endpoint definitions
    - intake: Upload validation and staging
    - directive: PostScript override directive generation
    - engine: Ghostscript invocation with time budget
    - converter: Batch orchestration and output lookup
    - configuration: Settings loading and merging logic
    - utils: Filesystem and token utilities

Usage:
    Run the API server with:
        pdf-dpi-service

    Or through uvicorn directly:
        uvicorn pdf_dpi_service.main:app --host 0.0.0.0 --port 5000
"""

__version__ = "0.1.0"
