"""
Shot List Service - FastAPI application.

Provides the endpoint that turns a shot list into a scene-grouped PDF and
serves the generated files from /pdfs.
"""

import asyncio
import json
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from . import __version__
from .assembler import build_document
from .config import get_settings, validate_config_on_startup
from .errors import PersistenceError, ShotListValidationError
from .logger import setup_logging
from .models import GenerateRequest, GenerateResponse, HealthResponse, canonicalize_params
from .surface import resolve_header_font

settings = get_settings()

setup_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)

# Validate configuration at startup
validate_config_on_startup()

# StaticFiles requires the directory to exist when mounted
Path(settings.output_dir).mkdir(parents=True, exist_ok=True)

app = FastAPI(
    title="Shot List Service",
    version=__version__,
    description="Lays out storyboard shots into scene-grouped PDF documents"
)
app.mount("/pdfs", StaticFiles(directory=settings.output_dir), name="pdfs")


# ============================================================================
# Startup Event - Resolve header font
# ============================================================================

@app.on_event("startup")
async def resolve_fonts_on_startup():
    """Register the optional header font once, before the first request."""
    font = resolve_header_font(settings.header_font_path)
    logger.info(f"Shot List Service starting - header font: {font}")


# ============================================================================
# Request parsing
# ============================================================================

async def _collect_params(request: Request) -> Dict[str, Any]:
    """
    Merge JSON body and query string parameters.

    Query parameters take precedence per field. A repeated query key becomes
    a list; a single value is passed through as a string.
    """
    body: Dict[str, Any] = {}
    raw = await request.body()
    if raw.strip():
        try:
            parsed = json.loads(raw)
        except ValueError:
            raise HTTPException(status_code=400, detail="Request body must be valid JSON")
        if not isinstance(parsed, dict):
            raise HTTPException(status_code=400, detail="Request body must be a JSON object")
        body = canonicalize_params(parsed)

    query: Dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        query[key] = values[0] if len(values) == 1 else values

    merged = dict(body)
    merged.update(canonicalize_params(query))
    return merged


def _error_detail(message: str, error: Exception) -> str:
    if settings.show_error_details:
        return f"{message}: {error}"
    return message


# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint for container orchestration.

    Returns HTTP 503 if the output directory is not writable.
    """
    output_dir = settings.output_dir
    writable = os.path.isdir(output_dir) and os.access(output_dir, os.W_OK)
    payload = {
        "timestamp": datetime.utcnow(),
        "version": __version__,
        "layout_mode": settings.layout_mode,
        "output_dir_writable": writable,
        "header_font": resolve_header_font(settings.header_font_path),
    }

    if not writable:
        raise HTTPException(
            status_code=503,
            detail={
                **payload,
                "status": "unhealthy",
                "timestamp": payload["timestamp"].isoformat(),
                "message": f"Output directory {output_dir} is not writable",
            }
        )

    return HealthResponse(status="healthy", **payload)


# ============================================================================
# Generation Endpoint
# ============================================================================

@app.post("/generate", response_model=GenerateResponse)
async def generate(request: Request) -> GenerateResponse:
    """
    Generate a shot list PDF.

    Accepts title, description, images, scenes, sizes, descriptions and names
    as query parameters and/or a JSON body (query wins). List fields may be
    native lists or strings joined with the configured separator.

    Returns:
        GenerateResponse with the filename and public URL of the PDF

    Raises:
        HTTPException: 400 for unusable input, 422 for malformed fields,
            500 for rendering or persistence failures
    """
    request_id = uuid.uuid4().hex
    params = await _collect_params(request)

    try:
        payload = GenerateRequest(**params)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False)
        )

    try:
        logger.info(f"[req:{request_id[:8]}] Starting shot list generation (title={payload.title!r})")
        result = await asyncio.to_thread(
            build_document,
            payload.shot_fields(),
            settings,
            payload.title,
            payload.description,
            None,
            request_id,
        )
    except ShotListValidationError as e:
        logger.warning(f"[req:{request_id[:8]}] Rejected: {e.message} (lengths={e.field_lengths})")
        raise HTTPException(status_code=400, detail=e.to_dict())
    except PersistenceError as e:
        logger.error(f"[req:{request_id[:8]}] PDF could not be saved: {e}")
        raise HTTPException(status_code=500, detail=_error_detail("Failed to save PDF", e))
    except Exception as e:
        logger.exception(f"[req:{request_id[:8]}] PDF generation failed: {e}")
        raise HTTPException(status_code=500, detail=_error_detail("PDF generation failed", e))

    return GenerateResponse(
        filename=result.filename,
        pdfUrl=result.url,
        pageCount=result.page_count,
        shotCount=result.shot_count,
        missingImages=result.missing_images,
    )


def main() -> None:
    """Run the service with uvicorn on the configured port."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
