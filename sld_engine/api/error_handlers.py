"""
Error Handlers
==============

Translates engine errors into HTTP responses with the same
``{"detail": ...}`` body that ``HTTPException`` produces.
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse

from ..canvas.errors import (
    DanglingReference, DefaultLayerRequired, DiagramError, DuplicateId,
    InvalidGeometry, LayerLocked, LayerNotEmpty, NotFound
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    NotFound: 404,
    DuplicateId: 409,
    LayerNotEmpty: 409,
    DefaultLayerRequired: 409,
    DanglingReference: 422,
    InvalidGeometry: 422,
    LayerLocked: 423,
}


def status_code_for(error: DiagramError) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 400


async def diagram_error_handler(request: Request, exc: DiagramError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.warning(f"[API] {request.method} {request.url.path} -> {status_code}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})
