import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import InvalidWebsiteUrlError, ScanError

logger = logging.getLogger(__name__)


async def invalid_website_url_handler(_request: Request, exc: InvalidWebsiteUrlError) -> JSONResponse:
    logger.info("Rejected scan request: %s", exc.message)
    return JSONResponse(
        status_code=400,
        content={"detail": exc.message},
    )


async def scan_error_handler(_request: Request, exc: ScanError) -> JSONResponse:
    logger.error("Website scan error: %s", exc.message)
    return JSONResponse(
        status_code=500,
        content={"detail": "Failed to scan website"},
    )
