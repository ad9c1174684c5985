"""
Error shape for the marketplace purchase endpoints.
Clients of these endpoints read `{"error": "<message>"}` with HTTP 500 and show it in a toast.
"""
import logging
from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    logger.error(f"{request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=500, content={"error": exc.message})
