"""
Global error handling middleware.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from bloomglobe.domain.errors import DatasetError
from bloomglobe.infrastructure.external_api_client import ExternalAPIError


logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns consistent error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        request_info = {
            "path": request.url.path,
            "method": request.method,
        }

        try:
            return await call_next(request)

        except ExternalAPIError as e:
            logger.error(
                f"External API error: {str(e)}",
                extra={**request_info, "status_code": e.status_code},
            )
            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": "External API error",
                    "detail": e.message,
                }
            )

        except DatasetError as e:
            logger.error(f"Dataset error: {str(e)}", extra=request_info)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "error": "Dataset unavailable",
                    "detail": str(e),
                }
            )

        except ValueError as e:
            logger.warning(f"Validation error: {str(e)}", extra=request_info)
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "error": "Invalid request",
                    "detail": str(e),
                }
            )

        except Exception as e:
            logger.exception(f"Unhandled exception: {str(e)}", extra=request_info)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred",
                }
            )
