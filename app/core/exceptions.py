from fastapi import Request
from fastapi.responses import JSONResponse


class AppError(Exception):
    """Base class for errors that map to an HTTP status"""
    status_code: int = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(AppError):
    status_code = 400


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class GenerationError(AppError):
    """The generation backend failed in a way that has no canned fallback"""
    status_code = 502


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
