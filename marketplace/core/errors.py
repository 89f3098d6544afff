# marketplace/core/errors.py
from fastapi import Request, status
from fastapi.responses import JSONResponse


class MarketError(Exception):
    """Domain error carrying the snake_case code returned as ``detail``."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, code: str, status_code: int = None):
        super().__init__(code)
        self.code = code
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(MarketError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(MarketError):
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(MarketError):
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(MarketError):
    status_code = status.HTTP_409_CONFLICT


class IllegalTransition(Conflict):
    pass


async def market_error_handler(request: Request, exc: MarketError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.code})
