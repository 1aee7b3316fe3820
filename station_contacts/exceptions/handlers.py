import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import InputValidationError, OutputWriteError, StationNotFoundError

logger = logging.getLogger(__name__)


async def input_validation_error_handler(
    _request: Request, exc: InputValidationError
) -> JSONResponse:
    logger.error("Input validation failed: %s", exc.message)
    content = {"detail": f"Input validation failed: {exc.message}"}
    if exc.hint:
        content["hint"] = exc.hint
    return JSONResponse(status_code=422, content=content)


async def output_write_error_handler(
    _request: Request, exc: OutputWriteError
) -> JSONResponse:
    logger.error("Output write failed: %s (path=%s)", exc.message, exc.path)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Failed to save results: {exc.message}"},
    )


async def station_not_found_error_handler(
    _request: Request, exc: StationNotFoundError
) -> JSONResponse:
    logger.warning("Resume requested for unknown station %s", exc.call_sign)
    return JSONResponse(status_code=404, content={"detail": exc.message})
