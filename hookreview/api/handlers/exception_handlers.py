from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from hookreview.core.exceptions import HookReviewError
from hookreview.core.responses import error_response
from hookreview.utils.logger import logger


async def unprocessable_entity_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"]) if error["loc"] else "general"
        errors.append({"field": field, "message": error["msg"]})

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "The received data is invalid. Please check the fields below for details.",
            "errors": errors,
        },
    )


async def hookreview_exception_handler(
    request: Request, exc: HookReviewError
) -> JSONResponse:
    logger.error(f"Unhandled {exc.__class__.__name__} on {request.url.path}: {exc}")
    return error_response(
        str(exc),
        message="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
