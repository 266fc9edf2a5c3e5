import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.services.dispatcher import PartialSubmissionError
from src.services.validation import IndexValidationError

logger = logging.getLogger("fib.api")


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _json_error(request: Request, status_code: int, payload: dict) -> JSONResponse:
    request_id = _get_request_id(request)
    payload["request_id"] = request_id
    response = JSONResponse(status_code=status_code, content=payload)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _json_error(request, exc.status_code, {"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _json_error(request, 422, {"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(IndexValidationError)
    async def index_validation_exception_handler(request: Request, exc: IndexValidationError):
        # Plain text, as the form client displays the body as-is.
        logger.info("index_rejected request_id=%s reason=%s", _get_request_id(request), exc)
        return PlainTextResponse(str(exc), status_code=422)

    @app.exception_handler(PartialSubmissionError)
    async def partial_submission_exception_handler(request: Request, exc: PartialSubmissionError):
        return _json_error(
            request,
            503,
            {"detail": str(exc), "failed_steps": exc.failed_steps},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error request_id=%s", _get_request_id(request), exc_info=exc)
        return _json_error(request, 500, {"detail": "Internal Server Error"})
