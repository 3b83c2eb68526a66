import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from eventhub.domain.exceptions import AppError, NotFound, Conflict, Unauthorized, InvalidInput, Forbidden, \
    InsufficientStock, UpstreamServiceError, InternalError
from eventhub.core.ctx import REQUEST_ID_CTX

logger = logging.getLogger("eventhub.api")

_STATUS_BY_CLASS: dict[type[AppError], int] = {
    InvalidInput: status.HTTP_400_BAD_REQUEST,
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_409_CONFLICT,
    InsufficientStock: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UpstreamServiceError: status.HTTP_502_BAD_GATEWAY,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AppError: status.HTTP_400_BAD_REQUEST,
}


def status_for(exc: AppError) -> int:
    for cls in type(exc).mro():
        if cls in _STATUS_BY_CLASS:
            return _STATUS_BY_CLASS[cls]
    return status.HTTP_400_BAD_REQUEST


def _error_response(
    request: Request,
    *,
    http_status: int,
    code: str,
    message: str,
    field: str | None = None,
    context: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = {
        "status": http_status,
        "code": code,
        "message": message,
        "instance": str(request.url),
    }
    if field:
        body["field"] = field
    if context:
        body["context"] = context
    req_id = REQUEST_ID_CTX.get()
    if req_id:
        body["trace_id"] = req_id
    return JSONResponse(status_code=http_status, content=body, headers=headers or {})


def _first_validation_field(exc: RequestValidationError) -> tuple[str | None, str]:
    errors = exc.errors()
    if not errors:
        return None, "Validation failed"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "header")]
    return (".".join(loc) or None), first.get("msg", "Validation failed")


def register_error_handler(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("%s %s: %s ctx=%s", request.method, request.url.path, exc.code, exc.ctx)
        else:
            logger.warning("%s %s: %s - %s ctx=%s", request.method, request.url.path, exc.code, exc, exc.ctx)

        headers: dict[str, str] | None = None
        if isinstance(exc, Unauthorized):
            headers = {"WWW-Authenticate": 'Bearer realm="api", error="invalid_token"'}

        return _error_response(
            request,
            http_status=status_code,
            code=exc.code,
            message=str(exc),
            field=exc.field,
            context=exc.ctx or None,
            headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError):
        field, message = _first_validation_field(exc)
        return _error_response(
            request,
            http_status=status.HTTP_400_BAD_REQUEST,
            code=InvalidInput.code,
            message=message,
            field=field
        )

    @app.exception_handler(Exception)
    async def _unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(
            request,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=InternalError.code,
            message=InternalError.default_message
        )
