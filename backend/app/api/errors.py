"""Global error handlers ensuring request_id and an error code are included in JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.request_id import get_request_id
from app.domain.connect.exceptions import ConnectError, InvalidInputError

logger = logging.getLogger(__name__)

_HTTP_CODES = {
	status.HTTP_401_UNAUTHORIZED: "UNAUTHENTICATED",
	status.HTTP_403_FORBIDDEN: "PERMISSION_DENIED",
	status.HTTP_404_NOT_FOUND: "NOT_FOUND",
	status.HTTP_429_TOO_MANY_REQUESTS: "RATE_LIMITED",
}


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(ConnectError)
	async def connect_exc_handler(request: Request, exc: ConnectError):  # type: ignore[override]
		payload = {"detail": exc.detail, "code": exc.code, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {
			"detail": exc.detail,
			"code": _HTTP_CODES.get(exc.status_code, "INTERNAL" if exc.status_code >= 500 else "INVALID_INPUT"),
			"request_id": get_request_id(request),
		}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {
			"detail": "validation_error",
			"code": InvalidInputError.code,
			"errors": jsonable_encoder(exc.errors()),
			"request_id": get_request_id(request),
		}
		return JSONResponse(status_code=InvalidInputError.status_code, content=payload)

	@app.exception_handler(Exception)
	async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
		logger.error("unhandled error", exc_info=exc)
		payload = {"detail": "internal_error", "code": "INTERNAL", "request_id": get_request_id(request)}
		return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)
