"""Error taxonomy for Connect operations."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class ConnectError(Exception):
	"""Base class for Connect errors surfaced to callers."""

	code: str = "INTERNAL"
	status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail: str = "internal_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class InvalidInputError(ConnectError):
	"""Malformed pin/event id or missing required field."""

	code = "INVALID_INPUT"
	status_code = _HTTP_422
	detail = "invalid_input"


class PermissionDeniedError(ConnectError):
	code = "PERMISSION_DENIED"
	status_code = status.HTTP_403_FORBIDDEN
	detail = "permission_denied"


class NotFoundError(ConnectError):
	"""Referenced pin/event is absent where the caller requires it."""

	code = "NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class RateLimitedError(ConnectError):
	code = "RATE_LIMITED"
	status_code = status.HTTP_429_TOO_MANY_REQUESTS
	detail = "rate_limited"
