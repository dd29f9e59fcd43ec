"""Request ID helper for error responses.

Prefers the id the observability middleware stored on the request; falls back
to the logging context, then to the inbound header.
"""

from __future__ import annotations

from fastapi import Request

from app.obs import logging as obs_logging


def get_request_id(request: Request | None = None, default: str = "unknown") -> str:
	if request is not None:
		rid = getattr(request.state, "request_id", None) or request.headers.get("X-Request-Id")
		if rid:
			return str(rid)
	return obs_logging.current_request_id() or default
