"""
Access logging for record endpoints.
Writes one log line per request to patient, note, event and storage paths.
"""
import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("mediq.request")

RECORD_PATH_PREFIXES = (
    "/api/v1/patients",
    "/api/v1/notes",
    "/api/v1/events",
    "/api/v1/storage",
)

ACTION_MAP = {
    "GET": "view",
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)

        path = request.url.path
        if not any(path.startswith(prefix) for prefix in RECORD_PATH_PREFIXES):
            return response

        # e.g. /api/v1/patients/001 -> ("patients", "001")
        parts = [p for p in path.split("/") if p]
        resource_type = parts[2] if len(parts) >= 3 else "unknown"
        resource_id = parts[3] if len(parts) >= 4 else "-"
        action = ACTION_MAP.get(request.method, request.method.lower())
        elapsed_ms = (time.perf_counter() - started) * 1000

        log = logger.info if request.method != "GET" else logger.debug
        log(
            "%s %s/%s -> %s (%.1f ms, client=%s)",
            action,
            resource_type,
            resource_id,
            response.status_code,
            elapsed_ms,
            request.client.host if request.client else None,
        )
        return response
