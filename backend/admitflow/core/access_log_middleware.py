"""
Access logging middleware.
Logs every request that touches patient data (patients, onboarding, emergency).
"""
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

# Endpoints that read or write patient records
PATIENT_PATH_PREFIXES = (
    "/api/v1/patients",
    "/api/v1/onboarding",
    "/api/v1/emergency",
)

ACTION_MAP = {
    "GET": "view",
    "POST": "submit",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}


def describe_request(method: str, path: str) -> dict:
    """Derive action, resource type and resource id from a request path."""
    parts = [p for p in path.split("/") if p]
    return {
        "action": ACTION_MAP.get(method, method.lower()),
        "resource_type": parts[2] if len(parts) >= 3 else "unknown",
        "resource_id": parts[3] if len(parts) >= 4 else "-",
    }


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)

        path = request.url.path
        if not path.startswith(PATIENT_PATH_PREFIXES):
            return response

        info = describe_request(request.method, path)
        logger.info(
            "%s %s/%s -> %d (%s %s, client=%s, %.1fms)",
            info["action"],
            info["resource_type"],
            info["resource_id"],
            response.status_code,
            request.method,
            path,
            request.client.host if request.client else "-",
            (time.perf_counter() - started) * 1000,
        )
        return response
