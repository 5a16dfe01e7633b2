import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("wastemap.audit")

class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s user=%s ip=%s %dms",
            request.method,
            request.url.path,
            response.status_code,
            getattr(request.state, "user_id", None),
            request.client.host if request.client else None,
            int((time.time() - start) * 1000),
        )
        return response
