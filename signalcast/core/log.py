import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger("signalcast.http")


def setup_logging(level: str | None = None) -> None:
    """Console logging for the whole ``signalcast`` tree, configured once."""
    root = logging.getLogger("signalcast")
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One line per HTTP request: method, path, status and latency."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
