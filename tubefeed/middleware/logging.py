"""JSON log setup and per-request logging."""

import logging
import time
import uuid

from fastapi import Request, Response
from pythonjsonlogger import jsonlogger
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import settings
from ..utils.logging_utils import log_exception_json

logger = logging.getLogger(__name__)


def setup_logging(level: str | None = None) -> None:
    """Send every record through one JSON handler on the root logger."""
    log_handler = logging.StreamHandler()
    log_handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s %(pathname)s %(lineno)d",
            static_fields={"service": settings.service_name},
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [log_handler]
    root_logger.setLevel((level or settings.log_level).upper())

    # Discovery documents and connection pools are chatty at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with an id and log its outcome.

    The id is stored on ``request.state.request_id`` for handlers and
    returned in the ``X-Request-ID`` header.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        request_fields = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }
        logger.info(
            "Request started",
            extra={
                **request_fields,
                "query": str(request.url.query),
                "client_ip": request.client.host if request.client else None,
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            log_exception_json(
                logger,
                "Request failed",
                e,
                service=settings.service_name,
                duration_ms=round((time.time() - start_time) * 1000, 2),
                **request_fields,
            )
            raise

        logger.info(
            "Request completed",
            extra={
                **request_fields,
                "status_code": response.status_code,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )

        response.headers["X-Request-ID"] = request_id
        return response
