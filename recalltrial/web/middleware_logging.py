# recalltrial/web/middleware_logging.py
from __future__ import annotations
import logging, time, uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

log = logging.getLogger("recalltrial.web.http")


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        rid = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.perf_counter()
        method = request.method
        path = request.url.path
        client = request.client
        addr = f"{client.host}:{client.port}" if client else "?:?"

        log.info("http_request method=%s path=%s client=%s", method, path, addr, extra={"rid": rid})

        # pass the request id down to handlers
        request.state.request_id = rid

        try:
            response: Response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            log.exception("http_error path=%s ms=%s", path, round(elapsed, 2), extra={"rid": rid})
            raise

        elapsed = (time.perf_counter() - start) * 1000
        log.info(
            "http_response status=%s path=%s ms=%s",
            response.status_code, path, round(elapsed, 2),
            extra={"rid": rid},
        )
        response.headers["x-request-id"] = rid
        return response
