# recalltrial/web/errors.py
from __future__ import annotations
import logging
from fastapi import Request
from fastapi.responses import JSONResponse

log = logging.getLogger("recalltrial.web.errors")


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = getattr(request.state, "request_id", "-")
    log.error(
        "unhandled_exception path=%s error=%r", request.url.path, exc,
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"rid": rid},
    )
    # no internals in the response, only the request id
    return JSONResponse({"ok": False, "error": "internal_error", "rid": rid}, status_code=500)

