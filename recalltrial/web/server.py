# recalltrial/web/server.py
from __future__ import annotations

import logging
import platform
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn

from recalltrial.config import settings
from recalltrial.container import build_sender
from recalltrial.core.logging import setup_logging
from recalltrial.web.errors import unhandled_exception_handler
from recalltrial.web.middleware_logging import LoggingMiddleware
from recalltrial.web.routes import router as api_router

log = logging.getLogger("recalltrial.web.startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if getattr(app.state, "sender", None) is None:
        app.state.sender = build_sender()
    log.info(
        "app_startup | platform=%s python=%s policy=%s cron_key_set=%s email=%s",
        platform.platform(),
        platform.python_version(),
        settings.REMINDER_POLICY,
        bool(settings.CRON_KEY),
        "resend" if settings.RESEND_API_KEY else "dry-run",
    )
    yield
    close = getattr(app.state.sender, "aclose", None)
    if close is not None:
        await close()


def create_app() -> FastAPI:
    app = FastAPI(title="RecallTrial reminders", lifespan=lifespan)
    app.state.sender = None

    app.add_middleware(LoggingMiddleware)
    app.include_router(api_router)

    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.exception_handler(RequestValidationError)
    async def _validation(request, exc: RequestValidationError):
        rid = getattr(request.state, "request_id", "-")
        logging.getLogger("recalltrial.web.errors").warning(
            "validation_error detail=%s", exc.errors(), extra={"rid": rid}
        )
        return JSONResponse(
            {"ok": False, "error": "validation_error", "detail": exc.errors(), "rid": rid},
            status_code=422,
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "recalltrial.web.server:app",
        host=settings.WEBAPP_HOST,
        port=settings.WEBAPP_PORT,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
