# recalltrial/web/routes.py
from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from recalltrial.config import settings
from recalltrial.container import build_services
from recalltrial.db import get_session
from recalltrial.utils.dates import now_utc

router = APIRouter()
log = logging.getLogger("recalltrial.web.cron")


@router.get("/health")
async def health():
    return {"status": "ok"}


def require_cron_key(x_cron_key: Optional[str] = Header(default=None)) -> None:
    expected = settings.CRON_KEY
    # no key configured = endpoint disabled
    if not expected or not x_cron_key:
        raise HTTPException(status_code=403, detail="Forbidden")
    # headers arrive latin-1 decoded; compare the raw bytes
    if not hmac.compare_digest(x_cron_key.encode("latin-1"), expected.encode("utf-8")):
        raise HTTPException(status_code=403, detail="Forbidden")


# External trigger for the reminder sweep (cron service, uptime pinger, ...)
@router.post("/api/cron/reminders", dependencies=[Depends(require_cron_key)])
async def cron_reminders(
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    rid = getattr(request.state, "request_id", "-")
    svc = build_services(session, request.app.state.sender)["reminders"]
    summary = await svc.process_due_reminders(now_utc())
    log.info(
        "cron_sweep considered=%s attempted=%s sent=%s failed=%s",
        summary.considered_count,
        summary.attempted_count,
        summary.sent_count,
        summary.failed_count,
        extra={"rid": rid},
    )
    return {"ok": True, **summary.as_dict()}
