# recalltrial/providers/resend_email.py
from __future__ import annotations

import logging
from html import escape
from typing import Optional

import httpx

from recalltrial.config import settings
from recalltrial.models.enums import ReminderType
from recalltrial.models.trial import Trial
from recalltrial.models.user import User
from recalltrial.providers.base import SendResult

logger = logging.getLogger(__name__)


def _short_date(trial: Trial) -> str:
    return f"{trial.end_date:%b} {trial.end_date.day}"


def _long_date(trial: Trial) -> str:
    return f"{trial.end_date:%B} {trial.end_date.day}, {trial.end_date.year}"


def build_subject(trial: Trial) -> str:
    return f"RecallTrial: Cancel {trial.service_name} before {_short_date(trial)}"


def build_html(trial: Trial, label: ReminderType, app_url: str) -> str:
    name = escape(trial.service_name)
    cancel_link = escape(trial.cancel_link, quote=True)
    service_link = escape(trial.service_url, quote=True)
    mark_canceled_link = escape(f"{app_url}/trials/{trial.id}", quote=True)

    price_info = ""
    if trial.renewal_price is not None:
        price_info = (
            '<p style="margin:8px 0;color:#6b7280;font-size:14px;">'
            f"Renewal price: <strong>{escape(str(trial.renewal_price))} {escape(trial.currency)}</strong></p>"
        )

    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8" /></head>
<body style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background:#f9fafb;padding:20px;">
  <div style="max-width:480px;margin:0 auto;background:white;border-radius:12px;border:1px solid #e5e7eb;">
    <div style="background:#2563eb;padding:20px 24px;">
      <h1 style="color:white;font-size:18px;margin:0;">RecallTrial Reminder</h1>
    </div>
    <div style="padding:24px;">
      <h2 style="margin:0;font-size:18px;">{name}</h2>
      <p style="margin:4px 0 0;color:#6b7280;font-size:14px;">{escape(trial.domain)}</p>

      <div style="background:#fef3c7;border:1px solid #fde68a;border-radius:8px;padding:12px 16px;margin:16px 0;">
        <p style="margin:0;font-size:14px;color:#92400e;">
          <strong>Your free trial ends on {_long_date(trial)}.</strong> {escape(label.phrase)}
        </p>
      </div>

      {price_info}

      <a href="{cancel_link}" style="display:block;text-align:center;background:#2563eb;color:white;padding:14px 24px;border-radius:8px;text-decoration:none;font-weight:600;">
        Open cancel page
      </a>
      <a href="{service_link}" style="display:block;text-align:center;color:#2563eb;padding:10px;font-size:14px;">
        Open {name}
      </a>

      <p style="font-size:13px;color:#9ca3af;text-align:center;">
        Already canceled? <a href="{mark_canceled_link}" style="color:#2563eb;">Mark as canceled</a> in RecallTrial.
      </p>
    </div>
  </div>
</body>
</html>"""


class ResendEmailSender:
    """
    Sends reminder emails through the Resend HTTP API.

    One attempt per call. Any non-2xx answer or transport error is reported
    as a failed SendResult; the dispatch loop records it and moves on.
    Without an API key the email is only logged (local development).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        api_url: Optional[str] = None,
        sender: Optional[str] = None,
        app_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.api_url = api_url or settings.RESEND_API_URL
        self.sender = sender or settings.EMAIL_FROM
        self.app_url = (app_url or settings.APP_URL).rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.EMAIL_TIMEOUT_SECONDS
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def send(self, trial: Trial, user: User, label: ReminderType) -> SendResult:
        subject = build_subject(trial)

        if not self.api_key:
            logger.info("email_dry_run to=%s subject=%r (RESEND_API_KEY not set)", user.email, subject)
            return SendResult.ok()

        payload = {
            "from": self.sender,
            "to": [user.email],
            "subject": subject,
            "html": build_html(trial, label, self.app_url),
        }
        try:
            resp = await self.client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            logger.warning("email_transport_error to=%s error=%r", user.email, e)
            return SendResult.failed(f"transport error: {e.__class__.__name__}: {e}")

        if resp.status_code == 429:
            logger.warning("email_rate_limited to=%s", user.email)
            return SendResult.failed("rate limited")

        if resp.is_error:
            detail = _error_detail(resp)
            logger.warning("email_rejected to=%s status=%s detail=%s", user.email, resp.status_code, detail)
            return SendResult.failed(f"resend {resp.status_code}: {detail}")

        message_id = None
        try:
            body = resp.json()
            if isinstance(body, dict):
                message_id = body.get("id")
        except ValueError:
            pass

        logger.info("email_sent to=%s subject=%r message_id=%s", user.email, subject, message_id)
        return SendResult.ok(message_id)


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("name") or body)[:200]
    return str(body)[:200]
