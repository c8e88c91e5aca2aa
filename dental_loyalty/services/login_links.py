# dental_loyalty/services/login_links.py
"""
Delivery of client sign-in links.

With LOGIN_LINK_WEBHOOK_URL set, the link is POSTed there as JSON
({"email", "link", "expires_in_minutes"}) for a mail relay to send.
Without it the link is only written to the log, which is enough for
local development.
"""
from __future__ import annotations

import logging

import httpx

from dental_loyalty.core.config import settings

logger = logging.getLogger(__name__)


def _is_configured() -> bool:
    return bool((settings.LOGIN_LINK_WEBHOOK_URL or "").strip())


def deliver_login_link(email: str, link: str) -> dict:
    if not _is_configured():
        logger.info("Login link for %s (no webhook configured): %s", email, link)
        return {"ok": True, "delivered": False}

    payload = {
        "email": email,
        "link": link,
        "expires_in_minutes": settings.LOGIN_LINK_TTL_MINUTES,
    }
    try:
        r = httpx.post(settings.LOGIN_LINK_WEBHOOK_URL, json=payload, timeout=15)
    except httpx.HTTPError as e:
        logger.error("Login link delivery to %s failed: %s", email, e)
        return {"ok": False, "error": str(e)}

    if r.is_success:
        return {"ok": True, "delivered": True}

    logger.error("Login link webhook answered %s for %s", r.status_code, email)
    return {"ok": False, "error": f"webhook status {r.status_code}", "status": r.status_code}
