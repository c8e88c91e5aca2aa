# dental_loyalty/web/render.py
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from dental_loyalty.core.config import settings

BASE_DIR = Path(__file__).resolve().parents[2]
TEMPLATES_DIR = BASE_DIR / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def _money(value) -> str:
    amount = Decimal(value or 0).quantize(Decimal("0.01"))
    return f"{settings.CURRENCY_SYMBOL}{amount:,}"


templates.env.filters["money"] = _money


def render(request: Request, tpl: str, status_code: int = 200, **ctx):
    current_user = getattr(request.state, "identity", None)
    notice = {
        "error": request.query_params.get("e"),
        "info": request.query_params.get("i"),
        "warning": request.query_params.get("w"),
    }
    return templates.TemplateResponse(
        request,
        tpl,
        {"current_user": current_user, "notice": notice, **ctx},
        status_code=status_code,
    )


def redirect_with(url: str, *, e: str | None = None, i: str | None = None, w: str | None = None):
    """Redirect carrying a one-shot notification (error / info / warning)."""
    params = {k: v for k, v in (("e", e), ("i", i), ("w", w)) if v}
    if params:
        url = f"{url}{'&' if '?' in url else '?'}{urlencode(params)}"
    return RedirectResponse(url=url, status_code=303)


def first_error(exc) -> str:
    """Human message from a pydantic ValidationError."""
    try:
        err = exc.errors()[0]
    except (AttributeError, IndexError):
        return str(exc)
    msg = str(err.get("msg") or "Invalid input")
    return msg.removeprefix("Value error, ")
