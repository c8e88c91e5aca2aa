# dental_loyalty/web/auth.py
from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from dental_loyalty.core.config import settings
from dental_loyalty.core.database import SessionLocal
from dental_loyalty.core.errors import ValidationFailed
from dental_loyalty.core.security import safe_next
from dental_loyalty.services import accounts
from dental_loyalty.services.login_links import deliver_login_link
from dental_loyalty.web.render import redirect_with, render

logger = logging.getLogger(__name__)

router = APIRouter()


def render_login(
    request: Request,
    *,
    error: str | None = None,
    info: str | None = None,
    next_url: str = "/",
    mode: str = "admin",
    email: str = "",
    debug_link: str | None = None,
    status_code: int = 200,
):
    return render(
        request,
        "login.html",
        status_code=status_code,
        error=error or request.query_params.get("e"),
        info=info or request.query_params.get("i"),
        next_url=next_url,
        mode=mode if mode in ("admin", "client") else "admin",
        email=email,
        debug_link=debug_link,
    )


def _start_session(request: Request, user) -> None:
    request.session.clear()
    request.session["uid"] = user.id
    request.session["email"] = user.email


@router.get("/login", response_class=HTMLResponse)
@router.get("/login/", response_class=HTMLResponse, include_in_schema=False)
def login_get(request: Request, next: str | None = None, mode: str = "admin"):
    # already signed in
    if getattr(request.state, "identity", None) is not None:
        return RedirectResponse(url=safe_next(next, "/"), status_code=302)
    return render_login(request, next_url=safe_next(next, "/"), mode=mode)


@router.post("/login")
def login_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next: str = Form("/"),
):
    if not email.strip() or not password:
        return render_login(
            request, error="Please fill in all fields", next_url=next, email=email, status_code=400
        )

    db = SessionLocal()
    try:
        user = accounts.authenticate_admin(db, email, password)
        if user is None:
            logger.warning("Failed admin sign-in for %s", email.strip().lower())
            return render_login(
                request, error="Invalid email or password", next_url=next, email=email, status_code=401
            )
        accounts.mark_login(db, user)
        _start_session(request, user)
    except SQLAlchemyError:
        logger.exception("Admin sign-in failed")
        db.rollback()
        return render_login(
            request, error="An error occurred during login", next_url=next, email=email, status_code=503
        )
    finally:
        db.close()

    return redirect_with(safe_next(next, "/"), i="Login successful")


@router.post("/login/link")
def login_link_post(request: Request, email: str = Form("")):
    if not email.strip():
        return render_login(
            request, error="Please enter your email address", mode="client", status_code=400
        )

    db = SessionLocal()
    try:
        user, link = accounts.request_login_link(db, email)
        user_email = user.email
    except ValidationFailed as e:
        return render_login(request, error=str(e), mode="client", email=email, status_code=400)
    except SQLAlchemyError:
        logger.exception("Login link request failed")
        db.rollback()
        return render_login(
            request, error="An error occurred sending the sign-in link", mode="client", email=email, status_code=503
        )
    finally:
        db.close()

    result = deliver_login_link(user_email, link)
    if not result["ok"]:
        return render_login(
            request, error="An error occurred sending the sign-in link", mode="client", email=email, status_code=502
        )

    return render_login(
        request,
        info="Check your email for the sign-in link!",
        mode="client",
        email=user_email,
        debug_link=link if settings.LOGIN_LINK_DEBUG else None,
    )


@router.get("/login/verify")
def login_verify(request: Request, token: str = ""):
    db = SessionLocal()
    try:
        user = accounts.consume_login_token(db, token) if token else None
        if user is None:
            return redirect_with(
                "/login?mode=client", e="This sign-in link is invalid or has expired"
            )
        _start_session(request, user)
    finally:
        db.close()

    return redirect_with("/", i="Login successful")


@router.get("/logout")
@router.get("/logout/", include_in_schema=False)
def logout(request: Request, next: str | None = None):
    request.session.clear()
    url = "/login"
    if next:
        url += f"?next={quote(safe_next(next, '/'))}"
    return redirect_with(url, i="Logged out successfully")
