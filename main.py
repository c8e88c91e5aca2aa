# main.py
import logging
from urllib.parse import quote

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import JSONResponse, PlainTextResponse, RedirectResponse

from dental_loyalty.core.access import AccessState, evaluate, required_role_for
from dental_loyalty.core.config import settings
from dental_loyalty.core.database import Base, SessionLocal, engine
from dental_loyalty.core.identity import resolve_identity

from dental_loyalty.api.clients import router as clients_api_router
from dental_loyalty.api.me import router as me_api_router

from dental_loyalty.web.admin import router as admin_router
from dental_loyalty.web.auth import router as auth_router
from dental_loyalty.web.client import router as client_router
from dental_loyalty.web.render import BASE_DIR, render

# register tables with Base.metadata
import dental_loyalty.models  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("dental_loyalty")

app = FastAPI(title="Dental Loyalty")

# -------------------------
# DB init
# -------------------------
Base.metadata.create_all(bind=engine)

# -------------------------
# Static
# -------------------------
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """
    Resolves the identity behind the session for every request and gates
    role-bound paths (see dental_loyalty.core.access.PROTECTED_PREFIXES).

    No session on a protected page -> redirect to /login (API: 401).
    Wrong role -> access-denied page, no redirect (API: 403).
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        request.state.access = AccessState.LOADING
        request.state.identity = None

        if path.startswith("/static") or path == "/health":
            return await call_next(request)

        db = SessionLocal()
        try:
            request.state.identity = resolve_identity(db, request.session)
        except SQLAlchemyError:
            logger.exception("Identity resolution failed")
        finally:
            db.close()

        protected, role = required_role_for(path)
        if not protected:
            request.state.access = AccessState.GRANTED
            return await call_next(request)

        state = evaluate(request.state.identity, role)
        request.state.access = state
        is_api = path.startswith("/api")

        if state is AccessState.UNAUTHENTICATED:
            if is_api:
                return JSONResponse({"detail": "Not authenticated"}, status_code=401)
            next_url = request.url.path
            if request.url.query:
                next_url += "?" + request.url.query
            return RedirectResponse(url=f"/login?next={quote(next_url, safe='')}", status_code=303)

        if state is AccessState.WRONG_ROLE:
            if is_api:
                return JSONResponse(
                    {"detail": f"Access denied. Required role: {role}"},
                    status_code=403,
                )
            return render(request, "access_denied.html", status_code=403, page_title="Access Denied")

        return await call_next(request)


# IMPORTANT: SessionMiddleware must be outermost (added LAST)
app.add_middleware(AuthGuardMiddleware)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    max_age=60 * 60 * 24 * settings.AUTH_REMEMBER_DAYS,
    same_site="lax",
    https_only=settings.COOKIE_SECURE,
)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    if request.url.path.startswith("/api"):
        return JSONResponse({"detail": "Storage unavailable, try again"}, status_code=503)
    return PlainTextResponse("Storage unavailable, try again", status_code=503)


@app.on_event("startup")
def bootstrap_admin():
    from dental_loyalty.services.accounts import bootstrap_admin as create_first_admin

    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        logger.info("[BOOTSTRAP] No ADMIN_EMAIL/ADMIN_PASSWORD. Admin not created.")
        return

    db = SessionLocal()
    try:
        user = create_first_admin(db, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD, settings.ADMIN_NAME)
        if user is None:
            logger.info("[BOOTSTRAP] Admin already exists. Skip admin create.")
        else:
            logger.info("[BOOTSTRAP] Admin created: %s", user.email)
    finally:
        db.close()


app.include_router(clients_api_router, prefix="/api")
app.include_router(me_api_router, prefix="/api")

app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(client_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/")
def root(request: Request):
    identity = getattr(request.state, "identity", None)
    if identity is None:
        target = "/login"
    elif identity.is_admin:
        target = "/admin"
    else:
        target = "/client"

    # keep one-shot notifications (?i=...) across the hop
    if request.url.query:
        target += "?" + request.url.query
    return RedirectResponse(target, status_code=302)


@app.get("/{full_path:path}", include_in_schema=False)
def catch_all(full_path: str):
    return RedirectResponse("/", status_code=302)
