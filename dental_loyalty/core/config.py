from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # SQLite by default; any SQLAlchemy URL works (postgresql+psycopg://...).
    DATABASE_URL: str = "sqlite:///./loyalty.db"

    # --- Sessions ---
    SESSION_SECRET: str = ""
    AUTH_REMEMBER_DAYS: int = 30
    COOKIE_SECURE: bool = False

    # --- Admin bootstrap (used only while no admin exists) ---
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""
    ADMIN_NAME: str = "Admin"

    # --- Client one-time login links ---
    LOGIN_LINK_TTL_MINUTES: int = 15
    LOGIN_LINK_BASE_URL: str = "http://127.0.0.1:8000"
    # POSTed {"email", "link", "expires_in_minutes"}; empty = log the link only
    LOGIN_LINK_WEBHOOK_URL: str | None = None
    # show the link on the login page (local development only)
    LOGIN_LINK_DEBUG: bool = False

    CURRENCY_SYMBOL: str = "$"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def session_secret(self) -> str:
        return self.SESSION_SECRET.strip() or "dev-secret-change-me"


settings = Settings()
