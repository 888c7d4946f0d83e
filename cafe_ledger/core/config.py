import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if min_value is not None:
        return max(min_value, value)
    return value


@dataclass(frozen=True)
class Settings:
    app_name: str
    secret_key: str
    algorithm: str
    issuer: str
    token_url: str
    bootstrap_token: str
    access_token_expire_minutes: int
    cors_origins: tuple[str, ...]
    log_level: str
    sql_echo: bool
    report_top_products: int
    dashboard_recent_limit: int
    dashboard_low_stock_limit: int
    database_url: str


settings = Settings(
    app_name=os.getenv("APP_NAME", "Cafe Ledger API"),
    secret_key=os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION_32_CHAR_MIN_SECRET_KEY"),
    algorithm=os.getenv("ALGORITHM", "HS256"),
    issuer=os.getenv("TOKEN_ISSUER", "cafe-ledger-identity"),
    token_url=os.getenv("TOKEN_URL", "/identity/token"),
    bootstrap_token=os.getenv("BOOTSTRAP_TOKEN", ""),
    access_token_expire_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60, min_value=1),
    cors_origins=tuple(
        origin.strip().rstrip("/")
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ),
    log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    sql_echo=_env_bool("SQL_ECHO", False),
    report_top_products=_env_int("REPORT_TOP_PRODUCTS", 5, min_value=1),
    dashboard_recent_limit=_env_int("DASHBOARD_RECENT_LIMIT", 6, min_value=1),
    dashboard_low_stock_limit=_env_int("DASHBOARD_LOW_STOCK_LIMIT", 8, min_value=1),
    database_url=os.getenv("DATABASE_URL", "sqlite:///./cafe_ledger.db"),
)
