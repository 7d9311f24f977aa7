import os
from pydantic import BaseModel


def _split_origins(raw: str | None) -> list[str]:
    # e.g., ALLOWED_ORIGINS="http://localhost:5173,http://localhost:5174,https://my.dev.site"
    if not raw:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]
    return [o.strip() for o in raw.split(",") if o.strip()]


class Settings(BaseModel):
    service_name: str = os.getenv("SERVICE_NAME", "library")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./library.db")
    database_echo: bool = os.getenv("DATABASE_ECHO", "false").lower() in ("1", "true", "yes")
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    jwt_issuer: str = os.getenv("JWT_ISSUER", "https://auth.listeners.local")
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "listeners.api")
    jwt_ttl_minutes: int = int(os.getenv("JWT_TTL_MINUTES", "20"))
    allowed_origins: list[str] = _split_origins(os.getenv("ALLOWED_ORIGINS"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    library_page_max: int = int(os.getenv("LIBRARY_PAGE_MAX", "200"))


settings = Settings()
