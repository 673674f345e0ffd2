from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path

# Find .env file - check parish/ directory first, then project root
BASE_DIR = Path(__file__).resolve().parent.parent.parent
APP_ENV = BASE_DIR / "parish" / ".env"
ROOT_ENV = BASE_DIR / ".env"

# Use parish/.env if it exists, otherwise try root .env
env_file = str(APP_ENV) if APP_ENV.exists() else (str(ROOT_ENV) if ROOT_ENV.exists() else ".env")


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Organization (printed on cards and reports)
    ORGANIZATION_NAME: str = "FJKM VATOMANDRY"
    ORGANIZATION_SUBTITLE: str = "Fiangonan'i Jesosy Kristy eto Madagasikara"
    CARD_FOOTER: str = "Carte membre FJKM"

    # Card rendering
    CARD_RENDER_WORKERS: int = 4

    # Dues (adidy)
    DEFAULT_DUES_AMOUNT: int = 0

    # Background jobs
    ENABLE_SCHEDULER: bool = True

    # Audit log
    AUDIT_LOG_DIR: Optional[str] = None

    # Application
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = env_file
        case_sensitive = True


settings = Settings()

# Derived paths
LOGS_DIR = Path(settings.AUDIT_LOG_DIR) if settings.AUDIT_LOG_DIR else BASE_DIR / "logs"
