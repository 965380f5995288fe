import os
from dotenv import load_dotenv


def _as_int(val: str | None, default: int) -> int:
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        # Load variables from .env into environment
        load_dotenv()
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "changeme")
        self.MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
        self.MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME", "hourbook")
        # Frontend base URL (used in CORS and public invoice links)
        self.FRONTEND_BASE_URL: str = os.getenv("FRONTEND_BASE_URL", "http://localhost:5173")
        # Optional comma-separated list of additional allowed origins for CORS
        self.ALLOWED_ORIGINS: list[str] = [
            o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()
        ]
        # Invoicing
        self.INVOICE_DUE_DAYS: int = _as_int(os.getenv("INVOICE_DUE_DAYS"), 30)
        self.INVOICE_NUMBER_RETRIES: int = _as_int(os.getenv("INVOICE_NUMBER_RETRIES"), 5)
        # Weekly calendar view
        self.CALENDAR_START_HOUR: int = _as_int(os.getenv("CALENDAR_START_HOUR"), 7)
        self.CALENDAR_END_HOUR: int = _as_int(os.getenv("CALENDAR_END_HOUR"), 19)
        self.CALENDAR_HOUR_HEIGHT: int = _as_int(os.getenv("CALENDAR_HOUR_HEIGHT"), 60)


settings = Settings()
