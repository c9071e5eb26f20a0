import os

from dotenv import load_dotenv

load_dotenv()

def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:4200"])

MIN_SLOT_DURATION_MINUTES = 5
DEFAULT_SLOT_DURATION_MINUTES = max(
    MIN_SLOT_DURATION_MINUTES,
    int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "30")),
)
AVAILABLE_DATES_DAYS_AHEAD = int(os.getenv("AVAILABLE_DATES_DAYS_AHEAD", "60"))

NEARBY_DEFAULT_RADIUS_KM = float(os.getenv("NEARBY_DEFAULT_RADIUS_KM", "50"))
NEARBY_DEFAULT_LIMIT = int(os.getenv("NEARBY_DEFAULT_LIMIT", "50"))

# Raise instead of degrading to "no slots" when persisted availability is malformed.
STRICT_SLOT_DATA = _get_bool(os.getenv("AGENDA_STRICT_SLOT_DATA"), default=False)

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production":
        if DATABASE_URL.startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must point to a server database in production.")
        if STRICT_SLOT_DATA:
            raise RuntimeError("AGENDA_STRICT_SLOT_DATA must be disabled in production.")
