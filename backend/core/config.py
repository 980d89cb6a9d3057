import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid integer for {name}: {raw!r}") from None


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./catchup.db")
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOWED_ORIGINS = _get_list(
    os.getenv("CORS_ALLOWED_ORIGINS"),
    ["http://localhost:5173", "http://localhost:3000"],
)

# "fixed" offers the catalogue anchors per period, "range" strides the
# provider's configured hours.
SLOT_ANCHOR_MODE = os.getenv("SLOT_ANCHOR_MODE", "fixed").strip().lower()
SLOT_INTERVAL_MINUTES = _get_int("SLOT_INTERVAL_MINUTES", "30")
DEFAULT_BOOKING_DURATION_MINUTES = _get_int("DEFAULT_BOOKING_DURATION_MINUTES", "60")

SLOT_ANCHOR_MODES = {"fixed", "range"}


def validate_runtime_config() -> None:
    if SLOT_ANCHOR_MODE not in SLOT_ANCHOR_MODES:
        raise RuntimeError(f"SLOT_ANCHOR_MODE must be one of {sorted(SLOT_ANCHOR_MODES)}.")
    if SLOT_INTERVAL_MINUTES <= 0:
        raise RuntimeError("SLOT_INTERVAL_MINUTES must be positive.")
    if DEFAULT_BOOKING_DURATION_MINUTES <= 0:
        raise RuntimeError("DEFAULT_BOOKING_DURATION_MINUTES must be positive.")
    if APP_ENV.lower() == "production" and not os.getenv("DATABASE_URL"):
        raise RuntimeError("DATABASE_URL must be set in production.")
