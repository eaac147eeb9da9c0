import os



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:5173"])

# Slot granularity used when a window has no interval of its own.
DEFAULT_INTERVAL_MINUTES = int(os.getenv("DEFAULT_INTERVAL_MINUTES", "30"))
DEFAULT_SERVICE_DURATION_MINUTES = int(os.getenv("DEFAULT_SERVICE_DURATION_MINUTES", "30"))

FILTER_PAST_SLOTS = _get_bool(os.getenv("FILTER_PAST_SLOTS"), default=True)
SLOT_LEAD_TIME_MINUTES = int(os.getenv("SLOT_LEAD_TIME_MINUTES", "15"))

APPOINTMENT_BUFFER_MINUTES = int(os.getenv("APPOINTMENT_BUFFER_MINUTES", "0"))
BOOKING_ISOLATION_LEVEL = os.getenv("BOOKING_ISOLATION_LEVEL", "SERIALIZABLE")

def validate_runtime_config() -> None:
    if DEFAULT_INTERVAL_MINUTES <= 0:
        raise RuntimeError("DEFAULT_INTERVAL_MINUTES must be a positive number of minutes.")
    if DEFAULT_SERVICE_DURATION_MINUTES <= 0:
        raise RuntimeError("DEFAULT_SERVICE_DURATION_MINUTES must be a positive number of minutes.")
    if SLOT_LEAD_TIME_MINUTES < 0 or APPOINTMENT_BUFFER_MINUTES < 0:
        raise RuntimeError("SLOT_LEAD_TIME_MINUTES and APPOINTMENT_BUFFER_MINUTES cannot be negative.")
    if APP_ENV.lower() == "production" and not os.getenv("DATABASE_URL"):
        raise RuntimeError("DATABASE_URL must be set when APP_ENV=production.")
