import os


def get_env(name: str, default: str | None = None) -> str:
    v = os.getenv(name, default)
    if v is None:
        raise RuntimeError(f"Missing required env var: {name}")
    return v


def get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Env var {name} must be an integer, got {raw!r}") from exc


HOST = get_env("HOST", "0.0.0.0")
PORT = get_int_env("PORT", 8765)
LOG_LEVEL = get_env("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")  # optional; rotating file log in addition to stderr
CALENDAR_DAYS = get_int_env("CALENDAR_DAYS", 28)
