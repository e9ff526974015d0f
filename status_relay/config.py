import os
from dotenv import load_dotenv

load_dotenv()


def _float_setting(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number, got {value!r}") from exc


def _bool_setting(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# How often an open stream re-reads the session store
POLL_INTERVAL_SECONDS = _float_setting("POLL_INTERVAL_SECONDS", 0.5)

# Comment frames keep proxies from closing an idle stream
KEEPALIVE_INTERVAL_SECONDS = _float_setting("KEEPALIVE_INTERVAL_SECONDS", 30.0)

# Session state survives this long after the subscriber goes away
SESSION_GRACE_SECONDS = _float_setting("SESSION_GRACE_SECONDS", 300.0)

# Treat any status containing "COMPLETE" (e.g. "PARTIAL_COMPLETE") as terminal
ACCEPT_COMPLETE_VARIANTS = _bool_setting("ACCEPT_COMPLETE_VARIANTS", True)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
