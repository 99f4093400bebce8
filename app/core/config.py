import os

_FALSE_VALUES = {"0", "false", "False", "no", "NO", "off"}


def env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip()


def env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip() not in _FALSE_VALUES


def app_env() -> str:
    return env_str("ENV", "dev").lower()


def assignment_response_hours() -> int:
    return env_int("ASSIGNMENT_RESPONSE_HOURS", 48)


def default_currency() -> str:
    return env_str("DEFAULT_CURRENCY", "USD")
