import re
from typing import Any

from .errors import bad_request


MAX_STRING_LENGTH = 1000
_SPECIAL = re.compile(r"[!@#$%^&*()_+\-={};':\"\\|,.<>/?\[\]`~]")


def sanitize_string(value: str) -> str:
    # Operator sigils are stripped from values; dots are kept
    return value.replace("$", "").strip()[:MAX_STRING_LENGTH]


def sanitize_object(data: Any) -> Any:
    """Drop ``$``-prefixed keys and clean string values, recursively."""
    if isinstance(data, dict):
        return {
            k: sanitize_object(v)
            for k, v in data.items()
            if not (isinstance(k, str) and k.startswith("$"))
        }
    if isinstance(data, list):
        return [sanitize_object(v) for v in data]
    if isinstance(data, str):
        return sanitize_string(data)
    return data


def validate_password_strength(password: str) -> None:
    if not password or not isinstance(password, str):
        raise bad_request("Password is required")
    if len(password) < 6:
        raise bad_request("Password must be at least 6 characters long")
    if len(password) > 128:
        raise bad_request("Password must be less than 128 characters")
    if not re.search(r"[A-Z]", password):
        raise bad_request("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise bad_request("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        raise bad_request("Password must contain at least one number")
    if not _SPECIAL.search(password):
        raise bad_request("Password must contain at least one special character")
