"""Secret masking for anything that reaches a log line.

Tool arguments, session settings and credentials pass through log calls
on every request. Two checks decide what is secret: the field name
(``auth_token``, ``client-secret``) and the value itself (``sk-...``,
``Bearer ...``). Secrets found by name are replaced outright; secrets
found by value keep a short tail so an operator can tell keys apart.
"""

import re
from typing import Any

REDACTED = "<REDACTED>"

# Exact field names that always hold secrets
SENSITIVE_FIELD_NAMES = frozenset(
    {
        "api_key",
        "apikey",
        "api-key",
        "api_keys",
        "authorization",
        "bearer",
        "credential",
        "credentials",
        "key",
        "password",
        "private_key",
        "secret",
        "token",
        "token_secret",
    }
)

# Any one of these as a name segment is enough ("x_auth_token")
_SENSITIVE_SEGMENTS = frozenset(
    {"authorization", "bearer", "credential", "credentials", "password", "secret", "token"}
)

_SEGMENT_SPLIT = re.compile(r"[_\-.]")

SENSITIVE_PREFIXES = ("sk-", "pk-", "api-", "bearer ", "token ", "secret_")


def mask_secret(value: str, visible_chars: int = 4) -> str:
    """Hide all but the tail of a secret.

    A dash-separated vendor prefix such as ``sk-`` is kept. Values too
    short to leave anything hidden are starred out completely.

    Example:
        >>> mask_secret("sk-1234567890abcdef")
        'sk-...cdef'
        >>> mask_secret("abc")
        '***'
    """
    if not value:
        return "<empty>"
    if len(value) <= visible_chars + 4:
        return "*" * len(value)

    tail = value[-visible_chars:]
    head, dash, _ = value[:6].partition("-")
    prefix = f"{head}{dash}" if dash else ""
    return f"{prefix}...{tail}"


def is_sensitive_field(field_name: str) -> bool:
    """True if a field of this name should never be logged.

    Whole names and their individual segments are checked, so
    ``auth_token`` is sensitive while ``max_tokens`` is not.
    """
    if not field_name:
        return False
    lowered = field_name.lower()
    if lowered in SENSITIVE_FIELD_NAMES:
        return True
    return not _SENSITIVE_SEGMENTS.isdisjoint(_SEGMENT_SPLIT.split(lowered))


def is_sensitive_value(value: Any) -> bool:
    """True for strings shaped like an API key or bearer token."""
    return isinstance(value, str) and value.lower().startswith(SENSITIVE_PREFIXES)


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return sanitize_for_logging(value)
    if isinstance(value, list | tuple):
        return [_sanitize_value(item) for item in value]
    if is_sensitive_value(value):
        return mask_secret(value)
    return value


def redact_field(key: str, value: Any) -> Any:
    """What to log for one key/value pair."""
    if is_sensitive_field(key):
        return REDACTED
    return _sanitize_value(value)


def sanitize_for_logging(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of data that is safe to log.

    Nested dicts and lists are walked. The input is left untouched.

    Example:
        >>> sanitize_for_logging({"api_key": "sk-secret123", "name": "test"})
        {'api_key': '<REDACTED>', 'name': 'test'}
    """
    return {key: redact_field(str(key), value) for key, value in data.items()}
