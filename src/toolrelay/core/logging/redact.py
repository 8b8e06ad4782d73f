from __future__ import annotations

import re

# Kafka bootstrap strings and service URLs may embed SASL or basic-auth credentials.
_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"([a-zA-Z][a-zA-Z0-9+.-]*://)[^@/\s]+@"), r"\1***@"),
    (re.compile(r"(?i)\b(password|secret|token|api[_-]?key)(\s*[=:]\s*)[^\s,;&]+"), r"\1\2***"),
    (re.compile(r"(?i)(bearer\s+)\S+"), r"\1***"),
)


def redact_credentials(text: str) -> str:
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text
