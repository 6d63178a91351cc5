"""Sensitive data detection and masking for clipboard content.

Everything the watcher hands to the analyzer or the store passes through
:func:`redact` first, so the unmasked original never reaches the database.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from clipsense.config import MAX_CONTENT_LENGTH
from clipsense.utils import compute_hash, truncate_content


class SensitiveType(Enum):
    """Types of sensitive data that can be detected."""

    API_KEY = "api_key"
    PASSWORD = "password"
    TOKEN = "token"
    SECRET = "secret"
    KEY = "key"
    PRIVATE_KEY = "private_key"
    CREDIT_CARD = "credit_card"


@dataclass
class SensitiveMatch:
    """A detected sensitive data match."""

    sensitive_type: SensitiveType
    start: int
    end: int
    original: str
    masked: str


@dataclass
class RedactionResult:
    """Output of :func:`redact`: the text safe to store plus its metadata."""

    content: str
    original_length: int
    is_truncated: bool
    is_sensitive: bool
    content_hash: str
    sensitive_types: list[str] = field(default_factory=list)

    def metadata(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "originalLength": self.original_length,
            "isTruncated": self.is_truncated,
            "isSensitive": self.is_sensitive,
            "contentHash": self.content_hash,
        }
        if self.sensitive_types:
            data["sensitiveTypes"] = self.sensitive_types
        return data


# Applied in this order; each rule masks its own matches independently.
PATTERNS: list[tuple[SensitiveType, re.Pattern]] = [
    (SensitiveType.API_KEY, re.compile(r"\b[A-Za-z0-9]{32,}\b")),
    (SensitiveType.PASSWORD, re.compile(r"\bpassword\s*[:=]\s*\S+", re.IGNORECASE)),
    (SensitiveType.TOKEN, re.compile(r"\btoken\s*[:=]\s*\S+", re.IGNORECASE)),
    (SensitiveType.SECRET, re.compile(r"\bsecret\s*[:=]\s*\S+", re.IGNORECASE)),
    (SensitiveType.KEY, re.compile(r"\bkey\s*[:=]\s*\S+", re.IGNORECASE)),
    (SensitiveType.PRIVATE_KEY, re.compile(r"-----BEGIN [A-Z ]+-----[\s\S]*?-----END [A-Z ]+-----")),
    (
        SensitiveType.CREDIT_CARD,
        re.compile(
            r"\b(?:4[0-9]{12}(?:[0-9]{3})?|5[1-5][0-9]{14}|3[47][0-9]{13}"
            r"|3[0-9]{13}|6(?:011|5[0-9]{2})[0-9]{12})\b"
        ),
    ),
]


def mask_value(value: str) -> str:
    """Keep the first and last two characters, star out the rest.

    Values of four characters or fewer are starred out entirely.
    """
    if len(value) <= 4:
        return "*" * len(value)
    return value[:2] + "*" * (len(value) - 4) + value[-2:]


def detect_sensitive(text: str) -> list[SensitiveMatch]:
    """Detect sensitive data in text.

    Args:
        text: The text to scan for sensitive data.

    Returns:
        One SensitiveMatch per rule hit, grouped in rule order.
    """
    matches: list[SensitiveMatch] = []
    for sensitive_type, pattern in PATTERNS:
        for match in pattern.finditer(text):
            original = match.group(0)
            matches.append(SensitiveMatch(
                sensitive_type=sensitive_type,
                start=match.start(),
                end=match.end(),
                original=original,
                masked=mask_value(original),
            ))
    return matches


def mask_text(text: str) -> str:
    """Mask sensitive data in text.

    Rules run in declaration order over the output of the previous rule, so
    a span masked by an earlier rule is not re-masked by a later one unless
    that rule still matches the partially starred text.
    """
    for _, pattern in PATTERNS:
        text = pattern.sub(lambda m: mask_value(m.group(0)), text)
    return text


def get_sensitivity_summary(sensitive_types: list[str]) -> str:
    """Summarize the ``sensitiveTypes`` recorded in a clip's metadata.

    Returns:
        Human-readable summary like "Api Key, Password".
    """
    return ", ".join(sorted({t.replace("_", " ").title() for t in sensitive_types}))


def redact(content: str, max_length: int = MAX_CONTENT_LENGTH) -> RedactionResult:
    """Truncate, fingerprint and mask raw clipboard text.

    The hash and ``original_length`` describe the untouched input; the
    returned ``content`` is the truncated text, masked when any rule matched.
    """
    content_hash = compute_hash(content)
    truncated, is_truncated = truncate_content(content, max_length)
    matches = detect_sensitive(truncated)
    if matches:
        truncated = mask_text(truncated)

    return RedactionResult(
        content=truncated,
        original_length=len(content),
        is_truncated=is_truncated,
        is_sensitive=bool(matches),
        content_hash=content_hash,
        sensitive_types=sorted({m.sensitive_type.value for m in matches}),
    )
