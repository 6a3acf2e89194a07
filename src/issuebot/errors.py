"""Error taxonomy & redaction.

Every failure surfaced by a webhook delivery maps onto one of four
categories, each terminal for the current request:

- ``AuthError``         missing/invalid signature headers or HMAC mismatch (400)
- ``ParseError``        malformed JSON or an unexpected event shape (400)
- ``UpstreamAPIError``  a GitHub API call failed mid-pipeline (502)
- ``ConfigError``       credentials or config file not loadable (500)

Public helpers:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

# Simple token patterns; can be expanded (e.g., GitHub token, private key markers)
_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"(?i)(authorization:\s*(?:bearer|token)\s+)\S+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class IssueBotError(RuntimeError):
    """Base class for all errors raised while handling a delivery."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    category: str = "generic"


class AuthError(IssueBotError):
    status = HTTPStatus.BAD_REQUEST
    category = "auth"


class ParseError(IssueBotError):
    status = HTTPStatus.BAD_REQUEST
    category = "parse"


class UpstreamAPIError(IssueBotError):
    """A tracker mutation failed; the pipeline run was aborted."""

    status = HTTPStatus.BAD_GATEWAY
    category = "upstream"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        upstream_status: int | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.upstream_status = upstream_status


class ConfigError(IssueBotError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    category = "config"


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact sensitive tokens in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    Strategy:
    - IssueBotError subclasses -> their own category
      (rate-limit wording on upstream failures -> 'github.rate_limit', transient)
    - Network-y keywords -> category 'network', transient True
    - Fallback -> 'generic'
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__

    if isinstance(exc, UpstreamAPIError):
        details = {"operation": exc.operation, "status": exc.upstream_status}
        if "rate limit" in low or "secondary rate" in low:
            return ErrorInfo(
                "github.rate_limit", redact(msg), name, transient=True, details=details
            )
        return ErrorInfo(exc.category, redact(msg), name, transient=True, details=details)
    if isinstance(exc, IssueBotError):
        return ErrorInfo(exc.category, redact(msg), name)
    if any(k in low for k in ("timeout", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "AuthError",
    "ConfigError",
    "ErrorInfo",
    "IssueBotError",
    "ParseError",
    "UpstreamAPIError",
    "classify_error",
    "redact",
]
