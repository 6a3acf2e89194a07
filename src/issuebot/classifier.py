"""Pattern-based classification of issue text.

The issue template asks reporters to tick exactly one of::

    - [ ] Bug
    - [ ] Feature Request
    - [ ] Documentation Request
    - [ ] Other (Please describe in detail)

Flags are independent of each other; which one wins is decided by the
issue-opened pipeline in :mod:`issuebot.rules`.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass

LOG_URL_PREFIXES = ("https://logs.i3wm.org/", "http://logs.i3wm.org/")

_CHECKED = r"\[\s*x\s*\]\s*"

ENHANCEMENT_BODY = re.compile(_CHECKED + r"feature request", re.IGNORECASE)
ENHANCEMENT_TITLE = re.compile(r"feature request|enhancement", re.IGNORECASE)
REQUIRES_CONFIGURATION = re.compile(
    _CHECKED + r"this feature requires new configuration", re.IGNORECASE
)
DOCUMENTATION_BODY = re.compile(_CHECKED + r"documentation request", re.IGNORECASE)
BUG_BODY = re.compile(_CHECKED + r"bug\b", re.IGNORECASE)


@dataclass(frozen=True)
class ClassificationFlags:
    is_enhancement_request: bool = False
    requires_new_configuration: bool = False
    is_documentation_request: bool = False
    is_bug_report: bool = False
    has_log_link: bool = False

    def as_dict(self) -> dict[str, bool]:
        return asdict(self)


def has_log_link(text: str | None) -> bool:
    if not text:
        return False
    low = text.lower()
    return any(prefix in low for prefix in LOG_URL_PREFIXES)


def classify(title: str | None, body: str | None) -> ClassificationFlags:
    title = title or ""
    body = body or ""
    return ClassificationFlags(
        is_enhancement_request=bool(
            ENHANCEMENT_BODY.search(body) or ENHANCEMENT_TITLE.search(title)
        ),
        requires_new_configuration=bool(REQUIRES_CONFIGURATION.search(body)),
        is_documentation_request=bool(DOCUMENTATION_BODY.search(body)),
        is_bug_report=bool(BUG_BODY.search(body)),
        has_log_link=has_log_link(body),
    )


__all__ = ["ClassificationFlags", "LOG_URL_PREFIXES", "classify", "has_log_link"]
