"""Webhook envelope and the payload variants the dispatchers act on.

Only the fields the triage pipelines need are kept. Snapshots reflect the
issue as of delivery and are never refreshed from the API.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .errors import ParseError


class EventType(str, Enum):
    ISSUES = "issues"
    ISSUE_COMMENT = "issue_comment"
    PING = "ping"

    @classmethod
    def parse(cls, value: str) -> EventType:
        try:
            return cls(value)
        except ValueError as exc:
            raise ParseError(f"Unexpected X-GitHub-Event: {value!r}") from exc


@dataclass(frozen=True)
class WebhookEnvelope:
    event_type: str
    raw_body: bytes
    signature: str | None
    delivery_id: str | None = None


@dataclass(frozen=True)
class Repository:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class IssueSnapshot:
    number: int
    repository: Repository
    title: str
    body: str
    author: str
    labels: frozenset[str]


@dataclass(frozen=True)
class CommentSnapshot:
    author: str
    body: str


@dataclass(frozen=True)
class IssueEvent:
    action: str
    issue: IssueSnapshot

    @property
    def repository(self) -> Repository:
        return self.issue.repository


@dataclass(frozen=True)
class CommentEvent:
    action: str
    issue: IssueSnapshot
    comment: CommentSnapshot

    @property
    def repository(self) -> Repository:
        return self.issue.repository

    @property
    def by_issue_author(self) -> bool:
        return self.comment.author == self.issue.author


TrackerEvent = Union[IssueEvent, CommentEvent]


def _require(mapping: Any, key: str, where: str) -> Any:
    if not isinstance(mapping, dict) or key not in mapping or mapping[key] is None:
        raise ParseError(f"payload field missing: {where}.{key}")
    return mapping[key]


def _login(mapping: Any, where: str) -> str:
    user = _require(mapping, "user", where)
    return str(_require(user, "login", f"{where}.user"))


def _parse_issue(payload: dict[str, Any]) -> IssueSnapshot:
    repo = _require(payload, "repository", "payload")
    owner = _require(repo, "owner", "repository")
    issue = _require(payload, "issue", "payload")
    number = _require(issue, "number", "issue")
    if not isinstance(number, int):
        raise ParseError(f"issue.number must be an integer, got {number!r}")
    labels = issue.get("labels") or []
    names = frozenset(
        str(label["name"]) for label in labels if isinstance(label, dict) and label.get("name")
    )
    return IssueSnapshot(
        number=number,
        repository=Repository(
            owner=str(_require(owner, "login", "repository.owner")),
            name=str(_require(repo, "name", "repository")),
        ),
        title=str(issue.get("title") or ""),
        body=str(issue.get("body") or ""),
        author=_login(issue, "issue"),
        labels=names,
    )


def decode_payload(raw_body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ParseError(f"Cannot parse JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ParseError("Cannot parse JSON: expected an object")
    return payload


def parse_event(event_type: EventType, raw_body: bytes) -> TrackerEvent | None:
    """Decode a verified body into the matching variant (``None`` for ping)."""
    if event_type is EventType.PING:
        return None
    payload = decode_payload(raw_body)
    action = str(payload.get("action") or "")
    issue = _parse_issue(payload)
    if event_type is EventType.ISSUES:
        return IssueEvent(action=action, issue=issue)
    comment = _require(payload, "comment", "payload")
    return CommentEvent(
        action=action,
        issue=issue,
        comment=CommentSnapshot(
            author=_login(comment, "comment"),
            body=str(comment.get("body") or ""),
        ),
    )


__all__ = [
    "CommentEvent",
    "CommentSnapshot",
    "EventType",
    "IssueEvent",
    "IssueSnapshot",
    "Repository",
    "TrackerEvent",
    "WebhookEnvelope",
    "decode_payload",
    "parse_event",
]
