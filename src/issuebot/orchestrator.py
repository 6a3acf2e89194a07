"""Idempotent application of triage mutations to a single issue.

``IssueMutator`` keeps a live view of the issue's labels, seeded from the
webhook snapshot and updated as mutations succeed. Adding a label that is
already present, or removing one that is absent, is skipped without an API
call. Any API failure is raised as :class:`UpstreamAPIError`; mutations that
already went through stay applied.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar, Union

from .errors import UpstreamAPIError
from .events import IssueSnapshot
from .github_rest import GitHubAPIError, Milestone
from .logging import StructuredLogger, get_logger

T = TypeVar("T")


@dataclass(frozen=True)
class AddLabel:
    label: str

    def describe(self) -> dict[str, Any]:
        return {"type": "add_label", "label": self.label}


@dataclass(frozen=True)
class RemoveLabel:
    label: str

    def describe(self) -> dict[str, Any]:
        return {"type": "remove_label", "label": self.label}


@dataclass(frozen=True)
class PostComment:
    body: str

    def describe(self) -> dict[str, Any]:
        return {"type": "comment", "body": self.body}


@dataclass(frozen=True)
class CloseIssue:
    reason: str = "not_planned"

    def describe(self) -> dict[str, Any]:
        return {"type": "close", "reason": self.reason}


Mutation = Union[AddLabel, RemoveLabel, PostComment, CloseIssue]


class IssueTracker(Protocol):
    """The subset of :class:`GitHubRestClient` the mutator relies on."""

    def add_labels(self, number: int, labels: list[str]) -> None: ...

    def remove_label(self, number: int, label: str) -> None: ...

    def create_comment(self, number: int, body: str) -> None: ...

    def close_issue(self, number: int, *, reason: str = "not_planned") -> None: ...

    def list_closed_milestones(self) -> list[Milestone]: ...


class IssueMutator:
    def __init__(
        self,
        client: IssueTracker,
        issue: IssueSnapshot,
        *,
        dry_run: bool = False,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.client = client
        self.issue = issue
        self.dry_run = dry_run
        self.logger = logger or get_logger()
        self.labels: set[str] = set(issue.labels)
        self.applied: list[Mutation] = []

    @property
    def repo(self) -> str:
        return self.issue.repository.full_name

    def has_label(self, label: str) -> bool:
        return label in self.labels

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except GitHubAPIError as exc:
            self.logger.log_error(
                f"{operation} failed for {self.repo}#{self.issue.number}",
                error=str(exc),
                operation=operation,
                status=exc.status,
            )
            raise UpstreamAPIError(
                f"{operation}: {exc}", operation=operation, upstream_status=exc.status
            ) from exc

    def _record(self, mutation: Mutation, action: str, **kw: Any) -> None:
        self.applied.append(mutation)
        self.logger.log_issue_action(
            action, self.repo, self.issue.number, dry_run=self.dry_run, **kw
        )

    def add_label(self, label: str) -> bool:
        """Add ``label``; returns False when it was already present."""
        if label in self.labels:
            return False
        if not self.dry_run:
            self._call("add_labels", lambda: self.client.add_labels(self.issue.number, [label]))
        self.labels.add(label)
        self._record(AddLabel(label), "add_label", label=label)
        return True

    def remove_label(self, label: str) -> bool:
        """Remove ``label``; returns False when it was not present."""
        if label not in self.labels:
            return False
        if not self.dry_run:
            self._call("remove_label", lambda: self.client.remove_label(self.issue.number, label))
        self.labels.discard(label)
        self._record(RemoveLabel(label), "remove_label", label=label)
        return True

    def comment(self, body: str) -> None:
        if not self.dry_run:
            self._call(
                "create_comment", lambda: self.client.create_comment(self.issue.number, body)
            )
        self._record(PostComment(body), "comment")

    def close(self, reason: str = "not_planned") -> None:
        if not self.dry_run:
            self._call(
                "close_issue", lambda: self.client.close_issue(self.issue.number, reason=reason)
            )
        self._record(CloseIssue(reason), "close", reason=reason)

    def closed_milestones(self) -> list[Milestone]:
        return self._call("list_milestones", self.client.list_closed_milestones)

    def apply(self, mutation: Mutation) -> bool:
        if isinstance(mutation, AddLabel):
            return self.add_label(mutation.label)
        if isinstance(mutation, RemoveLabel):
            return self.remove_label(mutation.label)
        if isinstance(mutation, PostComment):
            self.comment(mutation.body)
            return True
        if isinstance(mutation, CloseIssue):
            self.close(mutation.reason)
            return True
        raise TypeError(f"unknown mutation {mutation!r}")


__all__ = [
    "AddLabel",
    "CloseIssue",
    "IssueMutator",
    "IssueTracker",
    "Mutation",
    "PostComment",
    "RemoveLabel",
]
