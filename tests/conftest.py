"""Pytest configuration for issuebot tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install, and provides an in-memory stand-in for
the GitHub REST client so triage pipelines run without network access.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from issuebot.config import BotConfig  # noqa: E402
from issuebot.events import IssueSnapshot, Repository  # noqa: E402
from issuebot.github_rest import GitHubAPIError, Milestone  # noqa: E402
from issuebot.signature import compute_signature  # noqa: E402

WEBHOOK_SECRET = "s3cr3t"


class FakeTracker:
    """Records every API call; ``fail_on`` names an operation that raises."""

    def __init__(self, milestones: Iterable[str] = (), fail_on: str | None = None):
        self.milestones = [Milestone(title=t) for t in milestones]
        self.fail_on = fail_on
        self.calls: list[tuple[Any, ...]] = []

    def _maybe_fail(self, operation: str) -> None:
        if self.fail_on == operation:
            raise GitHubAPIError(f"{operation} exploded", status=500)

    def add_labels(self, number: int, labels: list[str]) -> None:
        self._maybe_fail("add_labels")
        self.calls.append(("add_labels", number, list(labels)))

    def remove_label(self, number: int, label: str) -> None:
        self._maybe_fail("remove_label")
        self.calls.append(("remove_label", number, label))

    def create_comment(self, number: int, body: str) -> None:
        self._maybe_fail("create_comment")
        self.calls.append(("create_comment", number, body))

    def close_issue(self, number: int, *, reason: str = "not_planned") -> None:
        self._maybe_fail("close_issue")
        self.calls.append(("close_issue", number, reason))

    def list_closed_milestones(self) -> list[Milestone]:
        self._maybe_fail("list_milestones")
        self.calls.append(("list_milestones",))
        return list(self.milestones)

    def ops(self) -> list[str]:
        return [call[0] for call in self.calls]

    def comments(self) -> list[str]:
        return [call[2] for call in self.calls if call[0] == "create_comment"]


@pytest.fixture
def make_tracker() -> Callable[..., FakeTracker]:
    return FakeTracker


@pytest.fixture
def make_issue() -> Callable[..., IssueSnapshot]:
    def build(
        body: str = "",
        *,
        title: str = "Something broke",
        labels: Iterable[str] = (),
        author: str = "alice",
        number: int = 42,
    ) -> IssueSnapshot:
        return IssueSnapshot(
            number=number,
            repository=Repository(owner="i3", name="i3"),
            title=title,
            body=body,
            author=author,
            labels=frozenset(labels),
        )

    return build


@pytest.fixture
def bot_config(tmp_path: Path) -> BotConfig:
    return BotConfig(
        webhook_secret=WEBHOOK_SECRET,
        github_token="tkn",
        repository="i3/i3",
        api_url="https://api.github.invalid",
        host="127.0.0.1",
        port=8080,
        log_directory=tmp_path / "logs",
        log_base_url="https://logs.example.org",
        logging_json_enabled=False,
        logging_level="INFO",
    )


def issue_payload(
    body: str,
    *,
    action: str | None = None,
    labels: Iterable[str] = (),
    author: str = "alice",
    repo: str = "i3/i3",
    comment: tuple[str, str] | None = None,
) -> dict[str, Any]:
    owner, name = repo.split("/")
    payload: dict[str, Any] = {
        "action": action or ("opened" if comment is None else "created"),
        "repository": {"name": name, "owner": {"login": owner}},
        "issue": {
            "number": 42,
            "title": "Something broke",
            "body": body,
            "user": {"login": author},
            "labels": [{"name": label} for label in labels],
        },
    }
    if comment is not None:
        payload["comment"] = {"user": {"login": comment[0]}, "body": comment[1]}
    return payload


@pytest.fixture
def signed() -> Callable[[dict[str, Any]], tuple[bytes, str]]:
    def sign(payload: dict[str, Any], secret: str = WEBHOOK_SECRET) -> tuple[bytes, str]:
        raw = json.dumps(payload).encode("utf-8")
        return raw, compute_signature(secret, raw)

    return sign


@pytest.fixture
def payload_factory() -> Callable[..., dict[str, Any]]:
    return issue_payload
