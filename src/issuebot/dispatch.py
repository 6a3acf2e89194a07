"""Per-event triage pipelines and envelope routing.

``dispatch`` is the single entry point used by the HTTP layer: it verifies
the envelope, decodes it into an :class:`IssueEvent` or
:class:`CommentEvent`, and runs the matching rule pipeline against a
:class:`GitHubRestClient` scoped to the event's repository.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .config import BotConfig
from .events import (
    CommentEvent,
    EventType,
    IssueEvent,
    IssueSnapshot,
    TrackerEvent,
    WebhookEnvelope,
    parse_event,
)
from .github_rest import GitHubRestClient
from .logging import StructuredLogger, get_logger
from .orchestrator import IssueMutator, IssueTracker, Mutation
from .rules import (
    COMMENT_CREATED_RULES,
    ISSUE_OPENED_RULES,
    comment_created_context,
    issue_opened_context,
    run_rules,
)
from .signature import verify_signature

ClientFactory = Callable[[str], IssueTracker]


@dataclass
class DispatchResult:
    event: str
    status: str  # pong | ignored | processed
    action: str | None = None
    reason: str | None = None
    mutations: list[Mutation] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "event": self.event,
            "action": self.action,
            "status": self.status,
            "reason": self.reason,
            "mutations": [m.describe() for m in self.mutations],
        }


def rest_client_factory(config: BotConfig) -> ClientFactory:
    def build(repo: str) -> IssueTracker:
        return GitHubRestClient(token=config.github_token, repo=repo, base_url=config.api_url)

    return build


def handle_issue_opened(
    issue: IssueSnapshot,
    client: IssueTracker,
    *,
    dry_run: bool = False,
    logger: StructuredLogger | None = None,
) -> list[Mutation]:
    mutator = IssueMutator(client, issue, dry_run=dry_run, logger=logger)
    return run_rules(ISSUE_OPENED_RULES, issue_opened_context(issue, mutator))


def handle_comment_created(
    event: CommentEvent,
    client: IssueTracker,
    *,
    dry_run: bool = False,
    logger: StructuredLogger | None = None,
) -> list[Mutation]:
    if not event.by_issue_author:
        return []
    mutator = IssueMutator(client, event.issue, dry_run=dry_run, logger=logger)
    ctx = comment_created_context(event.issue, event.comment, mutator)
    return run_rules(COMMENT_CREATED_RULES, ctx)


def plan_issue_opened(issue: IssueSnapshot, client: IssueTracker) -> list[Mutation]:
    """Mutations the issue-opened pipeline would apply; only reads milestones."""
    return handle_issue_opened(issue, client, dry_run=True)


def route_event(
    event_type: EventType,
    event: TrackerEvent | None,
    client_factory: ClientFactory,
    *,
    repository: str | None = None,
    logger: StructuredLogger | None = None,
) -> DispatchResult:
    logger = logger or get_logger()
    if event is None:
        return DispatchResult(event=event_type.value, status="pong")

    result = DispatchResult(event=event_type.value, status="ignored", action=event.action)
    repo = event.repository.full_name
    if repository and repo.lower() != repository.lower():
        result.reason = f"repository {repo} not handled"
        return result

    if isinstance(event, IssueEvent):
        if event.action != "opened":
            result.reason = f"action {event.action!r} not handled"
            return result
        with logger.timed_operation("issue_opened", repo=repo, issue_number=event.issue.number):
            result.mutations = handle_issue_opened(
                event.issue, client_factory(repo), logger=logger
            )
    else:
        if event.action != "created":
            result.reason = f"action {event.action!r} not handled"
            return result
        if not event.by_issue_author:
            result.reason = "comment not by issue author"
            return result
        with logger.timed_operation("comment_created", repo=repo, issue_number=event.issue.number):
            result.mutations = handle_comment_created(
                event, client_factory(repo), logger=logger
            )
    result.status = "processed"
    return result


def dispatch(
    envelope: WebhookEnvelope,
    config: BotConfig,
    client_factory: ClientFactory | None = None,
    *,
    logger: StructuredLogger | None = None,
) -> DispatchResult:
    """Verify, decode and triage one delivery.

    Raises ConfigError when credentials are missing, AuthError / ParseError
    before any mutation, UpstreamAPIError if a GitHub call fails part-way
    through a pipeline.
    """
    config.require_credentials()
    body = verify_signature(
        config.webhook_secret, envelope.raw_body, envelope.event_type, envelope.signature
    )
    event_type = EventType.parse(envelope.event_type)
    event = parse_event(event_type, body)
    return route_event(
        event_type,
        event,
        client_factory or rest_client_factory(config),
        repository=config.repository,
        logger=logger,
    )


__all__ = [
    "ClientFactory",
    "DispatchResult",
    "dispatch",
    "handle_comment_created",
    "handle_issue_opened",
    "plan_issue_opened",
    "rest_client_factory",
    "route_event",
]
