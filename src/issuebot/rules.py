"""Triage policy as ordered lists of guarded rules.

A rule looks at a :class:`TriageContext` and returns a :class:`RuleOutcome`:
the mutations to apply (possibly none) and whether the pipeline stops after
them. :func:`run_rules` applies each rule's mutations through the context's
:class:`~issuebot.orchestrator.IssueMutator` before evaluating the next rule,
so later guards see the labels earlier rules added.

Issue opened:  enhancement > documentation > bug, then log, version and
support-window checks.
Comment by the issue author: clear ``missing-log`` / ``missing-version``
and re-check the support window against the version given in the comment.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .classifier import ClassificationFlags, classify, has_log_link
from .events import CommentSnapshot, IssueSnapshot
from .github_rest import Milestone
from .orchestrator import (
    AddLabel,
    CloseIssue,
    IssueMutator,
    Mutation,
    PostComment,
    RemoveLabel,
)
from .version import VersionMatch, extract_version

LABEL_ENHANCEMENT = "enhancement"
LABEL_REQUIRES_CONFIGURATION = "requires-configuration"
LABEL_DOCUMENTATION = "documentation"
LABEL_BUG = "bug"
LABEL_MISSING_LOG = "missing-log"
LABEL_MISSING_VERSION = "missing-version"
LABEL_UNSUPPORTED_VERSION = "unsupported-version"

PENDING_LABELS = (LABEL_MISSING_VERSION, LABEL_UNSUPPORTED_VERSION, LABEL_MISSING_LOG)

FEATURE_POLICY_COMMENT = (
    "Thanks for the suggestion! Please note that we are happy with the current "
    "feature set and are reluctant to add features which require new "
    "configuration options or commands. Feature requests are kept open for "
    "discussion, but please do not expect them to be implemented unless "
    "somebody steps up to provide a patch that fits our design."
)
MISSING_LOG_COMMENT = (
    "I don’t see a link to logs.i3wm.org. "
    "Did you follow https://i3wm.org/docs/debugging.html? "
    "(In case you actually provided a link to a logfile, please ignore me.)"
)
MISSING_VERSION_COMMENT = (
    "I don’t see a version number. "
    "Could you please copy & paste the output of `i3 --version` into this issue?"
)
UPGRADE_COMMENT = (
    "Sorry, we can only support the latest major version. "
    "Please upgrade from {old} to {new}, verify the bug still exists, "
    "and re-open this issue."
)


@dataclass(frozen=True)
class RuleOutcome:
    mutations: tuple[Mutation, ...] = ()
    stop: bool = False


CONTINUE = RuleOutcome()
STOP = RuleOutcome(stop=True)


def act(*mutations: Mutation, stop: bool = False) -> RuleOutcome:
    return RuleOutcome(tuple(mutations), stop)


@dataclass
class TriageContext:
    issue: IssueSnapshot
    text: str
    mutator: IssueMutator
    flags: ClassificationFlags = field(default_factory=ClassificationFlags)
    version: VersionMatch | None = None
    _milestones: list[Milestone] | None = field(default=None, init=False, repr=False)

    def has_label(self, label: str) -> bool:
        return self.mutator.has_label(label)

    def milestones(self) -> list[Milestone]:
        if self._milestones is None:
            self._milestones = self.mutator.closed_milestones()
        return self._milestones


Rule = Callable[[TriageContext], RuleOutcome]


def upgrade_comment(old: str, new: str) -> str:
    return UPGRADE_COMMENT.format(old=old, new=new)


# ---- issue opened ------------------------------------------------------


def enhancement_rule(ctx: TriageContext) -> RuleOutcome:
    if not ctx.flags.is_enhancement_request:
        return CONTINUE
    mutations: list[Mutation] = [AddLabel(LABEL_ENHANCEMENT)]
    if ctx.flags.requires_new_configuration:
        mutations.append(AddLabel(LABEL_REQUIRES_CONFIGURATION))
    if not ctx.has_label(LABEL_ENHANCEMENT):
        mutations.append(PostComment(FEATURE_POLICY_COMMENT))
    return act(*mutations, stop=True)


def documentation_rule(ctx: TriageContext) -> RuleOutcome:
    if ctx.flags.is_documentation_request:
        return act(AddLabel(LABEL_DOCUMENTATION), stop=True)
    return CONTINUE


def bug_rule(ctx: TriageContext) -> RuleOutcome:
    if ctx.flags.is_bug_report:
        return act(AddLabel(LABEL_BUG))
    return CONTINUE


def missing_log_rule(ctx: TriageContext) -> RuleOutcome:
    if has_log_link(ctx.text):
        return CONTINUE
    if ctx.has_label(LABEL_MISSING_LOG):
        return CONTINUE
    return act(AddLabel(LABEL_MISSING_LOG), PostComment(MISSING_LOG_COMMENT))


def missing_version_rule(ctx: TriageContext) -> RuleOutcome:
    if ctx.version is not None:
        return CONTINUE
    if ctx.has_label(LABEL_MISSING_VERSION):
        return STOP
    return act(AddLabel(LABEL_MISSING_VERSION), PostComment(MISSING_VERSION_COMMENT), stop=True)


# ---- shared --------------------------------------------------------------


def secondary_product_rule(ctx: TriageContext) -> RuleOutcome:
    # i3status / i3lock have their own release cycles
    if ctx.version is None or not ctx.version.is_primary:
        return STOP
    return CONTINUE


def support_window_rule(*, clear_unsupported: bool) -> Rule:
    """Compare the extracted version with the most recent closed milestone."""

    def rule(ctx: TriageContext) -> RuleOutcome:
        if ctx.version is None:
            return STOP
        milestones = ctx.milestones()
        if not milestones:
            ctx.mutator.logger.warning(
                "No milestones found",
                repo=ctx.issue.repository.full_name,
                issue_number=ctx.issue.number,
            )
            return STOP
        current = milestones[0].title
        version = ctx.version.version
        if version == current:
            mutations: list[Mutation] = [AddLabel(current)]
            if clear_unsupported:
                mutations.append(RemoveLabel(LABEL_UNSUPPORTED_VERSION))
            return act(*mutations, stop=True)
        if ctx.has_label(LABEL_UNSUPPORTED_VERSION):
            return STOP
        return act(
            AddLabel(LABEL_UNSUPPORTED_VERSION),
            PostComment(upgrade_comment(version, current)),
            CloseIssue("not_planned"),
            stop=True,
        )

    rule.__name__ = "support_window_rule"
    return rule


# ---- comment created -----------------------------------------------------


def pending_labels_rule(ctx: TriageContext) -> RuleOutcome:
    if any(ctx.has_label(label) for label in PENDING_LABELS):
        return CONTINUE
    return STOP


def log_provided_rule(ctx: TriageContext) -> RuleOutcome:
    if ctx.has_label(LABEL_MISSING_LOG) and has_log_link(ctx.text):
        return act(RemoveLabel(LABEL_MISSING_LOG))
    return CONTINUE


def version_pending_rule(ctx: TriageContext) -> RuleOutcome:
    if ctx.has_label(LABEL_MISSING_VERSION) or ctx.has_label(LABEL_UNSUPPORTED_VERSION):
        return CONTINUE
    return STOP


def version_provided_rule(ctx: TriageContext) -> RuleOutcome:
    if ctx.version is None:
        return STOP
    return act(RemoveLabel(LABEL_MISSING_VERSION))


ISSUE_OPENED_RULES: tuple[Rule, ...] = (
    enhancement_rule,
    documentation_rule,
    bug_rule,
    missing_log_rule,
    missing_version_rule,
    secondary_product_rule,
    support_window_rule(clear_unsupported=False),
)

COMMENT_CREATED_RULES: tuple[Rule, ...] = (
    pending_labels_rule,
    log_provided_rule,
    version_pending_rule,
    version_provided_rule,
    secondary_product_rule,
    support_window_rule(clear_unsupported=True),
)


def issue_opened_context(issue: IssueSnapshot, mutator: IssueMutator) -> TriageContext:
    return TriageContext(
        issue=issue,
        text=issue.body,
        mutator=mutator,
        flags=classify(issue.title, issue.body),
        version=extract_version(issue.body),
    )


def comment_created_context(
    issue: IssueSnapshot, comment: CommentSnapshot, mutator: IssueMutator
) -> TriageContext:
    return TriageContext(
        issue=issue,
        text=comment.body,
        mutator=mutator,
        version=extract_version(comment.body),
    )


def run_rules(rules: Sequence[Rule], ctx: TriageContext) -> list[Mutation]:
    """Evaluate ``rules`` in order, applying each outcome before the next rule.

    Returns the mutations actually applied (skipped no-op label changes are
    not included). An ``UpstreamAPIError`` aborts the run.
    """
    for rule in rules:
        outcome = rule(ctx)
        for mutation in outcome.mutations:
            ctx.mutator.apply(mutation)
        if outcome.stop:
            ctx.mutator.logger.debug(
                f"pipeline stopped at {rule.__name__}",
                repo=ctx.issue.repository.full_name,
                issue_number=ctx.issue.number,
            )
            break
    return list(ctx.mutator.applied)


__all__ = [
    "COMMENT_CREATED_RULES",
    "ISSUE_OPENED_RULES",
    "LABEL_BUG",
    "LABEL_DOCUMENTATION",
    "LABEL_ENHANCEMENT",
    "LABEL_MISSING_LOG",
    "LABEL_MISSING_VERSION",
    "LABEL_REQUIRES_CONFIGURATION",
    "LABEL_UNSUPPORTED_VERSION",
    "RuleOutcome",
    "TriageContext",
    "comment_created_context",
    "issue_opened_context",
    "run_rules",
    "upgrade_comment",
]
