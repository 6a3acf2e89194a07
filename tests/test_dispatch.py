from __future__ import annotations

import dataclasses

import pytest

from issuebot.dispatch import dispatch
from issuebot.errors import AuthError, ConfigError, ParseError
from issuebot.events import (
    CommentEvent,
    EventType,
    IssueEvent,
    WebhookEnvelope,
    parse_event,
)
from issuebot.orchestrator import AddLabel


def _envelope(event, raw, sig):
    return WebhookEnvelope(event_type=event, raw_body=raw, signature=sig, delivery_id="d-1")


@pytest.fixture
def trackers(make_tracker):
    created = {}

    def factory(repo):
        created[repo] = make_tracker(milestones=["4.10"])
        return created[repo]

    factory.created = created
    return factory


def test_ping_is_answered_without_client(bot_config, signed, trackers):
    raw, sig = signed({"zen": "Keep it logically awesome."})
    result = dispatch(_envelope("ping", raw, sig), bot_config, trackers)
    assert result.status == "pong"
    assert trackers.created == {}


def test_issue_opened_runs_pipeline(bot_config, signed, payload_factory, trackers):
    raw, sig = signed(payload_factory("i3 version 4.10 https://logs.i3wm.org/logs/1.bz2"))
    result = dispatch(_envelope("issues", raw, sig), bot_config, trackers)
    assert result.status == "processed"
    assert result.action == "opened"
    assert result.mutations == [AddLabel("4.10")]
    assert result.as_dict()["mutations"] == [{"type": "add_label", "label": "4.10"}]


def test_issue_edited_is_ignored(bot_config, signed, payload_factory, trackers):
    raw, sig = signed(payload_factory("no version", action="edited"))
    result = dispatch(_envelope("issues", raw, sig), bot_config, trackers)
    assert result.status == "ignored"
    assert trackers.created == {}


def test_other_repository_is_ignored(bot_config, signed, payload_factory, trackers):
    raw, sig = signed(payload_factory("no version", repo="someone/fork"))
    result = dispatch(_envelope("issues", raw, sig), bot_config, trackers)
    assert result.status == "ignored"
    assert "someone/fork" in result.reason


def test_comment_by_other_user_is_ignored(bot_config, signed, payload_factory, trackers):
    payload = payload_factory(
        "crash", labels=["missing-version"], comment=("mallory", "i3 version 4.10")
    )
    raw, sig = signed(payload)
    result = dispatch(_envelope("issue_comment", raw, sig), bot_config, trackers)
    assert result.status == "ignored"
    assert trackers.created == {}


def test_comment_by_author_is_processed(bot_config, signed, payload_factory, trackers):
    payload = payload_factory(
        "crash", labels=["missing-version"], comment=("alice", "i3 version 4.10")
    )
    raw, sig = signed(payload)
    result = dispatch(_envelope("issue_comment", raw, sig), bot_config, trackers)
    assert result.status == "processed"
    assert trackers.created["i3/i3"].ops() == ["remove_label", "list_milestones", "add_labels"]


@pytest.mark.parametrize("action", ["edited", "deleted"])
def test_comment_edited_is_ignored(bot_config, signed, payload_factory, trackers, action):
    payload = payload_factory(
        "crash",
        action=action,
        labels=["missing-version"],
        comment=("alice", "i3 version 4.10"),
    )
    raw, sig = signed(payload)
    result = dispatch(_envelope("issue_comment", raw, sig), bot_config, trackers)
    assert result.status == "ignored"
    assert result.action == action
    assert trackers.created == {}


def test_bad_signature_never_parses(bot_config, trackers):
    with pytest.raises(AuthError):
        dispatch(_envelope("issues", b"not even json", "sha1=" + "0" * 40), bot_config, trackers)
    assert trackers.created == {}


def test_invalid_json_after_valid_signature(bot_config, trackers):
    from issuebot.signature import compute_signature

    raw = b"{broken"
    with pytest.raises(ParseError, match="Cannot parse JSON"):
        dispatch(_envelope("issues", raw, compute_signature(bot_config.webhook_secret, raw)),
                 bot_config, trackers)


def test_unknown_event_type(bot_config, signed, payload_factory, trackers):
    raw, sig = signed(payload_factory("x"))
    with pytest.raises(ParseError, match="pull_request"):
        dispatch(_envelope("pull_request", raw, sig), bot_config, trackers)


def test_missing_credentials_is_config_error(bot_config, signed, payload_factory, trackers):
    raw, sig = signed(payload_factory("x"))
    config = dataclasses.replace(bot_config, github_token="")
    with pytest.raises(ConfigError):
        dispatch(_envelope("issues", raw, sig), config, trackers)


def test_parse_event_variants(payload_factory):
    import json

    issue_raw = json.dumps(payload_factory("body", labels=["bug"])).encode()
    event = parse_event(EventType.ISSUES, issue_raw)
    assert isinstance(event, IssueEvent)
    assert event.issue.labels == frozenset({"bug"})
    assert event.repository.full_name == "i3/i3"

    comment_raw = json.dumps(payload_factory("body", comment=("alice", "hi"))).encode()
    comment = parse_event(EventType.ISSUE_COMMENT, comment_raw)
    assert isinstance(comment, CommentEvent)
    assert comment.by_issue_author
    assert comment.repository == event.repository

    assert parse_event(EventType.PING, b"{}") is None


def test_parse_event_missing_fields():
    with pytest.raises(ParseError, match="issue"):
        parse_event(
            EventType.ISSUES,
            b'{"action": "opened", "repository": {"name": "i3", "owner": {"login": "i3"}}}',
        )
    with pytest.raises(ParseError, match="comment"):
        parse_event(
            EventType.ISSUE_COMMENT,
            b'{"repository": {"name": "i3", "owner": {"login": "i3"}},'
            b' "issue": {"number": 1, "user": {"login": "a"}}}',
        )


def test_pipeline_run_is_timed(bot_config, signed, payload_factory, trackers, capsys):
    import json

    from issuebot.logging import StructuredLogger

    logger = StructuredLogger(name="test-dispatch", json_logging=True)
    raw, sig = signed(payload_factory("i3 version 4.10 https://logs.i3wm.org/logs/1.bz2"))
    dispatch(_envelope("issues", raw, sig), bot_config, trackers, logger=logger)

    records = [json.loads(line) for line in capsys.readouterr().out.strip().split("\n")]
    operations = [r.get("operation") for r in records]
    assert operations[0] == "issue_opened_start"
    assert records[-1]["operation"] == "issue_opened"
    assert "duration_ms" in records[-1]
    assert records[-1]["issue_number"] == 42
