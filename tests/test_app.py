from __future__ import annotations

import bz2

import pytest
from fastapi.testclient import TestClient

from issuebot.app import create_app

I3_LOG = (
    b"2015-02-01 17:21:48 - ../i3-4.8/src/handlers.c:handle_event:1231 - blah\n"
    b"2015-02-01 17:21:48 - ../i3-4.8/src/x.c:x_push_changes:1100 - pushing\n"
)


@pytest.fixture
def tracker_box(make_tracker):
    box = {"tracker": make_tracker(milestones=["4.10"])}
    return box


@pytest.fixture
def client(bot_config, tracker_box):
    app = create_app(bot_config, client_factory=lambda repo: tracker_box["tracker"])
    return TestClient(app)


def _headers(event, sig):
    return {"X-GitHub-Event": event, "X-Hub-Signature": sig, "X-GitHub-Delivery": "abc-123"}


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_webhook_issue_opened(client, signed, payload_factory, tracker_box):
    raw, sig = signed(payload_factory("i3 version 4.9\nhttps://logs.i3wm.org/logs/1.bz2"))
    resp = client.post("/webhook", content=raw, headers=_headers("issues", sig))
    assert resp.status_code == 200
    data = resp.json()
    assert data["ok"] is True
    assert data["status"] == "processed"
    assert [m["type"] for m in data["mutations"]] == ["add_label", "comment", "close"]
    assert tracker_box["tracker"].calls[-1] == ("close_issue", 42, "not_planned")


def test_webhook_ping(client, signed):
    raw, sig = signed({"zen": "hi"})
    resp = client.post("/webhook", content=raw, headers=_headers("ping", sig))
    assert resp.status_code == 200
    assert resp.json()["status"] == "pong"


def test_webhook_bad_signature_is_400(client, payload_factory, signed, tracker_box):
    raw, _ = signed(payload_factory("x"))
    _, other_sig = signed(payload_factory("x"), secret="wrong")
    resp = client.post("/webhook", content=raw, headers=_headers("issues", other_sig))
    assert resp.status_code == 400
    assert resp.json()["category"] == "auth"
    assert tracker_box["tracker"].calls == []


def test_webhook_missing_headers_is_400(client):
    resp = client.post("/webhook", content=b"{}")
    assert resp.status_code == 400


def test_webhook_upstream_failure_is_502(
    client, signed, payload_factory, tracker_box, make_tracker
):
    tracker_box["tracker"] = make_tracker(fail_on="create_comment")
    raw, sig = signed(payload_factory("nothing useful"))
    resp = client.post("/webhook", content=raw, headers=_headers("issues", sig))
    assert resp.status_code == 502
    assert resp.json()["category"] == "upstream"
    assert tracker_box["tracker"].ops() == ["add_labels"]


def test_log_upload_and_download(client):
    compressed = bz2.compress(I3_LOG)
    resp = client.post("/logs", content=compressed)
    assert resp.status_code == 200
    url = resp.text.strip()
    assert url.startswith("https://logs.example.org/logs/")
    assert url.endswith(".bz2")

    name = url.rsplit("/", 1)[1]
    fetched = client.get(f"/logs/{name}")
    assert fetched.status_code == 200
    assert fetched.headers["content-type"] == "application/octet-stream"
    assert fetched.content == compressed


def test_log_upload_rejects_uncompressed(client):
    resp = client.post("/logs", content=I3_LOG)
    assert resp.status_code == 400
    assert resp.text == "Data not bzip2-compressed."


def test_log_upload_rejects_non_i3_data(client):
    resp = client.post("/logs", content=bz2.compress(b"hello world\n"))
    assert resp.status_code == 400
    assert resp.text == "Data is not an i3 log file."


def test_unknown_log_is_404(client):
    assert client.get("/logs/12345.bz2").status_code == 404
    assert client.get("/logs/notanumber.bz2").status_code == 404
