from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "issuebot (+https://github.com/i3/i3)"
HTTP_ERROR_STATUS = 400
REQUEST_TIMEOUT = 30


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API returns an error or is unreachable."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


@dataclass(frozen=True)
class Milestone:
    title: str
    number: int | None = None
    due_on: str | None = None


@dataclass
class GitHubRestClient:
    """Lightweight REST client for the issue operations the bot performs.

    Calls are blocking and never retried; a failed call raises
    :class:`GitHubAPIError` and it is up to the caller to abort.
    """

    token: str
    repo: str  # owner/name
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._session.headers,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise GitHubAPIError(f"GitHub API {method} {url} failed: {exc}") from exc
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub API {method} {url} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        if response.text:
            try:
                return response.json()
            except ValueError:
                return response.text
        return None

    def _paginate(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> list[Any]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", 100)
        params.setdefault("page", 1)
        results: list[Any] = []
        while True:
            data = self._request("GET", path, params=params)
            if not isinstance(data, list):
                break
            results.extend(data)
            if len(data) < per_page:
                break
            params["page"] = params.get("page", 1) + 1
        return results

    def _issue_path(self, number: int, *suffix: str) -> str:
        return "/".join([f"/repos/{self.repo}/issues/{number}", *suffix])

    # ---- Issue operations --------------------------------------------
    def get_issue(self, number: int) -> dict[str, Any]:
        data = self._request("GET", self._issue_path(number))
        if not isinstance(data, dict):
            raise GitHubAPIError(f"unexpected issue payload for #{number}")
        return data

    def add_labels(self, number: int, labels: Iterable[str]) -> None:
        self._request(
            "POST", self._issue_path(number, "labels"), json_body={"labels": list(labels)}
        )

    def remove_label(self, number: int, label: str) -> None:
        self._request("DELETE", self._issue_path(number, "labels", quote(label, safe="")))

    def list_labels(self, number: int) -> list[str]:
        data = self._paginate(self._issue_path(number, "labels"))
        return [
            str(entry["name"])
            for entry in data
            if isinstance(entry, dict) and isinstance(entry.get("name"), str)
        ]

    def create_comment(self, number: int, body: str) -> None:
        self._request("POST", self._issue_path(number, "comments"), json_body={"body": body})

    def edit_issue(
        self,
        number: int,
        *,
        state: str | None = None,
        state_reason: str | None = None,
    ) -> None:
        payload: dict[str, Any] = {}
        if state is not None:
            payload["state"] = state
        if state_reason is not None:
            payload["state_reason"] = state_reason
        if payload:
            self._request("PATCH", self._issue_path(number), json_body=payload)

    def close_issue(self, number: int, *, reason: str = "not_planned") -> None:
        self.edit_issue(number, state="closed", state_reason=reason)

    # ---- Milestones ---------------------------------------------------
    def list_closed_milestones(self) -> list[Milestone]:
        """Closed milestones, most recent due date first."""
        data = self._paginate(
            f"/repos/{self.repo}/milestones",
            params={"state": "closed", "sort": "due_on", "direction": "desc"},
        )
        out: list[Milestone] = []
        for entry in data:
            if not isinstance(entry, dict):
                continue
            title = entry.get("title")
            if not isinstance(title, str):
                continue
            number = entry.get("number")
            out.append(
                Milestone(
                    title=title,
                    number=number if isinstance(number, int) else None,
                    due_on=entry.get("due_on"),
                )
            )
        return out


__all__ = [
    "DEFAULT_API_URL",
    "GitHubAPIError",
    "GitHubRestClient",
    "Milestone",
]
