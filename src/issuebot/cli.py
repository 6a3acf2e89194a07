"""issuebot CLI.

Subcommands:
  serve            -> run the webhook / log-upload HTTP service
  extract-version  -> print the version found in a text (file or stdin)
  classify         -> print classification flags for an issue title/body
  triage           -> run the issue-opened pipeline against a live issue
                      (dry-run unless --apply)
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from typing import Any, TextIO

from issuebot.classifier import classify
from issuebot.config import CONFIG_DEFAULT, load_config
from issuebot.dispatch import handle_issue_opened, plan_issue_opened
from issuebot.errors import IssueBotError, classify_error
from issuebot.events import IssueSnapshot, Repository
from issuebot.github_rest import GitHubAPIError, GitHubRestClient
from issuebot.logging import configure_logging
from issuebot.version import extract_version

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="issuebot", description="GitHub issue triage bot"
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    ps = sub.add_parser("serve", help="Run the webhook HTTP service")
    ps.add_argument("--config", help=f"YAML config (default: ./{CONFIG_DEFAULT} if present)")
    ps.add_argument("--host")
    ps.add_argument("--port", type=int)

    pv = sub.add_parser("extract-version", help="Print the product/version found in text")
    pv.add_argument("file", nargs="?", type=argparse.FileType("r"), default=sys.stdin)

    pc = sub.add_parser("classify", help="Print classification flags as JSON")
    pc.add_argument("--title", default="")
    pc.add_argument("file", nargs="?", type=argparse.FileType("r"), default=sys.stdin)

    pt = sub.add_parser("triage", help="Run the issue-opened pipeline for an existing issue")
    pt.add_argument("--config")
    pt.add_argument("--repo", required=True, help="Target repository (owner/name)")
    pt.add_argument("--issue", type=int, required=True)
    pt.add_argument("--apply", action="store_true", help="Perform mutations (default: dry-run)")
    return p


def _read(stream: TextIO) -> str:
    try:
        return stream.read()
    finally:
        if stream is not sys.stdin:
            stream.close()


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from issuebot.app import create_app

    config = load_config(args.config)
    logger = configure_logging(config.logging_json_enabled, config.logging_level)
    try:
        config.require_credentials()
    except IssueBotError as exc:
        logger.warning(f"{exc}; webhook deliveries will be rejected")
    host = args.host or config.host
    port = args.port or config.port
    logger.info(f"issuebot listening on http://{host}:{port}/webhook")
    uvicorn.run(create_app(config, logger=logger), host=host, port=port)
    return 0


def _cmd_extract_version(args: argparse.Namespace) -> int:
    match = extract_version(_read(args.file))
    if match is None:
        print("no version found", file=sys.stderr)
        return 1
    print(f"{match.product} {match.version}")
    return 0


def _cmd_classify(args: argparse.Namespace) -> int:
    flags = classify(args.title, _read(args.file))
    print(json.dumps(flags.as_dict(), indent=2))
    return 0


def _snapshot_from_api(
    client: GitHubRestClient, repo: Repository, number: int
) -> IssueSnapshot:
    data = client.get_issue(number)
    user = data.get("user") or {}
    return IssueSnapshot(
        number=number,
        repository=repo,
        title=str(data.get("title") or ""),
        body=str(data.get("body") or ""),
        author=str(user.get("login") or ""),
        labels=frozenset(client.list_labels(number)),
    )


def _cmd_triage(args: argparse.Namespace) -> int:
    owner, sep, name = args.repo.partition("/")
    if not sep or not owner or not name:
        print("--repo must look like owner/name", file=sys.stderr)
        return 2
    config = load_config(args.config)
    configure_logging(config.logging_json_enabled, config.logging_level)
    if not config.github_token:
        print("GitHub token not configured (GITHUB_TOKEN)", file=sys.stderr)
        return 2
    client = GitHubRestClient(token=config.github_token, repo=args.repo, base_url=config.api_url)
    snapshot = _snapshot_from_api(client, Repository(owner, name), args.issue)
    if args.apply:
        mutations = handle_issue_opened(snapshot, client)
    else:
        mutations = plan_issue_opened(snapshot, client)
    print(json.dumps([m.describe() for m in mutations], indent=2))
    return 0


_COMMANDS = {
    "serve": _cmd_serve,
    "extract-version": _cmd_extract_version,
    "classify": _cmd_classify,
    "triage": _cmd_triage,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return _COMMANDS[args.cmd](args)
    except (IssueBotError, GitHubAPIError) as exc:
        info = classify_error(exc)
        print(f"[{info.category}] {info.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
