from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .env_auth import create_env_auth_manager
from .errors import ConfigError

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_LOG_BASE_URL = "https://logs.i3wm.org"
CONFIG_DEFAULT = "issuebot.config.yaml"


@dataclass
class BotConfig:
    """Process-wide settings, loaded once at startup and passed explicitly."""

    webhook_secret: str
    github_token: str
    # owner/name; when set, deliveries for any other repository are ignored
    repository: str | None
    api_url: str
    host: str
    port: int
    log_directory: Path
    log_base_url: str
    logging_json_enabled: bool
    logging_level: str

    def require_credentials(self) -> None:
        missing = []
        if not self.webhook_secret:
            missing.append("webhook secret (GITHUB_WEBHOOK_SECRET)")
        if not self.github_token:
            missing.append("GitHub token (GITHUB_TOKEN)")
        if missing:
            raise ConfigError("Missing credentials: " + ", ".join(missing))


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], "")
    return value


def _read_yaml(p: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(p.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid configuration file {p}: {exc}') from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f'Configuration file {p} must contain a mapping')
    return cast(dict[str, Any], raw)


def load_config(path: str | Path | None = None, *, load_dotenv: bool = True) -> BotConfig:
    """Load settings from an optional YAML file plus the environment.

    A missing file is not an error (defaults apply) unless it was named
    explicitly. Credentials are never validated here; call
    ``BotConfig.require_credentials`` before serving.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise ConfigError(f'Configuration file not found: {p}')
        raw = _read_yaml(p)
    elif Path(CONFIG_DEFAULT).exists():
        raw = _read_yaml(Path(CONFIG_DEFAULT))

    gh = cast(dict[str, Any], raw.get('github', {}) or {})
    server = cast(dict[str, Any], raw.get('server', {}) or {})
    logs = cast(dict[str, Any], raw.get('logs', {}) or {})
    logging_config = cast(dict[str, Any], raw.get('logging', {}) or {})
    env = cast(dict[str, Any], raw.get('environment', {}) or {})

    auth = create_env_auth_manager(
        load_dotenv=load_dotenv and bool(env.get('load_dotenv', True)),
        dotenv_path=env.get('dotenv_path'),
    )
    secret = _resolve_env_var(gh.get('webhook_secret')) or auth.get_webhook_secret() or ''
    token = _resolve_env_var(gh.get('token')) or auth.get_github_token() or ''

    try:
        port = int(_resolve_env_var(server.get('port', 8080)))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'server.port must be an integer: {exc}') from exc

    return BotConfig(
        webhook_secret=str(secret),
        github_token=str(token),
        repository=_resolve_env_var(gh.get('repository')) or None,
        api_url=str(_resolve_env_var(gh.get('api_url')) or DEFAULT_API_URL),
        host=str(server.get('host', '127.0.0.1')),
        port=port,
        log_directory=Path(_resolve_env_var(logs.get('directory')) or 'var/logs'),
        log_base_url=str(logs.get('base_url', DEFAULT_LOG_BASE_URL)).rstrip('/'),
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')),
    )


__all__ = ["BotConfig", "ConfigError", "load_config"]
