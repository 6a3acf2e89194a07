"""Environment-based credential loading for issuebot.

The bot needs two secrets: a GitHub token used for API mutations and the
shared webhook secret used to verify ``X-Hub-Signature``. Both are read from
environment variables, optionally populated from a ``.env`` file first.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

TOKEN_ALTERNATIVES = ("GH_TOKEN", "GITHUB_ACCESS_TOKEN", "GITHUB_PAT")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    github_token_var: str = "GITHUB_TOKEN"
    webhook_secret_var: str = "GITHUB_WEBHOOK_SECRET"


class EnvironmentAuthManager:
    """Resolves the GitHub token and webhook secret from the environment."""

    def __init__(self, config: EnvAuthConfig):
        self.config = config
        self.logger = get_logger()
        self._dotenv_loaded = False

        if config.load_dotenv:
            self._load_dotenv()

    def _load_dotenv(self) -> None:
        """Load .env file if available."""
        if self.config.dotenv_path:
            candidates = [self.config.dotenv_path]
        else:
            candidates = [".env", ".env.local"]
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                load_dotenv(str(env_path))
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                return

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def get_github_token(self) -> str | None:
        """Get GitHub token from environment variables."""
        token = os.getenv(self.config.github_token_var)
        if token:
            self.logger.debug("Found GitHub token in environment variables")
            return token

        for alt_var in TOKEN_ALTERNATIVES:
            token = os.getenv(alt_var)
            if token:
                self.logger.debug(f"Found GitHub token in {alt_var}")
                return token

        return None

    def get_webhook_secret(self) -> str | None:
        secret = os.getenv(self.config.webhook_secret_var)
        return secret or None


def create_env_auth_manager(
    load_dotenv: bool = True, dotenv_path: str | None = None
) -> EnvironmentAuthManager:
    config = EnvAuthConfig(load_dotenv=load_dotenv, dotenv_path=dotenv_path)
    return EnvironmentAuthManager(config)


__all__ = ["EnvAuthConfig", "EnvironmentAuthManager", "create_env_auth_manager"]
