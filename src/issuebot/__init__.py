"""issuebot - GitHub issue triage for the i3 window manager.

High-level public API:

from issuebot import load_config, create_app

config = load_config('issuebot.config.yaml')
app = create_app(config)          # FastAPI app serving POST /webhook

Pure helpers usable without the HTTP layer:

from issuebot import extract_version, classify
extract_version('i3 version 4.10.1')   # VersionMatch(product='i3', version='4.10')
"""

from __future__ import annotations

from .classifier import ClassificationFlags, classify
from .config import BotConfig, load_config
from .version import VersionMatch, extract_version

__version__ = "0.3.0"


def __getattr__(name: str) -> object:
    """Lazily import the FastAPI app factory so the pure helpers stay light."""
    if name == "create_app":
        from .app import create_app

        return create_app
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "BotConfig",
    "ClassificationFlags",
    "VersionMatch",
    "classify",
    "create_app",
    "extract_version",
    "load_config",
    "__version__",
]
