"""Storage for uploaded i3 debug logs.

Uploads are bzip2-compressed ``i3 --shmlog`` dumps. We only check that the
data decompresses and contains something shaped like an i3 log line; the
compressed bytes are stored as-is and served back verbatim.
"""

from __future__ import annotations

import bz2
import re
import time
from dataclasses import dataclass
from pathlib import Path

from .logging import get_logger

_FILE_NAME = r"[a-zA-Z0-9\-_/.]+\.[ch]"
_IDENTIFIER = r"[_a-zA-Z][_a-zA-Z0-9]{0,30}"
_LINE_NUMBER = r"[0-9]+"

# e.g. "2015-02-01 17:21:48 - ../i3-4.8/src/handlers.c:handle_event:1231 - blah"
# (the timestamp is locale-specific, so it is not matched)
I3_LOG_LINE = re.compile(
    (" - " + _FILE_NAME + ":" + _IDENTIFIER + ":" + _LINE_NUMBER + " - ").encode()
)

_KEY = re.compile(r"^[0-9]+$")

BZIP2_MAGIC = b"BZh"


class LogRejected(ValueError):
    """Upload is not a bzip2-compressed i3 log."""


@dataclass
class FileLogStore:
    directory: Path
    base_url: str

    def url_for(self, key: str) -> str:
        return f"{self.base_url.rstrip('/')}/logs/{key}.bz2"

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.bz2"

    def validate(self, compressed: bytes) -> None:
        # bz2.decompress(b"") succeeds, so an empty body needs its own check
        if not compressed.startswith(BZIP2_MAGIC):
            raise LogRejected("Data not bzip2-compressed.")
        try:
            uncompressed = bz2.decompress(compressed)
        except (OSError, ValueError, EOFError) as exc:
            raise LogRejected("Data not bzip2-compressed.") from exc
        if not I3_LOG_LINE.search(uncompressed):
            raise LogRejected("Data is not an i3 log file.")

    def _claim_key(self) -> tuple[str, Path]:
        """Reserve an unused key by creating its file exclusively."""
        key = time.time_ns()
        while True:
            path = self._path(str(key))
            try:
                with path.open("xb"):
                    pass
            except FileExistsError:
                key += 1
                continue
            return str(key), path

    def store(self, compressed: bytes) -> str:
        """Validate and persist ``compressed``; returns the retrieval URL."""
        self.validate(compressed)
        self.directory.mkdir(parents=True, exist_ok=True)
        key, path = self._claim_key()
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_bytes(compressed)
            tmp.replace(path)
        except OSError:
            path.unlink(missing_ok=True)
            raise
        get_logger().info(f"stored log {path.name}", size=len(compressed))
        return self.url_for(key)

    def load(self, key: str) -> bytes | None:
        if key.endswith(".bz2"):
            key = key[: -len(".bz2")]
        if not _KEY.match(key):
            return None
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_bytes()


__all__ = ["FileLogStore", "I3_LOG_LINE", "LogRejected"]
