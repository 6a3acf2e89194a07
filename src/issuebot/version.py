"""Version extraction from free-form issue text.

Bug reports tend to mention the reporter's version several times (``i3
--moreversion`` prints both the binary and the running version, people quote
older versions they upgraded from, etc.). We collect every mention, keep the
highest one per product and compare numerically, so ``4.10`` beats ``4.9``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

PRIMARY_PRODUCT = "i3"
PRODUCTS = ("i3", "i3status", "i3lock")

# Greek-script code points (Unicode Scripts.txt). Coptic letters sharing the
# Greek and Coptic block are not part of it.
_GREEK_RANGES = (
    (0x0370, 0x0373), (0x0375, 0x0377), (0x037A, 0x037D), (0x037F, 0x037F),
    (0x0384, 0x0384), (0x0386, 0x0386), (0x0388, 0x038A), (0x038C, 0x038C),
    (0x038E, 0x03A1), (0x03A3, 0x03E1), (0x03F0, 0x03FF), (0x1D26, 0x1D2A),
    (0x1D5D, 0x1D61), (0x1D66, 0x1D6A), (0x1DBF, 0x1DBF), (0x1F00, 0x1F15),
    (0x1F18, 0x1F1D), (0x1F20, 0x1F45), (0x1F48, 0x1F4D), (0x1F50, 0x1F57),
    (0x1F59, 0x1F59), (0x1F5B, 0x1F5B), (0x1F5D, 0x1F5D), (0x1F5F, 0x1F7D),
    (0x1F80, 0x1FB4), (0x1FB6, 0x1FC4), (0x1FC6, 0x1FD3), (0x1FD6, 0x1FDB),
    (0x1FDD, 0x1FEF), (0x1FF2, 0x1FF4), (0x1FF6, 0x1FFE), (0x2126, 0x2126),
    (0xAB65, 0xAB65), (0x10140, 0x1018E), (0x101A0, 0x101A0), (0x1D200, 0x1D245),
)
_GREEK = "".join(f"{chr(lo)}-{chr(hi)}" for lo, hi in _GREEK_RANGES)

# ASCII whitespace only; NBSP and friends do not separate product and version.
_WS = r"[ \t\n\f\r]"

VERSION_PATTERN = re.compile(
    rf"(i3|i3status|i3lock):?{_WS}*(?:version|v|vers|ver)?:?{_WS}*"
    rf"(3\.[a-e]|3\.[{_GREEK}]|[0-9]\.[0-9]+)"
)

# The default config shipped a comment mentioning v4.8 for years; it shows up
# in every debug log and says nothing about the running version.
CONFIG_BOILERPLATE_LINE = re.compile(
    r"(?m) - config_parser\.c:parse_config:([0-9]+) - CONFIG\(line [0-9]+\): "
    r"# Before i3 v4\.8, we used to recommend this one as the default:[ \t\r\f\v]*$"
)

_DIGITS = re.compile(r"(\d+)")


@dataclass(frozen=True)
class VersionMatch:
    product: str
    version: str

    @property
    def is_primary(self) -> bool:
        return self.product == PRIMARY_PRODUCT


def natural_key(value: str) -> list[int | str]:
    """Sort key comparing digit runs as integers ("4.9" < "4.10")."""
    parts = _DIGITS.split(value)
    # split() with a capturing group alternates text/digits, starting with text
    return [int(part) if idx % 2 else part.casefold() for idx, part in enumerate(parts)]


def normalize_version(version: str) -> str:
    return version.rstrip(".")


def extract_version(text: str | None) -> VersionMatch | None:
    """Return the highest version mentioned for the single product in ``text``.

    When the text mentions more than one product (e.g. ``i3`` and
    ``i3lock``), only the first match is reported.
    """
    if not text:
        return None
    text = CONFIG_BOILERPLATE_LINE.sub("", text)

    matches = [(m.group(1), m.group(2)) for m in VERSION_PATTERN.finditer(text)]
    if not matches:
        return None

    first_product, first_version = matches[0]
    if any(product != first_product for product, _ in matches):
        return VersionMatch(first_product, normalize_version(first_version))

    versions = sorted((version for _, version in matches), key=natural_key)
    return VersionMatch(first_product, normalize_version(versions[-1]))


__all__ = [
    "PRIMARY_PRODUCT",
    "PRODUCTS",
    "VERSION_PATTERN",
    "VersionMatch",
    "extract_version",
    "natural_key",
    "normalize_version",
]
