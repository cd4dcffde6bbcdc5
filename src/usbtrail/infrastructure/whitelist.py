"""
Trusted-serial whitelist loaded from udev rules.

Each rule line carries two quoted fields, the device serial and a boolean
ignore flag, followed by a comment:

    ATTRS{serial}=="4C530001230308117292",ENV{UDISKS_IGNORE}="0" # office stick
"""

import re
import warnings
from dataclasses import dataclass
from pathlib import Path

from usbtrail.core.exceptions import WhitelistError
from usbtrail.core.security import check_symlink

__all__ = ["DEFAULT_WHITELIST_PATH", "WhitelistEntry", "Whitelist", "parse_bool"]


DEFAULT_WHITELIST_PATH = "/etc/udev/rules.d/99_PDAC_LOCAL_flash.rules"

RULE_PATTERN = re.compile(
    r'"(?P<serial>[^"]*)"'      # Serial number
    r'[^"#]*'                   # Next key and operator
    r'"(?P<flag>[^"]*)"'        # Ignore flag
    r'\s*#(?P<comment>.*)$'     # Comment
)

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def parse_bool(value: str) -> bool:
    """
    Parse a udev-style boolean.

    Raises:
        ValueError: If value is not one of the accepted spellings
    """
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean: {value!r}")


@dataclass(frozen=True)
class WhitelistEntry:
    """One whitelisted serial."""
    serial: str
    is_ignored: bool
    comment: str


class Whitelist:
    """
    Set of trusted device serials.

    Example:
        whitelist = Whitelist.from_file("/etc/udev/rules.d/99-usb.rules")
        if whitelist.is_in_whitelist(session.serial_number):
            ...
    """

    def __init__(self, entries: dict[str, WhitelistEntry] | None = None, source: str = ""):
        self.entries = entries or {}
        self.source = source

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, serial: str) -> bool:
        return serial in self.entries

    def is_in_whitelist(self, serial: str) -> bool:
        return serial in self.entries

    def entry(self, serial: str) -> WhitelistEntry | None:
        return self.entries.get(serial)

    @classmethod
    def parse(cls, text: str, source: str = "") -> "Whitelist":
        """
        Parse udev rules text.

        Lines that do not look like a rule are skipped. A rule with an
        unreadable flag is kept with ``is_ignored=False`` and a warning.
        A later rule for the same serial replaces the earlier one.

        Raises:
            WhitelistError: If no rule could be parsed
        """
        entries: dict[str, WhitelistEntry] = {}

        for number, line in enumerate(text.splitlines(), start=1):
            match = RULE_PATTERN.search(line)
            if not match:
                continue

            serial = match.group("serial")
            try:
                is_ignored = parse_bool(match.group("flag"))
            except ValueError:
                warnings.warn(
                    f"Invalid boolean value in whitelist line {number} "
                    f"(serial: {serial}), defaulting to false",
                    UserWarning,
                    stacklevel=2,
                )
                is_ignored = False

            entries[serial] = WhitelistEntry(
                serial=serial,
                is_ignored=is_ignored,
                comment=match.group("comment").strip(),
            )

        if not entries:
            raise WhitelistError(
                "No valid whitelist entries found",
                path=source or None,
            )
        return cls(entries, source=source)

    @classmethod
    def from_file(cls, path: str | Path) -> "Whitelist":
        """
        Load a whitelist file.

        Raises:
            WhitelistError: If the file is missing, unreadable or empty
        """
        path = Path(path).expanduser()
        try:
            _, resolved = check_symlink(path)
            text = resolved.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise WhitelistError(
                f"Cannot read whitelist {path}: {e.strerror or e}",
                path=str(path),
            ) from e
        return cls.parse(text, source=str(path))
