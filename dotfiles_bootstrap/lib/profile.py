from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

from ..errors import ProfileWriteFailed
from ..logging_utils import log_success
from ..models import ItemResult, Outcome

logger = logging.getLogger(__name__)

STAGE = "profile"


class ShellProfile:
    """Handle on a shell startup file, treated as an ordered set of lines.

    All edits go through append_once(); existing bytes are never rewritten,
    only appended to. In dry-run mode appends are remembered in memory so
    repeated lines within one run are still reported correctly.
    """

    def __init__(self, path: str | Path, *, encoding: str = "utf-8", dry_run: bool = False) -> None:
        self.path = Path(path).expanduser()
        self.encoding = encoding
        self.dry_run = dry_run
        self._pending: List[str] = []

    def _read_bytes(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return b""

    def lines(self) -> List[str]:
        data = self._read_bytes()
        existing = [ln.decode(self.encoding, errors="surrogateescape") for ln in data.splitlines()]
        return existing + self._pending

    def contains(self, line: str) -> bool:
        return line in self.lines()

    def append_once(self, line: str) -> bool:
        """Append `line` unless an identical line is already present.

        Returns True if the line was (or, in dry-run, would be) written.
        Raises ProfileWriteFailed on I/O errors.
        """

        if "\n" in line or "\r" in line:
            raise ValueError(f"Profile line must be a single line: {line!r}")

        try:
            if self.contains(line):
                return False

            if self.dry_run:
                self._pending.append(line)
                return True

            data = self._read_bytes()
            chunk = line.encode(self.encoding) + b"\n"
            if data and not data.endswith((b"\n", b"\r")):
                chunk = b"\n" + chunk

            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("ab") as f:
                f.write(chunk)
        except (OSError, UnicodeError) as e:
            raise ProfileWriteFailed(f"Failed to update {self.path}: {e}") from e
        return True

    def touch(self) -> None:
        if self.dry_run:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as e:
            raise ProfileWriteFailed(f"Failed to create {self.path}: {e}") from e


def apply_lines(profile: ShellProfile, lines: Iterable[str], *, stage: str = STAGE) -> List[ItemResult]:
    """Append each line once, reporting per line. Never raises."""

    results: List[ItemResult] = []
    for line in lines:
        try:
            wrote = profile.append_once(line)
        except (ProfileWriteFailed, ValueError) as e:
            logger.error("%s", e)
            results.append(ItemResult(stage, line, Outcome.FAILED, str(e)))
            continue

        if wrote:
            log_success(logger, "Added to %s: %s", profile.path.name, line)
            results.append(ItemResult(stage, line, Outcome.INSTALLED, "dry-run" if profile.dry_run else str(profile.path)))
        else:
            logger.debug("Already in %s: %s", profile.path.name, line)
            results.append(ItemResult(stage, line, Outcome.ALREADY_PRESENT, str(profile.path)))
    return results
