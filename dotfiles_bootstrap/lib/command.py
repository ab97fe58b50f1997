from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from ..errors import BootstrapError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 1800.0


class CommandError(BootstrapError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {fmt_argv(self.argv)}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def which(name: str) -> Optional[str]:
    return shutil.which(name)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    timeout_s: float | None = DEFAULT_TIMEOUT_S,
    dry_run: bool = False,
    capture: bool = True,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - Captures stdout/stderr so failures can be reported in the summary.
    - dry_run logs but does not execute.
    - capture=False leaves the child attached to the terminal, for commands
      that prompt (chsh asking for a password); stdout/stderr are then empty.
    - On timeout or interrupt the child is killed before the exception
      propagates (subprocess.run does this for us).
    """

    argv_list = list(argv)
    logger.debug("CMD %s", fmt_argv(argv_list))

    if dry_run:
        logger.info("Would run: %s", fmt_argv(argv_list))
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE if capture else None,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
            timeout=timeout_s,
        )
    except FileNotFoundError as e:
        if check:
            raise CommandError(argv_list, 127, str(e)) from e
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))
    except subprocess.TimeoutExpired as e:
        if check:
            raise CommandError(argv_list, -1, f"timed out after {timeout_s}s") from e
        return CmdResult(argv=argv_list, returncode=-1, stdout="", stderr=f"timed out after {timeout_s}s")

    if p.stdout:
        logger.debug("STDOUT %s", p.stdout.strip())
    if p.stderr:
        logger.debug("STDERR %s", p.stderr.strip())

    if check and p.returncode != 0:
        raise CommandError(argv_list, p.returncode, p.stderr or "")

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout or "", stderr=p.stderr or "")
