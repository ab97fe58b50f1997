from __future__ import annotations

import getpass
import logging
import os
from typing import List

from ..lib.command import run_cmd, which
from ..models import ItemResult, Outcome
from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class ShellHandoffStep:
    """Make the configured shell the login shell and hand the terminal over to it.

    The exec itself happens in main() after the summary has been printed;
    this step only records which shell to exec.
    """

    step_id = "90_shell_handoff"
    stage = "shell"
    fatal = False

    def run(self, ctx: BootstrapContext) -> List[ItemResult]:
        _, cfg, _ = ctx.require()
        shell = cfg.shell

        if not ctx.interactive:
            logger.info("Skipping shell handoff (non-interactive)")
            return [ItemResult(self.stage, shell, Outcome.SKIPPED, "non-interactive")]

        shell_path = which(shell)
        if not shell_path:
            logger.warning("%s is not installed; leaving login shell unchanged", shell)
            return [ItemResult(self.stage, shell, Outcome.SKIPPED, "not installed")]

        results: List[ItemResult] = []
        current = os.path.basename(os.environ.get("SHELL", ""))
        if current == shell:
            results.append(ItemResult(self.stage, f"login shell {shell}", Outcome.ALREADY_PRESENT, shell_path))
        else:
            logger.info("Setting %s as default shell...", shell)
            # Attached to the terminal so PAM can prompt for the password.
            r = run_cmd(
                ["chsh", "-s", shell_path, getpass.getuser()],
                check=False,
                dry_run=ctx.dry_run,
                capture=False,
                timeout_s=None,
            )
            if r.ok:
                results.append(ItemResult(self.stage, f"login shell {shell}", Outcome.INSTALLED, shell_path))
            else:
                # chsh needs PAM and a password; minimal containers often have neither.
                logger.warning("Failed to change shell. Run 'chsh -s %s' manually.", shell_path)
                results.append(
                    ItemResult(self.stage, f"login shell {shell}", Outcome.FAILED, (r.stderr or "").strip() or f"exit {r.returncode}")
                )

        if not ctx.dry_run:
            ctx.handoff_shell = shell_path
        return results
