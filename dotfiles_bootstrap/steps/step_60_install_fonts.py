from __future__ import annotations

import logging
from typing import List

from ..lib.fetch import ensure_artifact
from ..models import ItemResult, Outcome
from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class InstallFontsStep:
    step_id = "60_install_fonts"
    stage = "fonts"
    fatal = False

    def run(self, ctx: BootstrapContext) -> List[ItemResult]:
        profile, cfg, _ = ctx.require()
        fonts = [f for f in cfg.fonts() if f.applies_to(profile)]

        if not ctx.interactive:
            logger.info("Skipping font installation (non-interactive)")
            return [ItemResult(self.stage, f.name, Outcome.SKIPPED, "non-interactive") for f in fonts]

        return [
            ensure_artifact(f, env=ctx.options.command_env(), dry_run=ctx.dry_run, stage=self.stage)
            for f in fonts
        ]
