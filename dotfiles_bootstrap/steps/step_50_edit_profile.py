from __future__ import annotations

import logging
from typing import List

from ..errors import ProfileWriteFailed
from ..lib.profile import apply_lines
from ..models import ItemResult, Outcome
from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class EditProfileStep:
    step_id = "50_edit_profile"
    stage = "profile"
    fatal = False

    def run(self, ctx: BootstrapContext) -> List[ItemResult]:
        _, cfg, shell_profile = ctx.require()
        try:
            shell_profile.touch()
        except ProfileWriteFailed as e:
            logger.error("%s", e)
            return [ItemResult(self.stage, str(shell_profile.path), Outcome.FAILED, str(e))]

        results = apply_lines(shell_profile, cfg.profile_lines(), stage=self.stage)
        added = sum(1 for r in results if r.outcome is Outcome.INSTALLED)
        logger.info("%s: %d line(s) added, %d already present", shell_profile.path, added, len(results) - added)
        return results
