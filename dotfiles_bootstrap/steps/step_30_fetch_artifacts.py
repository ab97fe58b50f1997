from __future__ import annotations

import logging
from typing import List

from ..lib.fetch import ensure_artifact
from ..models import ItemResult, Outcome
from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class FetchArtifactsStep:
    step_id = "30_fetch_artifacts"
    stage = "artifacts"
    fatal = False

    def run(self, ctx: BootstrapContext) -> List[ItemResult]:
        profile, cfg, _ = ctx.require()
        env = ctx.options.command_env()

        results: List[ItemResult] = []
        for spec in cfg.artifacts():
            if not spec.applies_to(profile):
                results.append(ItemResult(self.stage, spec.name, Outcome.SKIPPED, f"not for {profile.package_manager}"))
                continue
            results.append(ensure_artifact(spec, env=env, dry_run=ctx.dry_run, stage=self.stage))
        return results
