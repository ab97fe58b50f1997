from __future__ import annotations

import logging
from typing import List

from ..lib.links import link_config
from ..models import ItemResult
from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class LinkConfigsStep:
    step_id = "40_link_configs"
    stage = "links"
    fatal = False

    def run(self, ctx: BootstrapContext) -> List[ItemResult]:
        _, cfg, _ = ctx.require()
        logger.info("Setting up dotfiles...")
        return [
            link_config(spec, repo_root=ctx.repo_root, stamp=ctx.stamp, dry_run=ctx.dry_run)
            for spec in cfg.links()
        ]
