from __future__ import annotations

import logging
from typing import List

from ..config import load_config
from ..lib.env import Paths
from ..lib.probe import detect_platform
from ..lib.profile import ShellProfile
from ..models import ItemResult, Outcome
from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


class ProbePlatformStep:
    step_id = "10_probe_platform"
    stage = "probe"
    fatal = True

    def run(self, ctx: BootstrapContext) -> List[ItemResult]:
        # UnsupportedPlatform and ConfigError propagate: nothing later can run without these.
        profile = detect_platform()
        ctx.platform = profile

        paths = Paths.for_host(home=ctx.home, os_family=profile.os_family, repo=ctx.repo_root)
        ctx.config = load_config(ctx.config_path, paths=paths)
        ctx.shell_profile = ShellProfile(ctx.config.profile_path, dry_run=ctx.dry_run)

        return [
            ItemResult(
                self.stage,
                "platform",
                Outcome.ALREADY_PRESENT,
                f"{profile.os_family}/{profile.distro or '?'}/{profile.arch} via {profile.package_manager}",
            )
        ]
