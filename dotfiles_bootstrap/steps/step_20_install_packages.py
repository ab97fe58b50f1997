from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

from ..lib.command import CommandError
from ..lib.fetch import ensure_artifact
from ..lib.pkg import BrewManager, PackageManager, ensure_package, find_brew, get_package_manager
from ..models import ItemResult, Outcome
from ..pipeline import BootstrapContext

logger = logging.getLogger(__name__)


def _export_ci_path(brew: str) -> None:
    """Make a freshly installed Homebrew visible to later CI steps."""

    github_path = os.environ.get("GITHUB_PATH")
    if not github_path:
        return
    bin_dir = str(Path(brew).parent)
    try:
        with open(github_path, "a", encoding="utf-8") as f:
            f.write(bin_dir + "\n")
    except OSError as e:
        logger.warning("Could not update GITHUB_PATH: %s", e)
        return
    logger.info("Added %s to GITHUB_PATH", bin_dir)


class InstallPackagesStep:
    step_id = "20_install_packages"
    stage = "packages"
    fatal = False

    def _bootstrap_managers(self, ctx: BootstrapContext) -> List[ItemResult]:
        profile, cfg, _ = ctx.require()
        results: List[ItemResult] = []
        for spec in cfg.bootstrap_managers():
            if not spec.applies_to(profile):
                continue
            res = ensure_artifact(spec, env=ctx.options.command_env(), dry_run=ctx.dry_run, stage=self.stage)
            results.append(res)
            if res.outcome is Outcome.INSTALLED and not ctx.dry_run:
                brew = find_brew()
                if brew and not ctx.interactive:
                    _export_ci_path(brew)
        return results

    def _upgrade(self, ctx: BootstrapContext, manager: PackageManager) -> Optional[ItemResult]:
        _, cfg, _ = ctx.require()
        if not cfg.upgrade:
            return None
        if not ctx.interactive:
            logger.info("Skipping system upgrade (non-interactive)")
            return ItemResult(self.stage, "system upgrade", Outcome.SKIPPED, "non-interactive")

        logger.info("Updating system...")
        try:
            manager.upgrade()
        except CommandError as e:
            logger.error("System upgrade failed: %s", e)
            return ItemResult(self.stage, "system upgrade", Outcome.FAILED, str(e))
        return ItemResult(self.stage, "system upgrade", Outcome.INSTALLED, manager.name)

    def run(self, ctx: BootstrapContext) -> List[ItemResult]:
        """Install packages in dependency order.

        Where brew is the system manager it has to exist before anything else.
        Elsewhere the system packages go first (the Homebrew installer needs
        git, curl and a compiler), then Homebrew, then the `via: brew` packages.
        """

        profile, cfg, _ = ctx.require()
        env = ctx.options.command_env()
        brew_is_system = profile.package_manager == "brew"

        results: List[ItemResult] = []
        if brew_is_system:
            results += self._bootstrap_managers(ctx)

        system = get_package_manager(profile, env=env, dry_run=ctx.dry_run)
        upgraded = self._upgrade(ctx, system)
        if upgraded is not None:
            results.append(upgraded)

        specs = cfg.packages()
        for spec in specs:
            if spec.via != "brew":
                results.append(ensure_package(spec, system))

        if not brew_is_system:
            results += self._bootstrap_managers(ctx)

        brew: Optional[PackageManager] = None
        if brew_is_system:
            brew = system
        else:
            binary = find_brew()
            if binary:
                brew = BrewManager(binary=binary, env=env, dry_run=ctx.dry_run)
            else:
                logger.info("Homebrew not available; installing brew packages with %s", system.name)

        for spec in specs:
            if spec.via == "brew":
                results.append(ensure_package(spec, brew if brew is not None else system))
        return results
