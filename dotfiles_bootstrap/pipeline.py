from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .config import BootstrapConfig
from .lib.profile import ShellProfile
from .models import ItemResult, Outcome, PlatformProfile, RunOptions
from .report import Report

logger = logging.getLogger(__name__)


@dataclass
class BootstrapContext:
    """Everything a stage needs, passed explicitly instead of read from globals."""

    repo_root: Path
    home: Path
    stamp: str
    options: RunOptions = field(default_factory=RunOptions)
    config_path: Optional[Path] = None
    platform: Optional[PlatformProfile] = None
    config: Optional[BootstrapConfig] = None
    shell_profile: Optional[ShellProfile] = None
    handoff_shell: Optional[str] = None

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    @property
    def interactive(self) -> bool:
        return self.options.interactive

    def require(self) -> tuple[PlatformProfile, BootstrapConfig, ShellProfile]:
        if self.platform is None or self.config is None or self.shell_profile is None:
            raise RuntimeError("platform probe has not run")
        return self.platform, self.config, self.shell_profile


class Step(Protocol):
    """A single idempotent stage.

    `fatal` stages abort the run when they raise; every other stage is
    expected to report failures as ItemResults.
    """

    step_id: str
    stage: str
    fatal: bool

    def run(self, ctx: BootstrapContext) -> List[ItemResult]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    report: Report
    ran_steps: List[str]
    skipped_steps: List[str]


def run_pipeline(
    *,
    ctx: BootstrapContext,
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run stages in order, collecting per-item outcomes.

    Fatal stages (the platform probe) always run and propagate their errors.
    start_at / stop_after narrow the remaining stages to a contiguous range.
    """

    report = Report()
    ran: List[str] = []
    skipped: List[str] = []

    known = {s.step_id for s in steps}
    for sid in (start_at, stop_after):
        if sid is not None and sid not in known:
            raise ValueError(f"Unknown step {sid!r}; choose from {', '.join(s.step_id for s in steps)}")

    started = start_at is None
    stopped = False

    for step in steps:
        if not started and step.step_id == start_at:
            started = True
        if (not started or stopped) and not step.fatal:
            logger.debug("Skipping step %s (outside selected range)", step.step_id)
            skipped.append(step.step_id)
            continue

        logger.debug("Running step %s", step.step_id)
        if step.fatal:
            report.extend(step.run(ctx))
        else:
            try:
                report.extend(step.run(ctx))
            except Exception as e:  # noqa: BLE001
                logger.exception("Step %s failed unexpectedly", step.step_id)
                report.add(ItemResult(step.stage, step.step_id, Outcome.FAILED, f"{type(e).__name__}: {e}"))
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            stopped = True

    return PipelineResult(report=report, ran_steps=ran, skipped_steps=skipped)
