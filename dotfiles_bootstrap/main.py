from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .errors import ConfigError, UnsupportedPlatform
from .lib.env import is_ci, repo_root
from .lib.links import run_stamp
from .logging_utils import configure_logging, log_success
from .models import RunOptions
from .pipeline import BootstrapContext, PipelineResult, run_pipeline
from .steps import (
    EditProfileStep,
    FetchArtifactsStep,
    InstallFontsStep,
    InstallPackagesStep,
    LinkConfigsStep,
    ProbePlatformStep,
    ShellHandoffStep,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_UNSUPPORTED = 2
EXIT_CANCELLED = 130


def build_steps():
    return [
        ProbePlatformStep(),
        InstallPackagesStep(),
        FetchArtifactsStep(),
        LinkConfigsStep(),
        EditProfileStep(),
        InstallFontsStep(),
        ShellHandoffStep(),
    ]


def run(
    *,
    config_path: Optional[str] = None,
    home: Optional[str] = None,
    options: Optional[RunOptions] = None,
) -> tuple[BootstrapContext, PipelineResult]:
    """Run every stage once and return the context and collected report.

    Raises UnsupportedPlatform / ConfigError before anything is changed on disk.
    """

    options = options or RunOptions()
    ctx = BootstrapContext(
        repo_root=repo_root(),
        home=Path(home).expanduser() if home else Path.home(),
        stamp=run_stamp(),
        options=options,
        config_path=Path(config_path) if config_path else None,
    )
    result = run_pipeline(
        ctx=ctx,
        steps=build_steps(),
        start_at=options.start_at,
        stop_after=options.stop_after,
    )
    return ctx, result


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt(f"signal {signum}")


def _handoff(shell_path: str) -> None:
    log_success(logger, "Handing over to %s", shell_path)
    sys.stdout.flush()
    sys.stderr.flush()
    logging.shutdown()
    os.execvp(shell_path, [shell_path])


def main(argv: Optional[List[str]] = None) -> int:
    step_ids = [s.step_id for s in build_steps()]

    p = argparse.ArgumentParser(prog="dotfiles-bootstrap", description="Install packages and link dotfiles.")
    p.add_argument("--config", default=None, help="Manifest to apply (default: manifests/bootstrap.yaml in the repo)")
    p.add_argument("--log", default=None, help="Log file path")
    p.add_argument("--home", default=None, help="Home directory to configure (default: current user's)")
    p.add_argument("--dry-run", action="store_true", help="Report what would change without changing anything")
    p.add_argument(
        "--non-interactive",
        action="store_true",
        help="Skip system upgrade, fonts and shell handoff (implied by CI=true)",
    )
    p.add_argument("--start-at", default=None, choices=step_ids, help="Start at step_id (the probe always runs)")
    p.add_argument("--stop-after", default=None, choices=step_ids, help="Stop after step_id")
    p.add_argument("-v", "--verbose", action="store_true", help="Show command output on the console")

    args = p.parse_args(argv)

    log_path = configure_logging(log_path=args.log, level=logging.DEBUG if args.verbose else logging.INFO)
    logger.debug("Writing log to %s", log_path)

    options = RunOptions(
        dry_run=bool(args.dry_run),
        interactive=not (args.non_interactive or is_ci()),
        start_at=args.start_at,
        stop_after=args.stop_after,
    )

    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        ctx, result = run(config_path=args.config, home=args.home, options=options)
    except UnsupportedPlatform as e:
        logger.error("%s", e)
        return EXIT_UNSUPPORTED
    except (ConfigError, FileNotFoundError) as e:
        logger.error("Invalid manifest: %s", e)
        return EXIT_CONFIG
    except KeyboardInterrupt:
        logger.error("Cancelled; completed stages are safe to re-run")
        return EXIT_CANCELLED
    finally:
        signal.signal(signal.SIGTERM, previous)

    print(result.report.render_table())
    failures = result.report.failures()
    if failures:
        logger.warning("Setup finished with %d failure(s); see %s", len(failures), log_path)
    else:
        log_success(logger, "Setup complete!")

    if ctx.handoff_shell:
        _handoff(ctx.handoff_shell)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
