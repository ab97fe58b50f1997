from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..errors import LinkFailed
from ..logging_utils import log_success
from ..models import ItemResult, LinkSpec, Outcome

logger = logging.getLogger(__name__)

STAGE = "links"


def run_stamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d%H%M%S")


def resolve_source(spec: LinkSpec, repo_root: Path) -> Path:
    src = Path(spec.source).expanduser()
    if not src.is_absolute():
        src = repo_root / src
    return Path(os.path.abspath(src))


def is_link_to(dest: Path, source: Path) -> bool:
    """True if dest is a symlink whose target is source (relative targets allowed)."""

    if not dest.is_symlink():
        return False
    target = Path(os.readlink(dest))
    if not target.is_absolute():
        target = dest.parent / target
    return Path(os.path.abspath(target)) == Path(os.path.abspath(source))


def backup_path(dest: Path, stamp: str) -> Path:
    """First free `<dest>.bak.<stamp>[.<n>]` name next to dest."""

    candidate = dest.with_name(f"{dest.name}.bak.{stamp}")
    n = 1
    while candidate.exists() or candidate.is_symlink():
        candidate = dest.with_name(f"{dest.name}.bak.{stamp}.{n}")
        n += 1
    return candidate


def link_config(
    spec: LinkSpec,
    *,
    repo_root: Path,
    stamp: str,
    dry_run: bool = False,
) -> ItemResult:
    """Make spec.destination a symlink to the repo file, moving anything in the way aside.

    Existing data is only ever renamed, never removed. Never raises.
    """

    src = resolve_source(spec, repo_root)
    dest = Path(os.path.abspath(Path(spec.destination).expanduser()))
    label = str(dest)

    if not src.exists():
        logger.warning("Source %s does not exist. Skipping %s", src, dest)
        return ItemResult(STAGE, label, Outcome.SKIPPED, f"missing source {src}")

    if is_link_to(dest, src):
        logger.info("%s is already linked to %s", dest, src)
        return ItemResult(STAGE, label, Outcome.ALREADY_PRESENT, str(src))

    backup: Optional[Path] = None
    if dest.exists() or dest.is_symlink():
        backup = backup_path(dest, stamp)

    if dry_run:
        if backup is not None:
            logger.info("Would back up %s to %s", dest, backup)
        logger.info("Would link %s -> %s", dest, src)
        return ItemResult(STAGE, label, Outcome.INSTALLED, "dry-run")

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        if backup is not None:
            logger.info("Backing up existing %s to %s", dest, backup)
            os.rename(dest, backup)
        try:
            dest.symlink_to(src, target_is_directory=src.is_dir())
        except OSError:
            if backup is not None:
                # Restore the original.
                os.rename(backup, dest)
            raise
    except OSError as e:
        err = LinkFailed(f"Failed to link {dest} -> {src}: {e}")
        logger.error("%s", err)
        return ItemResult(STAGE, label, Outcome.FAILED, str(err))

    log_success(logger, "Linked %s -> %s", dest, src)
    detail = str(src) if backup is None else f"{src} (backup: {backup.name})"
    return ItemResult(STAGE, label, Outcome.INSTALLED, detail)
