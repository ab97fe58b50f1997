from __future__ import annotations

import logging
import lzma
import os
import shutil
import tarfile
import tempfile
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Mapping, Optional, Sequence
from urllib.parse import urlparse

from ..errors import ChecksumOrExtractFailed, FetchFailed, NetworkUnavailable
from ..logging_utils import log_success
from ..models import ArtifactSpec, ItemResult, Outcome
from .command import CommandError, fmt_argv, run_cmd, which
from .download import download_file

logger = logging.getLogger(__name__)

STAGE = "artifacts"

_TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tbz2", ".tar")

_NETWORK_HINTS = (
    "could not resolve host",
    "unable to access",
    "failed to connect",
    "network is unreachable",
    "connection timed out",
    "temporary failure in name resolution",
)


def check_present(spec: ArtifactSpec) -> bool:
    """True if any of the spec's presence checks passes.

    Check forms: "path" (the target exists), "file:<path>" and
    "command:<binary>" (binary on PATH).
    """

    for chk in spec.check:
        kind, _, arg = chk.partition(":")
        if kind == "path" and Path(spec.target).exists():
            return True
        if kind == "file" and arg and Path(arg).exists():
            return True
        if kind == "command" and arg and which(arg):
            return True
    return False


def _archive_name(url: str) -> str:
    name = PurePosixPath(urlparse(url).path).name
    return name or "download"


def _strip(name: str, strip: int) -> Optional[str]:
    parts = [p for p in PurePosixPath(name).parts if p not in ("", ".")]
    if len(parts) <= strip:
        return None
    return str(PurePosixPath(*parts[strip:]))


def _safe_dest(dest_dir: Path, rel: str) -> Path:
    root = dest_dir.resolve()
    out = (root / rel).resolve()
    if PurePosixPath(rel).is_absolute() or not out.is_relative_to(root):
        raise ChecksumOrExtractFailed(f"Archive member escapes target directory: {rel}")
    return out


def extract_archive(archive: Path, dest_dir: Path, *, strip: int = 0) -> list[Path]:
    """Extract a zip or tar archive into dest_dir, refusing path traversal.

    Non-archive files are copied into dest_dir as-is. Returns the written
    file paths.
    """

    dest_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    lower = archive.name.lower()

    try:
        if lower.endswith(".zip"):
            with zipfile.ZipFile(archive) as zf:
                for info in zf.infolist():
                    rel = _strip(info.filename, strip)
                    if rel is None:
                        continue
                    out = _safe_dest(dest_dir, rel)
                    if info.is_dir():
                        out.mkdir(parents=True, exist_ok=True)
                        continue
                    out.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(info) as src, out.open("wb") as dst:
                        shutil.copyfileobj(src, dst)
                    written.append(out)
        elif lower.endswith(_TAR_SUFFIXES):
            with tarfile.open(archive, "r:*") as tar:
                for member in tar.getmembers():
                    rel = _strip(member.name, strip)
                    if rel is None:
                        continue
                    out = _safe_dest(dest_dir, rel)
                    if member.isdir():
                        out.mkdir(parents=True, exist_ok=True)
                        continue
                    if not member.isfile():
                        logger.debug("Skipping non-regular archive member %s", member.name)
                        continue
                    src = tar.extractfile(member)
                    if src is None:
                        continue
                    out.parent.mkdir(parents=True, exist_ok=True)
                    with src, out.open("wb") as dst:
                        shutil.copyfileobj(src, dst)
                    if member.mode & 0o111:
                        out.chmod(0o755)
                    written.append(out)
        else:
            out = dest_dir / archive.name
            shutil.copy2(archive, out)
            written.append(out)
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, zlib.error, lzma.LZMAError, NotImplementedError) as e:
        raise ChecksumOrExtractFailed(f"Failed to extract {archive.name}: {e}") from e

    return written


def _classify_git_error(e: CommandError, url: str) -> FetchFailed:
    text = e.stderr.lower()
    if any(h in text for h in _NETWORK_HINTS):
        return NetworkUnavailable(f"git clone {url}: {e.stderr.strip()}")
    return FetchFailed(f"git clone {url} failed (exit {e.returncode})")


def clone_repo(spec: ArtifactSpec, *, env: Mapping[str, str] | None = None) -> None:
    argv = ["git", "clone", "--depth", str(spec.depth)]
    if spec.ref:
        argv += ["--branch", spec.ref]
    argv += [spec.url, spec.target]
    Path(spec.target).parent.mkdir(parents=True, exist_ok=True)
    try:
        run_cmd(argv, env=env)
    except CommandError as e:
        raise _classify_git_error(e, spec.url) from e


def download_and_extract(spec: ArtifactSpec) -> None:
    with tempfile.TemporaryDirectory(prefix="dotfiles-") as tmp:
        archive = download_file(spec.url, Path(tmp) / _archive_name(spec.url), sha256=spec.sha256)
        written = extract_archive(archive, Path(spec.target), strip=spec.strip)
        logger.debug("Extracted %d files into %s", len(written), spec.target)


def run_script(spec: ArtifactSpec, *, env: Mapping[str, str] | None = None) -> None:
    with tempfile.TemporaryDirectory(prefix="dotfiles-") as tmp:
        script = download_file(spec.url, Path(tmp) / "install.sh", sha256=spec.sha256)
        argv = [spec.interpreter, str(script), *spec.args]
        try:
            run_cmd(argv, env=dict(env or {}, NONINTERACTIVE="1"))
        except CommandError as e:
            raise FetchFailed(f"Installer script {spec.url} failed (exit {e.returncode})") from e


def _run_post(cmds: Sequence[Sequence[str]], *, env: Mapping[str, str] | None = None) -> list[str]:
    skipped: list[str] = []
    for argv in cmds:
        exe = argv[0]
        if not (which(exe) or (os.sep in exe and Path(exe).exists())):
            logger.warning("Post-install command %s not available, skipping", exe)
            skipped.append(exe)
            continue
        run_cmd(argv, env=env)
    return skipped


def post_done(spec: ArtifactSpec) -> bool:
    """True if every file the post commands create is there (or none are declared)."""

    return all(Path(p).exists() for p in spec.creates)


def _finish(spec: ArtifactSpec, stage: str, skipped: list[str], verb: str) -> ItemResult:
    detail = spec.target
    if skipped:
        detail += f" (post skipped: {', '.join(skipped)})"
    log_success(logger, "%s %s", verb, spec.name)
    return ItemResult(stage, spec.name, Outcome.INSTALLED, detail)


def ensure_artifact(
    spec: ArtifactSpec,
    *,
    env: Mapping[str, str] | None = None,
    dry_run: bool = False,
    stage: str = STAGE,
) -> ItemResult:
    """Fetch the artifact unless its presence check already passes. Never raises.

    A present artifact whose `creates` files are missing only gets its post
    commands run again, so an interrupted or failed post step converges.
    """

    present = check_present(spec)
    if present and post_done(spec):
        logger.info("%s already present", spec.name)
        return ItemResult(stage, spec.name, Outcome.ALREADY_PRESENT, spec.target)

    if dry_run:
        if not present:
            logger.info("Would fetch %s (%s %s) -> %s", spec.name, spec.method, spec.url, spec.target)
        for argv in spec.post:
            logger.info("Would run: %s", fmt_argv(argv))
        return ItemResult(stage, spec.name, Outcome.INSTALLED, "dry-run")

    try:
        if present:
            logger.info("%s present but post-install output missing; re-running post commands", spec.name)
            return _finish(spec, stage, _run_post(spec.post, env=env), "Completed")

        logger.info("Fetching %s...", spec.name)
        if spec.method == "clone":
            clone_repo(spec, env=env)
        elif spec.method == "download":
            download_and_extract(spec)
        elif spec.method == "script":
            run_script(spec, env=env)
        else:
            raise FetchFailed(f"Unknown fetch method {spec.method!r}")

        if not check_present(spec):
            raise ChecksumOrExtractFailed(
                f"{spec.name}: fetched, but presence check {list(spec.check)} still fails"
            )

        return _finish(spec, stage, _run_post(spec.post, env=env), "Fetched")
    except (FetchFailed, CommandError, OSError, ValueError) as e:
        logger.error("%s: %s", spec.name, e)
        return ItemResult(stage, spec.name, Outcome.FAILED, str(e))
