from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Type

from ..errors import InstallFailed
from ..logging_utils import log_success
from ..models import ItemResult, Outcome, PackageSpec, PlatformProfile
from .command import CommandError, run_cmd, which

logger = logging.getLogger(__name__)

STAGE = "packages"

BREW_PREFIXES = (
    "/home/linuxbrew/.linuxbrew",
    "~/.linuxbrew",
    "/opt/homebrew",
    "/usr/local",
)


class PackageManager(Protocol):
    name: str

    def is_installed(self, package: str) -> bool:
        ...

    def install(self, package: str) -> None:
        ...

    def upgrade(self) -> None:
        ...


class _BaseManager:
    """Shared plumbing: sudo prefix, environment and dry-run handling."""

    name = ""
    needs_sudo = True

    def __init__(
        self,
        *,
        use_sudo: bool = False,
        env: Mapping[str, str] | None = None,
        dry_run: bool = False,
    ) -> None:
        self.use_sudo = use_sudo and self.needs_sudo
        self.env = dict(env or {})
        self.dry_run = dry_run

    def _priv(self, argv: Sequence[str]) -> List[str]:
        return ["sudo", *argv] if self.use_sudo else list(argv)

    def _query(self, argv: Sequence[str]) -> bool:
        if self.dry_run:
            # Planning must not fail on hosts where the query tool is absent.
            return False
        r = run_cmd(argv, check=False, env=self.env)
        return r.returncode == 0

    def _install(self, argv: Sequence[str], package: str) -> None:
        try:
            run_cmd(self._priv(argv), env=self.env, dry_run=self.dry_run)
        except CommandError as e:
            raise InstallFailed(f"{self.name}: failed to install {package} (exit {e.returncode})") from e


class AptManager(_BaseManager):
    name = "apt"

    def is_installed(self, package: str) -> bool:
        return self._query(["dpkg", "-s", package])

    def install(self, package: str) -> None:
        self._install(["apt-get", "install", "-y", package], package)

    def upgrade(self) -> None:
        run_cmd(self._priv(["apt-get", "update"]), env=self.env, dry_run=self.dry_run)
        run_cmd(self._priv(["apt-get", "upgrade", "-y"]), env=self.env, dry_run=self.dry_run)


class DnfManager(_BaseManager):
    name = "dnf"

    def is_installed(self, package: str) -> bool:
        return self._query(["rpm", "-q", package])

    def install(self, package: str) -> None:
        self._install(["dnf", "install", "-y", package], package)

    def upgrade(self) -> None:
        run_cmd(self._priv(["dnf", "upgrade", "-y"]), env=self.env, dry_run=self.dry_run)


class PacmanManager(_BaseManager):
    name = "pacman"

    def is_installed(self, package: str) -> bool:
        return self._query(["pacman", "-Q", package])

    def install(self, package: str) -> None:
        self._install(["pacman", "-S", "--noconfirm", package], package)

    def upgrade(self) -> None:
        run_cmd(self._priv(["pacman", "-Syu", "--noconfirm"]), env=self.env, dry_run=self.dry_run)


class BrewManager(_BaseManager):
    name = "brew"
    # Homebrew refuses to run as root.
    needs_sudo = False

    def __init__(self, *, binary: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.binary = binary or find_brew() or "brew"

    def is_installed(self, package: str) -> bool:
        return self._query([self.binary, "list", package])

    def install(self, package: str) -> None:
        self._install([self.binary, "install", package], package)

    def upgrade(self) -> None:
        run_cmd([self.binary, "update"], env=self.env, dry_run=self.dry_run)
        run_cmd([self.binary, "upgrade"], env=self.env, dry_run=self.dry_run)


MANAGERS: Dict[str, Type[_BaseManager]] = {
    "apt": AptManager,
    "dnf": DnfManager,
    "pacman": PacmanManager,
    "brew": BrewManager,
}


def get_package_manager(
    profile: PlatformProfile,
    *,
    name: Optional[str] = None,
    env: Mapping[str, str] | None = None,
    dry_run: bool = False,
) -> PackageManager:
    """Build the manager for this platform (or an explicit `name`) once per run."""

    key = name or profile.package_manager
    cls = MANAGERS.get(key)
    if cls is None:
        raise ValueError(f"No package manager implementation for {key!r}")
    return cls(use_sudo=not profile.is_root, env=env, dry_run=dry_run)


def find_brew() -> Optional[str]:
    """Locate a Homebrew binary, including prefixes not yet on PATH after a fresh install."""

    found = which("brew")
    if found:
        return found
    for candidate in BREW_PREFIXES:
        p = Path(candidate).expanduser() / "bin" / "brew"
        if p.exists():
            return str(p)
    return None


def ensure_package(spec: PackageSpec, manager: PackageManager) -> ItemResult:
    """Install `spec` unless the manager already has it. Never raises."""

    pkg = spec.name_for(manager.name)
    if pkg is None:
        logger.info("%s: not available via %s, skipping", spec.name, manager.name)
        return ItemResult(STAGE, spec.name, Outcome.SKIPPED, f"not available via {manager.name}")

    label = spec.name if pkg == spec.name else f"{spec.name} ({pkg})"
    if manager.is_installed(pkg):
        logger.info("%s already installed", label)
        return ItemResult(STAGE, spec.name, Outcome.ALREADY_PRESENT, manager.name)

    logger.info("Installing %s via %s...", label, manager.name)
    try:
        manager.install(pkg)
    except InstallFailed as e:
        logger.error("%s", e)
        return ItemResult(STAGE, spec.name, Outcome.FAILED, str(e))

    log_success(logger, "Installed %s", label)
    return ItemResult(STAGE, spec.name, Outcome.INSTALLED, manager.name)
