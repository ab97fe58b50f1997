from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class Outcome(str, Enum):
    INSTALLED = "installed"
    ALREADY_PRESENT = "already-present"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemResult:
    stage: str
    item: str
    outcome: Outcome
    detail: str = ""


@dataclass(frozen=True)
class PlatformProfile:
    os_family: str
    package_manager: str
    arch: str = "unknown"
    distro: Optional[str] = None
    is_root: bool = False


@dataclass(frozen=True)
class PackageSpec:
    """A package known by its canonical name, renamed per manager where needed.

    An override of None means the package does not exist for that manager.
    """

    name: str
    overrides: Dict[str, Optional[str]] = field(default_factory=dict)
    via: Optional[str] = None

    def name_for(self, manager: str) -> Optional[str]:
        if manager in self.overrides:
            return self.overrides[manager]
        return self.name


@dataclass(frozen=True)
class ArtifactSpec:
    """Something fetched from outside the repo: a clone, an archive or an installer script.

    `check` holds presence checks ("path", "file:<path>", "command:<binary>");
    the artifact counts as present when any of them passes. `creates` lists
    files the post commands produce; post runs again until they all exist.
    """

    name: str
    target: str
    method: str
    url: str
    check: Tuple[str, ...] = ("path",)
    ref: Optional[str] = None
    depth: int = 1
    sha256: Optional[str] = None
    strip: int = 0
    interpreter: str = "sh"
    args: Tuple[str, ...] = ()
    post: Tuple[Tuple[str, ...], ...] = ()
    creates: Tuple[str, ...] = ()
    only_on: Tuple[str, ...] = ()

    def applies_to(self, profile: PlatformProfile) -> bool:
        if not self.only_on:
            return True
        return profile.package_manager in self.only_on or profile.os_family in self.only_on


@dataclass(frozen=True)
class LinkSpec:
    source: str
    destination: str


@dataclass
class RunOptions:
    dry_run: bool = False
    interactive: bool = True
    start_at: Optional[str] = None
    stop_after: Optional[str] = None
    extra_env: Dict[str, str] = field(default_factory=dict)

    def command_env(self) -> Dict[str, str]:
        env = dict(self.extra_env)
        if not self.interactive:
            env.setdefault("DEBIAN_FRONTEND", "noninteractive")
            env.setdefault("NONINTERACTIVE", "1")
        return env
