from __future__ import annotations

import logging
import os
import platform
from pathlib import Path
from typing import Callable, Dict, Optional

from ..errors import UnsupportedPlatform
from ..models import PlatformProfile
from .command import which as _which

logger = logging.getLogger(__name__)

# Probe order matters: some distros ship more than one of these binaries.
_LINUX_MANAGERS = (
    ("apt-get", "apt"),
    ("dnf", "dnf"),
    ("pacman", "pacman"),
    ("brew", "brew"),
)


def normalize_arch(machine: str) -> str:
    m = machine.lower()
    return {
        "x86_64": "amd64",
        "amd64": "amd64",
        "aarch64": "arm64",
        "arm64": "arm64",
        "armv7l": "armhf",
        "armv6l": "armhf",
    }.get(m, m or "unknown")


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except OSError:
        return None


def parse_os_release(text: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        out[key.strip()] = value.strip().strip('"').strip("'")
    return out


def _detect_distro(os_release: Path) -> Optional[str]:
    txt = _read_text(os_release)
    if not txt:
        return None
    return parse_os_release(txt).get("ID") or None


def _is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return bool(geteuid and geteuid() == 0)


def detect_platform(
    *,
    system: Optional[str] = None,
    machine: Optional[str] = None,
    which: Callable[[str], Optional[str]] = _which,
    os_release: Path = Path("/etc/os-release"),
) -> PlatformProfile:
    """Work out the OS family and which package manager to drive.

    Raises UnsupportedPlatform when neither is recognisable. Has no side
    effects; the result is meant to be computed once per run.
    """

    sys_name = (system if system is not None else platform.system()).lower()
    arch = normalize_arch(machine if machine is not None else platform.machine())

    if sys_name == "darwin":
        manager = "brew"
        if not which("brew"):
            logger.warning("Homebrew not found on PATH; it must be installed before packages")
        profile = PlatformProfile(os_family="darwin", package_manager=manager, arch=arch, distro="macos", is_root=_is_root())
    elif sys_name == "linux":
        manager = None
        for binary, name in _LINUX_MANAGERS:
            if which(binary):
                manager = name
                break
        if manager is None:
            raise UnsupportedPlatform(
                "Unsupported Linux distribution: none of apt-get, dnf, pacman or brew found on PATH"
            )
        profile = PlatformProfile(
            os_family="linux",
            package_manager=manager,
            arch=arch,
            distro=_detect_distro(os_release),
            is_root=_is_root(),
        )
    else:
        raise UnsupportedPlatform(f"Unsupported OS: {system or platform.system()}")

    logger.info(
        "Detected OS: %s (%s, %s), using package manager: %s",
        profile.os_family,
        profile.distro or "unknown distro",
        profile.arch,
        profile.package_manager,
    )
    return profile
