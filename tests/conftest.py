from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Set

import pytest
import yaml

from dotfiles_bootstrap.errors import InstallFailed
from dotfiles_bootstrap.lib.env import Paths
from dotfiles_bootstrap.models import PlatformProfile


class FakeManager:
    """In-memory package manager: records installs, fails on request."""

    def __init__(self, name: str = "apt", installed: Iterable[str] = (), failing: Iterable[str] = ()) -> None:
        self.name = name
        self.installed: Set[str] = set(installed)
        self.failing: Set[str] = set(failing)
        self.install_calls: List[str] = []
        self.upgraded = False

    def is_installed(self, package: str) -> bool:
        return package in self.installed

    def install(self, package: str) -> None:
        self.install_calls.append(package)
        if package in self.failing:
            raise InstallFailed(f"{self.name}: failed to install {package} (exit 100)")
        self.installed.add(package)

    def upgrade(self) -> None:
        self.upgraded = True


@pytest.fixture
def fake_manager() -> FakeManager:
    return FakeManager()


@pytest.fixture
def linux_apt() -> PlatformProfile:
    return PlatformProfile(os_family="linux", package_manager="apt", arch="amd64", distro="ubuntu", is_root=True)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def paths(home: Path, tmp_path: Path) -> Paths:
    return Paths.for_host(home=home, os_family="linux", repo=tmp_path / "repo")


@pytest.fixture
def write_manifest(tmp_path: Path):
    def _write(data: dict, name: str = "bootstrap.yaml") -> Path:
        p = tmp_path / name
        p.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return p

    return _write


@pytest.fixture(autouse=True)
def reset_root_logger():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in before:
            root.removeHandler(h)
            h.close()
    for attr in ("_dotfiles_configured", "_dotfiles_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)
    root.setLevel(level)
