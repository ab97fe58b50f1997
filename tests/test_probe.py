"""Tests for platform detection."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from dotfiles_bootstrap.errors import UnsupportedPlatform
from dotfiles_bootstrap.lib.probe import detect_platform, normalize_arch, parse_os_release


def only(*binaries: str):
    def _which(name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in binaries else None

    return _which


@pytest.fixture
def os_release(tmp_path: Path) -> Path:
    p = tmp_path / "os-release"
    p.write_text('NAME="Ubuntu"\nID=ubuntu\nVERSION_ID="24.04"\n')
    return p


class TestDetectPlatform:
    def test_linux_apt(self, os_release: Path) -> None:
        profile = detect_platform(system="Linux", machine="x86_64", which=only("apt-get"), os_release=os_release)
        assert profile.os_family == "linux"
        assert profile.package_manager == "apt"
        assert profile.arch == "amd64"
        assert profile.distro == "ubuntu"

    def test_linux_dnf(self, tmp_path: Path) -> None:
        profile = detect_platform(system="Linux", machine="aarch64", which=only("dnf"), os_release=tmp_path / "missing")
        assert profile.package_manager == "dnf"
        assert profile.arch == "arm64"
        assert profile.distro is None

    def test_linux_pacman(self, os_release: Path) -> None:
        assert detect_platform(system="Linux", machine="x86_64", which=only("pacman"), os_release=os_release).package_manager == "pacman"

    def test_apt_preferred_over_linuxbrew(self, os_release: Path) -> None:
        profile = detect_platform(system="Linux", machine="x86_64", which=only("brew", "apt-get"), os_release=os_release)
        assert profile.package_manager == "apt"

    def test_linuxbrew_only(self, os_release: Path) -> None:
        profile = detect_platform(system="Linux", machine="x86_64", which=only("brew"), os_release=os_release)
        assert profile.package_manager == "brew"

    def test_darwin_uses_brew_even_before_it_is_installed(self) -> None:
        profile = detect_platform(system="Darwin", machine="arm64", which=only())
        assert profile.os_family == "darwin"
        assert profile.package_manager == "brew"

    def test_linux_without_manager_is_unsupported(self, os_release: Path) -> None:
        with pytest.raises(UnsupportedPlatform, match="Unsupported Linux distribution"):
            detect_platform(system="Linux", machine="x86_64", which=only(), os_release=os_release)

    def test_unknown_os_is_unsupported(self) -> None:
        with pytest.raises(UnsupportedPlatform, match="Unsupported OS"):
            detect_platform(system="Windows", machine="AMD64", which=only("apt-get"))


class TestHelpers:
    @pytest.mark.parametrize(
        "machine,expected",
        [("x86_64", "amd64"), ("AMD64", "amd64"), ("aarch64", "arm64"), ("armv7l", "armhf"), ("riscv64", "riscv64")],
    )
    def test_normalize_arch(self, machine: str, expected: str) -> None:
        assert normalize_arch(machine) == expected

    def test_parse_os_release_strips_quotes_and_comments(self) -> None:
        parsed = parse_os_release('# comment\nID="ol"\nID_LIKE="fedora"\n\nVERSION_ID=8.9\n')
        assert parsed == {"ID": "ol", "ID_LIKE": "fedora", "VERSION_ID": "8.9"}
