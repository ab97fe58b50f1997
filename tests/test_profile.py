"""Tests for the append-once shell profile editor."""

from __future__ import annotations

from pathlib import Path

import pytest

from dotfiles_bootstrap.errors import ProfileWriteFailed
from dotfiles_bootstrap.lib.profile import ShellProfile, apply_lines
from dotfiles_bootstrap.models import Outcome


class TestAppendOnce:
    def test_creates_missing_file(self, tmp_path: Path) -> None:
        p = ShellProfile(tmp_path / ".zshrc")
        assert p.append_once("HISTSIZE=10000") is True
        assert (tmp_path / ".zshrc").read_text() == "HISTSIZE=10000\n"

    def test_same_line_many_times_is_written_once(self, tmp_path: Path) -> None:
        p = ShellProfile(tmp_path / ".zshrc")
        results = [p.append_once('plug "zsh-users/zsh-autosuggestions"') for _ in range(5)]
        assert results == [True, False, False, False, False]
        assert p.lines() == ['plug "zsh-users/zsh-autosuggestions"']

    def test_sequence_keeps_first_seen_order(self, tmp_path: Path) -> None:
        rc = tmp_path / ".zshrc"
        rc.write_text("")
        p = ShellProfile(rc)
        for line in ["HISTSIZE=10000", "HISTSIZE=10000", "alias ll=..."]:
            p.append_once(line)
        assert rc.read_text().splitlines() == ["HISTSIZE=10000", "alias ll=..."]

    def test_existing_bytes_are_untouched(self, tmp_path: Path) -> None:
        rc = tmp_path / ".zshrc"
        original = b"# caf\xc3\xa9\r\nexport EDITOR=nvim\r\n"
        rc.write_bytes(original)
        ShellProfile(rc).append_once("setopt sharehistory")
        data = rc.read_bytes()
        assert data.startswith(original)
        assert data == original + b"setopt sharehistory\n"

    def test_line_already_present_with_crlf_is_recognised(self, tmp_path: Path) -> None:
        rc = tmp_path / ".zshrc"
        rc.write_bytes(b"setopt sharehistory\r\n")
        assert ShellProfile(rc).append_once("setopt sharehistory") is False

    def test_missing_trailing_newline_gets_separator(self, tmp_path: Path) -> None:
        rc = tmp_path / ".zshrc"
        rc.write_text("alias clr=clear")
        ShellProfile(rc).append_once("alias py=python3")
        assert rc.read_text() == "alias clr=clear\nalias py=python3\n"

    def test_partial_match_is_not_membership(self, tmp_path: Path) -> None:
        rc = tmp_path / ".zshrc"
        rc.write_text("  HISTSIZE=10000\nHISTSIZE=100000\n")
        assert ShellProfile(rc).append_once("HISTSIZE=10000") is True

    def test_multiline_text_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            ShellProfile(tmp_path / ".zshrc").append_once("a\nb")

    def test_dry_run_does_not_write_but_tracks_lines(self, tmp_path: Path) -> None:
        rc = tmp_path / ".zshrc"
        p = ShellProfile(rc, dry_run=True)
        assert p.append_once("HISTSIZE=10000") is True
        assert p.append_once("HISTSIZE=10000") is False
        assert not rc.exists()

    def test_unwritable_location_raises(self, tmp_path: Path) -> None:
        rc = tmp_path / "is-a-dir"
        rc.mkdir()
        with pytest.raises(ProfileWriteFailed):
            ShellProfile(rc).append_once("x=1")


class TestApplyLines:
    def test_reports_per_line(self, tmp_path: Path) -> None:
        rc = tmp_path / ".zshrc"
        rc.write_text("HISTSIZE=10000\n")
        results = apply_lines(ShellProfile(rc), ["HISTSIZE=10000", "SAVEHIST=10000"])
        assert [r.outcome for r in results] == [Outcome.ALREADY_PRESENT, Outcome.INSTALLED]

    def test_failure_is_isolated_to_the_line(self, tmp_path: Path) -> None:
        rc = tmp_path / ".zshrc"
        results = apply_lines(ShellProfile(rc), ["bad\nline", "SAVEHIST=10000"])
        assert [r.outcome for r in results] == [Outcome.FAILED, Outcome.INSTALLED]
        assert rc.read_text() == "SAVEHIST=10000\n"
