from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional


def repo_root() -> Path:
    # dotfiles_bootstrap/lib/env.py -> dotfiles_bootstrap -> repo root
    return Path(__file__).resolve().parents[2]


def is_ci(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    if str(env.get("CI", "")).lower() in {"true", "1", "yes"}:
        return True
    return str(env.get("DOTFILES_NONINTERACTIVE", "")).lower() in {"true", "1", "yes"}


@dataclass(frozen=True)
class Paths:
    """Well-known locations used to expand `{placeholders}` in the manifest."""

    home: Path
    config_home: Path
    data_home: Path
    bin_dir: Path
    font_dir: Path
    repo: Path

    @classmethod
    def for_host(
        cls,
        *,
        home: Optional[Path] = None,
        os_family: str = "linux",
        repo: Optional[Path] = None,
        environ: Mapping[str, str] | None = None,
    ) -> "Paths":
        env = os.environ if environ is None else environ
        h = Path(home) if home is not None else Path(env.get("HOME") or Path.home())

        # An explicit home (tests, --home) wins over the caller's XDG variables.
        if home is None and env.get("XDG_CONFIG_HOME"):
            config_home = Path(env["XDG_CONFIG_HOME"])
        else:
            config_home = h / ".config"
        if home is None and env.get("XDG_DATA_HOME"):
            data_home = Path(env["XDG_DATA_HOME"])
        else:
            data_home = h / ".local" / "share"

        font_dir = h / "Library" / "Fonts" if os_family == "darwin" else data_home / "fonts"
        return cls(
            home=h,
            config_home=config_home,
            data_home=data_home,
            bin_dir=h / ".local" / "bin",
            font_dir=font_dir,
            repo=repo if repo is not None else repo_root(),
        )

    def placeholders(self) -> Dict[str, str]:
        return {
            "home": str(self.home),
            "config_home": str(self.config_home),
            "data_home": str(self.data_home),
            "bin_dir": str(self.bin_dir),
            "font_dir": str(self.font_dir),
            "repo": str(self.repo),
        }

    def expand(self, value: str) -> str:
        """Expand {placeholders}, ~ and $VARS in a manifest path string."""

        out = value
        for key, repl in self.placeholders().items():
            out = out.replace("{" + key + "}", repl)
        if out == "~" or out.startswith("~/"):
            out = str(self.home) + out[1:]
        out = out.replace("$HOME", str(self.home)).replace("${HOME}", str(self.home))
        return os.path.expandvars(out)
