from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError
from .lib.env import Paths, repo_root
from .models import ArtifactSpec, LinkSpec, PackageSpec

DEFAULT_MANIFEST = "manifests/bootstrap.yaml"

_FETCH_METHODS = {"clone", "download", "script"}


def default_manifest_path() -> Path:
    return repo_root() / DEFAULT_MANIFEST


def _as_list(raw: Dict[str, Any], key: str) -> List[Any]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{key} must be a list, got {type(value).__name__}")
    return value


def parse_package(item: Any) -> PackageSpec:
    if isinstance(item, str):
        return PackageSpec(name=item)
    if not isinstance(item, dict) or not item.get("name"):
        raise ConfigError(f"package entries must be a name or a mapping with 'name': {item!r}")

    overrides = item.get("overrides") or {}
    if not isinstance(overrides, dict):
        raise ConfigError(f"package {item['name']}: overrides must be a mapping")
    via = item.get("via")
    if via is not None and via != "brew":
        raise ConfigError(f"package {item['name']}: unsupported via={via!r}")

    return PackageSpec(
        name=str(item["name"]),
        overrides={str(k): (None if v is None else str(v)) for k, v in overrides.items()},
        via=via,
    )


def parse_artifact(item: Any, paths: Paths) -> ArtifactSpec:
    if not isinstance(item, dict):
        raise ConfigError(f"artifact entries must be mappings: {item!r}")
    for key in ("name", "method", "url", "target"):
        if not item.get(key):
            raise ConfigError(f"artifact {item.get('name', '?')}: missing {key!r}")

    method = str(item["method"])
    if method not in _FETCH_METHODS:
        raise ConfigError(f"artifact {item['name']}: method must be one of {sorted(_FETCH_METHODS)}")
    url = str(item["url"])
    if not url.startswith("https://"):
        raise ConfigError(f"artifact {item['name']}: only https:// URLs are supported")

    check = item.get("check") or ["path"]
    if isinstance(check, str):
        check = [check]
    checks = []
    for c in check:
        kind, sep, arg = str(c).partition(":")
        if kind not in {"path", "file", "command"} or (kind != "path" and not arg):
            raise ConfigError(f"artifact {item['name']}: bad presence check {c!r}")
        checks.append(f"{kind}{sep}{paths.expand(arg)}" if kind == "file" else str(c))

    post = []
    for argv in item.get("post") or []:
        if not isinstance(argv, list) or not argv:
            raise ConfigError(f"artifact {item['name']}: post commands must be non-empty lists")
        post.append(tuple(paths.expand(str(a)) for a in argv))

    creates = item.get("creates") or []
    if isinstance(creates, str):
        creates = [creates]
    if not isinstance(creates, list) or not all(isinstance(c, str) for c in creates):
        raise ConfigError(f"artifact {item['name']}: creates must be a path or a list of paths")

    return ArtifactSpec(
        name=str(item["name"]),
        target=paths.expand(str(item["target"])),
        method=method,
        url=url,
        check=tuple(checks),
        ref=item.get("ref"),
        depth=int(item.get("depth", 1)),
        sha256=item.get("sha256"),
        strip=int(item.get("strip", 0)),
        interpreter=str(item.get("interpreter", "sh")),
        args=tuple(str(a) for a in item.get("args") or []),
        post=tuple(post),
        creates=tuple(paths.expand(c) for c in creates),
        only_on=tuple(str(x) for x in item.get("only_on") or []),
    )


def parse_link(item: Any, paths: Paths) -> LinkSpec:
    if not isinstance(item, dict) or not item.get("source") or not item.get("destination"):
        raise ConfigError(f"link entries need 'source' and 'destination': {item!r}")
    return LinkSpec(source=paths.expand(str(item["source"])), destination=paths.expand(str(item["destination"])))


@dataclass(frozen=True)
class BootstrapConfig:
    raw: Dict[str, Any]
    paths: Paths

    @property
    def shell(self) -> str:
        return str(self.raw.get("shell") or "zsh")

    @property
    def profile_path(self) -> Path:
        return Path(self.paths.expand(str(self.raw.get("profile") or "~/.zshrc")))

    @property
    def upgrade(self) -> bool:
        return bool(self.raw.get("upgrade", False))

    def bootstrap_managers(self) -> List[ArtifactSpec]:
        return [parse_artifact(a, self.paths) for a in _as_list(self.raw, "package_managers")]

    def packages(self) -> List[PackageSpec]:
        return [parse_package(p) for p in _as_list(self.raw, "packages")]

    def artifacts(self) -> List[ArtifactSpec]:
        return [parse_artifact(a, self.paths) for a in _as_list(self.raw, "artifacts")]

    def links(self) -> List[LinkSpec]:
        return [parse_link(l, self.paths) for l in _as_list(self.raw, "links")]

    def profile_lines(self) -> List[str]:
        # Shell text is written verbatim; no placeholder or $VAR expansion.
        out = []
        for line in _as_list(self.raw, "profile_lines"):
            if not isinstance(line, str):
                raise ConfigError(f"profile_lines entries must be strings: {line!r}")
            out.append(line)
        return out

    def fonts(self) -> List[ArtifactSpec]:
        return [parse_artifact(a, self.paths) for a in _as_list(self.raw, "fonts")]

    def validate(self) -> None:
        """Parse every section once so manifest errors surface before any mutation."""

        self.bootstrap_managers()
        self.packages()
        self.artifacts()
        self.links()
        self.profile_lines()
        self.fonts()


def load_config(path: Optional[str | Path] = None, *, paths: Paths) -> BootstrapConfig:
    p = Path(path) if path else default_manifest_path()
    if not p.exists():
        raise FileNotFoundError(str(p))
    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError("manifest must be YAML")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{p}: invalid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{p} must contain a mapping/object")

    cfg = BootstrapConfig(raw=raw, paths=paths)
    cfg.validate()
    return cfg
