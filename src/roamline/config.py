"""
Configuration.

Policy layer:
- one YAML file, ``config.yml`` in the config directory
- environment overrides for the graph name and API token
- validation before anything talks to the network
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from roamline.errors import ConfigError


CONFIG_FILE = "config.yml"
TOKEN_ENV = "ROAM_API_TOKEN"
GRAPH_ENV = "ROAM_GRAPH_NAME"


@dataclass
class GraphConfig:
    name: str = ""
    api_token: str = ""


@dataclass
class KeybindingsConfig:
    preset: str = "vim"
    # action name -> key
    bindings: dict[str, str] = field(default_factory=dict)


@dataclass
class RefreshConfig:
    tick_ms: int = 250
    idle_ticks: int = 120


@dataclass
class AppConfig:
    graph: GraphConfig = field(default_factory=GraphConfig)
    keybindings: KeybindingsConfig = field(default_factory=KeybindingsConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    log_file: str = "tui.log"

    # Where the config was read from; not serialized
    path: Optional[Path] = field(default=None, compare=False)

    @property
    def log_path(self) -> Path:
        log = Path(self.log_file).expanduser()
        if log.is_absolute():
            return log
        base = self.path.parent if self.path is not None else config_dir()
        return base / log

    def validate(self) -> None:
        """Raise ConfigError unless the config can reach a graph."""
        if not self.graph.name:
            raise ConfigError(f"graph.name is not set (or set {GRAPH_ENV})")
        if not self.graph.api_token:
            raise ConfigError(f"graph.api_token is not set (or set {TOKEN_ENV})")
        if self.refresh.tick_ms <= 0:
            raise ConfigError("refresh.tick_ms must be positive")
        if self.refresh.idle_ticks <= 0:
            raise ConfigError("refresh.idle_ticks must be positive")

    def keymap(self):
        from roamline.tui.keys import Keymap

        return Keymap.from_config(self.keybindings.preset, self.keybindings.bindings)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("path")
        return data


def config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "roamline"


def default_config_path() -> Path:
    return config_dir() / CONFIG_FILE


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _int(section: Mapping[str, Any], key: str, default: int, where: str) -> int:
    value = section.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{where}.{key} must be an integer, got {value!r}") from e


def parse_config(raw: Optional[Mapping[str, Any]]) -> AppConfig:
    """Build an AppConfig from the parsed YAML document."""
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError("config must be a mapping")

    graph = _section(raw, "graph")
    keys = _section(raw, "keybindings")
    refresh = _section(raw, "refresh")

    bindings = keys.get("bindings") or {}
    if not isinstance(bindings, Mapping):
        raise ConfigError("keybindings.bindings must be a mapping")

    return AppConfig(
        graph=GraphConfig(
            name=str(graph.get("name") or ""),
            api_token=str(graph.get("api_token") or ""),
        ),
        keybindings=KeybindingsConfig(
            preset=str(keys.get("preset") or "vim"),
            bindings={str(k): str(v) for k, v in bindings.items()},
        ),
        refresh=RefreshConfig(
            tick_ms=_int(refresh, "tick_ms", 250, "refresh"),
            idle_ticks=_int(refresh, "idle_ticks", 120, "refresh"),
        ),
        log_file=str(raw.get("log_file") or "tui.log"),
    )


def load_config(
    path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
) -> AppConfig:
    """Read the config file (if present) and apply environment overrides."""
    path = path or default_config_path()
    env = os.environ if env is None else env

    raw: Any = None
    if path.exists():
        try:
            raw = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: {e}") from e

    cfg = parse_config(raw)
    cfg.path = path

    if env.get(TOKEN_ENV):
        cfg.graph.api_token = env[TOKEN_ENV]
    if env.get(GRAPH_ENV):
        cfg.graph.name = env[GRAPH_ENV]
    return cfg


def write_default(path: Path, *, graph_name: str = "", api_token: str = "") -> AppConfig:
    """Write a fresh config file and return what was written."""
    cfg = AppConfig(graph=GraphConfig(name=graph_name, api_token=api_token))
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        yaml.safe_dump(cfg.to_dict(), f, sort_keys=False)
    cfg.path = path
    return cfg
