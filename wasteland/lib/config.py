"""
Workspace configuration.

One record per joined commons, keyed by the canonical upstream path
("org/db"), stored together in a single YAML file:

    default: steveyegge/wl-commons
    wastelands:
      steveyegge/wl-commons:
        upstream: steveyegge/wl-commons
        fork_org: alice-dev
        ...
"""

import logging
import os
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from pathlib import Path

import yaml

from wasteland.lib import validate
from wasteland.lib.errors import (
    AmbiguousWorkspaceError,
    ConfigError,
    InputError,
    NotJoinedError,
)

logger = logging.getLogger(__name__)

MODE_WILD_WEST = "wild-west"
MODE_PR = "pr"
VALID_MODES = {MODE_WILD_WEST, MODE_PR}

PROVIDER_GITHUB = "github"
PROVIDER_DOLTHUB = "dolthub"
VALID_PROVIDERS = {PROVIDER_GITHUB, PROVIDER_DOLTHUB}

CONFIG_FILENAME = "config.yaml"

# Keys `wl config set` may change
SETTABLE_KEYS = {"mode", "signing", "provider_type", "default"}


@dataclass
class WorkspaceConfig:
    """Config for one joined commons."""
    upstream: str  # canonical "org/db"
    fork_org: str
    fork_db: str
    local_dir: str  # local clone of the fork
    rig_handle: str
    mode: str = MODE_WILD_WEST
    signing: bool = False
    provider_type: str = PROVIDER_DOLTHUB
    hop_uri: str | None = None
    last_sync: str | None = None
    joined_at: str | None = field(default=None)

    @property
    def fork_repo(self) -> str:
        return f"{self.fork_org}/{self.fork_db}"

    @property
    def local_path(self) -> Path:
        return Path(self.local_dir)

    def resolve_mode(self) -> str:
        """Workflow mode, falling back to wild-west for unknown values."""
        if self.mode in VALID_MODES:
            return self.mode
        logger.warning(
            f"[CONFIG] Unknown mode '{self.mode}' for {self.upstream}, using '{MODE_WILD_WEST}'"
        )
        return MODE_WILD_WEST

    def is_github(self) -> bool:
        return self.provider_type == PROVIDER_GITHUB


def parse_upstream(upstream: str) -> tuple[str, str]:
    """Split "org/db" into (org, db)."""
    org, sep, db = upstream.partition("/")
    if not sep or not org or not db or "/" in db:
        raise InputError(f"invalid upstream path '{upstream}': expected format 'org/database'")
    return org, db


def default_config_dir() -> Path:
    """Config directory: $WL_CONFIG_DIR, else $XDG_CONFIG_HOME/wasteland."""
    override = os.environ.get("WL_CONFIG_DIR")
    if override:
        return Path(override)
    xdg = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(xdg) / "wasteland"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class ConfigStore:
    """Reads and writes the workspace config file."""

    def __init__(self, path: Path | None = None):
        self.path = path or default_config_dir() / CONFIG_FILENAME

    def _read(self) -> dict:
        if not self.path.exists():
            return {"wastelands": {}}
        try:
            data = yaml.safe_load(self.path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {self.path}: {e}") from None
        if not isinstance(data, dict):
            raise ConfigError(f"invalid config in {self.path}: expected a mapping")
        data.setdefault("wastelands", {})
        return data

    def _write(self, data: dict) -> None:
        for record in data.get("wastelands", {}).values():
            validate.validate_before_write(record, "workspace", self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(data, sort_keys=True))

    def load_all(self) -> dict[str, WorkspaceConfig]:
        """All joined workspaces keyed by upstream."""
        configs = {}
        for key, record in self._read()["wastelands"].items():
            try:
                validate.validate(record, "workspace")
            except validate.ValidationError as e:
                raise ConfigError(f"workspace '{key}': {e}") from None
            configs[key] = WorkspaceConfig(**record)
        return configs

    def default_upstream(self) -> str | None:
        return self._read().get("default")

    def resolve(self, selected: str | None = None) -> WorkspaceConfig:
        """Pick the active workspace.

        Order: explicit selection, then the `default` key, then the only
        joined workspace.
        """
        configs = self.load_all()
        if selected:
            if selected not in configs:
                raise NotJoinedError(f"rig has not joined wasteland '{selected}'")
            return configs[selected]
        if not configs:
            raise NotJoinedError("rig has not joined a wasteland")
        default = self.default_upstream()
        if default and default in configs:
            return configs[default]
        if len(configs) > 1:
            names = ", ".join(sorted(configs))
            raise AmbiguousWorkspaceError(f"multiple wastelands joined: {names}")
        return next(iter(configs.values()))

    def save(self, cfg: WorkspaceConfig) -> None:
        """Insert or replace the record for cfg.upstream."""
        parse_upstream(cfg.upstream)
        data = self._read()
        if cfg.joined_at is None:
            cfg.joined_at = _now_iso()
        data["wastelands"][cfg.upstream] = asdict(cfg)
        self._write(data)
        logger.debug(f"[CONFIG] Saved workspace {cfg.upstream} to {self.path}")

    def remove(self, upstream: str) -> bool:
        """Delete a workspace record. Returns False if it was not present."""
        data = self._read()
        if upstream not in data["wastelands"]:
            return False
        del data["wastelands"][upstream]
        if data.get("default") == upstream:
            data.pop("default")
        self._write(data)
        return True

    def set_default(self, upstream: str) -> None:
        data = self._read()
        if upstream not in data["wastelands"]:
            raise NotJoinedError(f"rig has not joined wasteland '{upstream}'")
        data["default"] = upstream
        self._write(data)

    def update_sync_timestamp(self, cfg: WorkspaceConfig) -> None:
        """Record a successful upstream sync. Best-effort."""
        cfg.last_sync = _now_iso()
        try:
            self.save(cfg)
        except (OSError, ConfigError, validate.ValidationError) as e:
            logger.warning(f"[CONFIG] Could not record sync time for {cfg.upstream}: {e}")

    def set_value(self, cfg: WorkspaceConfig, key: str, value: str) -> WorkspaceConfig:
        """Apply a `wl config set` change and persist it."""
        if key not in SETTABLE_KEYS:
            raise InputError(f"unknown config key '{key}': must be one of {', '.join(sorted(SETTABLE_KEYS))}")
        if key == "default":
            self.set_default(value)
            return cfg
        if key == "mode":
            if value not in VALID_MODES:
                raise InputError(f"invalid mode '{value}': must be one of {', '.join(sorted(VALID_MODES))}")
            cfg.mode = value
        elif key == "provider_type":
            if value not in VALID_PROVIDERS:
                raise InputError(f"invalid provider '{value}': must be one of {', '.join(sorted(VALID_PROVIDERS))}")
            cfg.provider_type = value
        elif key == "signing":
            if value.lower() not in ("true", "false"):
                raise InputError(f"invalid signing value '{value}': must be true or false")
            cfg.signing = value.lower() == "true"
        self.save(cfg)
        return cfg
