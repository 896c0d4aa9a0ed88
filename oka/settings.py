"""oka settings - named environments persisted to a YAML file."""

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.laposte.fr"

DEFAULTS: dict[str, Any] = {
    "baseUris": {"production": DEFAULT_BASE_URL},
    "env": "production",
}

# Per-environment keys that may be saved from boolean flags.
TOGGLES = ("showheaders", "status", "ignoressl", "yaml")


class Settings:
    """Settings store bound to an optional file path.

    Without a path, load/save/delete are no-ops returning False, which is
    how embedded callers run with in-memory settings only.
    """

    def __init__(self, path: str | Path | None = None, value: dict | None = None):
        self.path = Path(path) if path else None
        self.value: dict[str, Any] = value if value is not None else copy.deepcopy(DEFAULTS)

    def load(self) -> bool:
        if not self.path:
            return False
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            logger.warning('settings file "%s" does not exist', self.path)
            return False
        except (OSError, yaml.YAMLError) as e:
            logger.error("cannot read settings file %s: %s", self.path, e)
            return False
        if data is None:
            data = {}
        if not isinstance(data, dict):
            logger.error("settings file %s does not hold a mapping", self.path)
            return False
        self.value = data
        return True

    def save(self) -> bool:
        """Write settings, leaving the file readable by its owner only.

        Permissions are opened up before writing so an earlier read-only save
        does not block the rewrite; a missing file is fine at that point.
        """
        if not self.path:
            return False
        try:
            os.chmod(self.path, 0o600)
        except FileNotFoundError:
            pass
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.value, f, default_flow_style=False, sort_keys=False, indent=2)
        os.chmod(self.path, 0o400)
        return True

    def delete(self) -> bool:
        if not self.path:
            return False
        os.remove(self.path)
        return True

    # ── Environments ─────────────────────────────────────────────────────

    @property
    def base_uris(self) -> dict[str, str]:
        return self.value.get("baseUris") or {}

    @property
    def env(self) -> str | None:
        return self.value.get("env")

    def env_names(self) -> list[str]:
        return list(self.base_uris)

    def resolve_env(self, name: str) -> str | None:
        """Exact environment name, else first case-insensitive substring match."""
        if name in self.base_uris:
            return name
        needle = name.lower()
        for key in self.base_uris:
            if needle in key.lower():
                return key
        return None

    def select_env(self, name: str) -> None:
        self.value["env"] = name
        self.env_block(name)

    def env_block(self, name: str | None = None) -> dict[str, Any]:
        """Override block for an environment, created on first access."""
        name = name or self.env
        block = self.value.get(name)
        if not isinstance(block, dict):
            block = self.value[name] = {}
        return block

    def base_uri(self, name: str | None = None) -> str | None:
        return self.base_uris.get(name or self.env)
