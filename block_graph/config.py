"""Project rc-file (``.pzlrrc``) loading."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from block_graph.errors import ConfigError

logger = logging.getLogger(__name__)

RC_NAME = ".pzlrrc"

DEFAULTS: dict[str, Any] = {
    "super": "@super",
    "sourceDir": "src",
    "blockDir": "components",
    "serverDir": "server",
    "entriesDir": "entries",
    "projectType": "ts",
    "projectName": "",
    "dependencies": [],
    "lockPrefix": "",
}


class DependencySpec(BaseModel):
    """A dependency package with its per-layer extension exclusions."""

    src: str
    exclude: list[str] = Field(default_factory=list)


class RcConfig(BaseModel):
    """Validated project configuration.

    Field aliases follow the camelCase keys used in the rc file.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    super_: str = Field("@super", alias="super")
    source_dir: str = Field("src", alias="sourceDir")
    block_dir: str = Field("components", alias="blockDir")
    server_dir: str = Field("server", alias="serverDir")
    entries_dir: str = Field("entries", alias="entriesDir")
    project_type: Literal["ts", "js", "static"] = Field("ts", alias="projectType")
    project_name: str = Field("", alias="projectName")
    dependencies: list[str | DependencySpec] = Field(default_factory=list)
    lock_prefix: str = Field("", alias="lockPrefix")

    def dependency_specs(self) -> list[DependencySpec]:
        return [
            DependencySpec(src=dep) if isinstance(dep, str) else dep
            for dep in self.dependencies
        ]


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge ``override`` into a copy of ``base``."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_rc(directory: Path, *, warn_missing: bool = True) -> RcConfig:
    """Load ``.pzlrrc`` from ``directory`` merged over the defaults."""
    rc_path = directory / RC_NAME
    raw: dict[str, Any] = {}

    if rc_path.exists():
        try:
            raw = json.loads(rc_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"{rc_path} should be a valid JSON: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"{rc_path} should contain a JSON object")
    elif warn_missing:
        logger.warning("%s doesn't exist, using defaults", rc_path)

    try:
        return RcConfig.model_validate(deep_merge(DEFAULTS, raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid {rc_path}: {e}") from e
