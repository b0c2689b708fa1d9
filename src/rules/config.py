from __future__ import annotations

from pathlib import Path
from typing import Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from graph.models import DependencyKind

CONFIG_FILENAME = "geiger.toml"


class DependenciesConfig(BaseModel):
    """Which dependency kinds to follow beyond normal dependencies."""

    model_config = ConfigDict(extra="forbid")

    build: bool = Field(default=False, description="Also analyze build dependencies")
    dev: bool = Field(default=False, description="Also analyze dev dependencies")
    all: bool = Field(
        default=False,
        description="Analyze all dependencies, including build and dev",
    )

    def kinds(self) -> frozenset[DependencyKind]:
        """Return the dependency kinds selected by this configuration."""
        kinds = {DependencyKind.NORMAL}
        if self.build or self.all:
            kinds.add(DependencyKind.BUILD)
        if self.dev or self.all:
            kinds.add(DependencyKind.DEV)
        return frozenset(kinds)


class FeaturesConfig(BaseModel):
    """Cargo feature selection for the compile plan."""

    model_config = ConfigDict(extra="forbid")

    features: list[str] = Field(
        default_factory=list,
        description="Features to activate",
    )
    all_features: bool = Field(default=False, description="Activate all features")
    no_default_features: bool = Field(
        default=False,
        description="Do not activate the `default` feature",
    )

    @field_validator("features", mode="before")
    @classmethod
    def split_features(cls, v: Any) -> Any:
        """Accept a space or comma separated string as cargo does."""
        if isinstance(v, str):
            return [part for part in v.replace(",", " ").split() if part]
        return v


class TargetConfig(BaseModel):
    """Target platform selection."""

    model_config = ConfigDict(extra="forbid")

    target: str | None = Field(default=None, description="Target triple")
    all_targets: bool = Field(
        default=False,
        description="Follow dependencies for all targets, not only the host",
    )


class CargoConfig(BaseModel):
    """Flags passed through to every cargo invocation."""

    model_config = ConfigDict(extra="forbid")

    offline: bool = False
    locked: bool = False
    frozen: bool = False

    def flags(self) -> list[str]:
        flags: list[str] = []
        if self.offline:
            flags.append("--offline")
        if self.locked:
            flags.append("--locked")
        if self.frozen:
            flags.append("--frozen")
        return flags


class GeigerConfig(BaseModel):
    """Configuration for a geiger scan."""

    model_config = ConfigDict(extra="forbid")

    output_dir: str = Field(
        default=".geiger",
        description="Output directory for written reports",
    )
    package: str | None = Field(
        default=None,
        description="Package to use as the root of the tree (name, name@version or id)",
    )
    include_tests: bool = Field(
        default=False,
        description="Count unsafe usage in #[test] functions and #[cfg(test)] modules",
    )
    max_workers: int | None = Field(
        default=None,
        ge=1,
        description="Parser thread pool size (default: CPU count, capped at 8)",
    )
    dependencies: DependenciesConfig = Field(default_factory=DependenciesConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    target: TargetConfig = Field(default_factory=TargetConfig)
    cargo: CargoConfig = Field(default_factory=CargoConfig)


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def resolve_output_dir(root: Path, output_dir: str) -> Path:
    """Resolve a config-provided output_dir safely within the project root.

    The config output_dir must be a non-empty relative path that remains
    within the project root after resolution. Absolute paths and paths
    that escape the root are rejected.
    """
    if not output_dir:
        msg = "output_dir must be a non-empty relative path"
        raise ConfigError(msg)

    output_path = Path(output_dir)
    if output_dir.startswith("~") or output_path.is_absolute():
        msg = "output_dir must be a relative path within the project root"
        raise ConfigError(msg)

    try:
        resolved_root = root.resolve()
        resolved_output = (resolved_root / output_path).resolve()
    except OSError as exc:
        msg = f"Failed to resolve output_dir '{output_dir}': {exc}"
        raise ConfigError(msg) from exc

    try:
        resolved_output.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"output_dir '{output_dir}' escapes the project root"
        raise ConfigError(msg) from exc

    return resolved_output


def load_config(root: Path) -> GeigerConfig:
    """Load configuration from geiger.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return GeigerConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return GeigerConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
