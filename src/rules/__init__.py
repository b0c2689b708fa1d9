"""Configuration and platform rules for geiger-core."""

from rules.cfg import TargetFilter, eval_cfg, parse_cfg_entries
from rules.config import (
    ConfigError,
    GeigerConfig,
    load_config,
)

__all__ = [
    "ConfigError",
    "GeigerConfig",
    "TargetFilter",
    "eval_cfg",
    "load_config",
    "parse_cfg_entries",
]
