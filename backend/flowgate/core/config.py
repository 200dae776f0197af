# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
flowgate Configuration - Single source of truth.
YAML is king. Env vars only for deployment overrides.

- ALL configuration in plain text (YAML)
- NO hidden state - everything inspectable via `cat`, `grep`
"""

import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List


DEFAULT_CONFIG_PATH = "configs/flowgate.yaml"


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.
    All values from YAML. No hidden state.
    """

    # -- Storage --
    data_dir: str = "./data/workflows"

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"
    logs_path: str = "./logs"
    audit_to_file: bool = False

    # -- Governance --
    # Version 1 of every artifact is its unpublished draft.
    min_published_version: int = 2
    registry_catalog_path: str = "configs/registries.yaml"
    output_node_types: List[str] = field(default_factory=lambda: [
        "notify", "report-generate", "dashboard-publish"
    ])

    # -- Default run policy stamped on new workflow skeletons --
    default_timeout_ms: int = 30000
    default_retry_count: int = 1
    default_retry_backoff_ms: int = 2000
    default_on_error: str = "FAIL_FAST"

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def logs_dir(self) -> Path:
        return Path(self.logs_path)

    def default_node_policy(self) -> dict:
        """Run policy defaults in DSL (camelCase) shape."""
        return {
            "timeoutMs": self.default_timeout_ms,
            "retryCount": self.default_retry_count,
            "retryBackoffMs": self.default_retry_backoff_ms,
            "onError": self.default_on_error,
        }


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.
    """
    if not Path(path).exists():
        print(f"Config not found at {path}, using defaults")
        return Config()

    with open(path) as f:
        y = yaml.safe_load(f) or {}

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = Config()
    return Config(
        # Storage
        data_dir=os.getenv("FLOWGATE_DATA_DIR") or get(y, "storage", "data_dir") or defaults.data_dir,

        # Logging
        log_level=os.getenv("LOG_LEVEL") or get(y, "logging", "level") or defaults.log_level,
        log_format=get(y, "logging", "format") or defaults.log_format,
        logs_path=get(y, "logging", "logs_dir") or defaults.logs_path,
        audit_to_file=bool(get(y, "logging", "audit_to_file", default=False)),

        # Governance
        min_published_version=get(y, "governance", "min_published_version") or defaults.min_published_version,
        registry_catalog_path=get(y, "governance", "catalog_path") or defaults.registry_catalog_path,
        output_node_types=get(y, "governance", "output_node_types") or list(defaults.output_node_types),

        # Run policy
        default_timeout_ms=get(y, "run_policy", "defaults", "timeout_ms") or defaults.default_timeout_ms,
        default_retry_count=get(y, "run_policy", "defaults", "retry_count", default=defaults.default_retry_count),
        default_retry_backoff_ms=get(
            y, "run_policy", "defaults", "retry_backoff_ms", default=defaults.default_retry_backoff_ms
        ),
        default_on_error=get(y, "run_policy", "defaults", "on_error") or defaults.default_on_error,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("FLOWGATE_CONFIG_PATH", DEFAULT_CONFIG_PATH)
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
