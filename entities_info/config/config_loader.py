"""Load runtime configuration for the entities info service."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .settings import RuntimeConfig

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent.parent
CONFIG_PATH = Path(__file__).with_name("entities_info.yaml")
CONFIG_ENV = "ENTITIES_INFO_CONFIG"

# Pattern to match env("VAR_NAME") and env("VAR_NAME", "default") placeholders
ENV_PATTERN = re.compile(r'env\("([^"]+)"(?:\s*,\s*"([^"]*)")?\)')

load_dotenv(PACKAGE_DIR / ".env")


def _resolve_env_placeholders(value: Any) -> Any:
    """Recursively resolve env("VAR") placeholders in YAML values.

    A placeholder without a default whose variable is unset raises ValueError.
    """
    if isinstance(value, str):
        match = ENV_PATTERN.fullmatch(value.strip())
        if match:
            var_name, default = match.group(1), match.group(2)
            env_value = os.getenv(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            logger.warning(f"Environment variable {var_name} not set and has no default")
            raise ValueError(f"Environment variable {var_name} not set (required by config)")
        return value
    elif isinstance(value, dict):
        return {k: _resolve_env_placeholders(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_placeholders(item) for item in value]
    else:
        return value


def _set_from_environment(value: Any) -> bool:
    """True when ``value`` is an env("VAR") placeholder whose variable is set."""
    if not isinstance(value, str):
        return False
    match = ENV_PATTERN.fullmatch(value.strip())
    return bool(match) and os.getenv(match.group(1)) is not None


def _resolve_relative_paths(data: Dict[str, Any], raw: Dict[str, Any], base_dir: Path) -> Dict[str, Any]:
    """Make the snapshot path absolute.

    Paths written in the YAML (including placeholder defaults) are relative to
    the config file's directory, paths taken from the environment to the
    working directory.
    """
    store = data.get("content_store") or {}
    snapshot_path = store.get("snapshot_path")
    if snapshot_path and not os.path.isabs(snapshot_path):
        raw_path = (raw.get("content_store") or {}).get("snapshot_path")
        if _set_from_environment(raw_path):
            store["snapshot_path"] = str(Path(snapshot_path).resolve())
        else:
            store["snapshot_path"] = str((base_dir / snapshot_path).resolve())
    return data


def _compute_config_version(yaml_content: str) -> str:
    """SHA256 of the raw YAML, shortened for log lines."""
    return hashlib.sha256(yaml_content.encode("utf-8")).hexdigest()[:16]


def load_runtime_config(path: Optional[Path] = None) -> RuntimeConfig:
    """Load runtime configuration from YAML.

    Args:
        path: Optional path to the YAML file. Defaults to ``$ENTITIES_INFO_CONFIG``
            or the bundled ``entities_info.yaml``.

    Returns:
        RuntimeConfig instance with resolved env placeholders.
    """
    target = Path(path or os.getenv(CONFIG_ENV) or CONFIG_PATH)

    with target.open("r", encoding="utf-8") as handle:
        yaml_content = handle.read()
        raw = yaml.safe_load(yaml_content) or {}

    data = _resolve_env_placeholders(raw)
    data = _resolve_relative_paths(data, raw, target.resolve().parent)

    if "metadata" not in data:
        data["metadata"] = {}
    data["metadata"]["config_version"] = _compute_config_version(yaml_content)
    data["metadata"]["path"] = str(target)

    config = RuntimeConfig.model_validate(data)
    logger.info(
        "Runtime config loaded",
        extra={
            "config_version": config.metadata["config_version"],
            "content_store": config.content_store.backend,
            "tempstore": config.tempstore.backend,
        },
    )
    return config


def dump_config(config: RuntimeConfig) -> str:
    """Serialize the config for the CLI's --show-config flag."""
    return json.dumps(config.model_dump(), indent=2, sort_keys=True)
