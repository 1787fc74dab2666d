"""
Settings loading.

Precedence, lowest first: schema defaults, JSON config file, environment
variables (``ANALYTICS_PIPELINE_<FIELD>``).
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from analytics_pipeline.config.schemas import ENV_PREFIX, AppSettings

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = f"{ENV_PREFIX}CONFIG_PATH"


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppSettings:
    """
    Build AppSettings from an optional JSON file and the environment.

    Args:
        path: JSON config file; defaults to $ANALYTICS_PIPELINE_CONFIG_PATH
        environ: Environment mapping (os.environ when omitted)

    Raises:
        FileNotFoundError: An explicit config path does not exist
        json.JSONDecodeError: The config file is not valid JSON
        pydantic.ValidationError: A value does not fit the schema
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    config_path = path or env.get(CONFIG_PATH_ENV)
    if config_path:
        values.update(_load_file(Path(config_path)))

    for name in AppSettings.model_fields:
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            values[name] = raw

    return AppSettings.model_validate(values)


def _load_file(path: Path) -> dict[str, Any]:
    with path.open() as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a JSON object")
    logger.info(f"[config] Loaded config file: {path}")
    return data
