"""
Config Loader

Builds the frozen PipelineConfig from, in increasing priority: model
defaults, a YAML file, dotted CLI overrides and a nested overrides dict.
`${VAR}` references in the YAML are expanded from the environment so that
warehouse credentials never live in the file itself.
"""

from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging
import os
import re

import yaml
from pydantic import ValidationError

from lending_rate.config.schema import PipelineConfig
from lending_rate.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _expand_env(node: Any) -> Any:
    if isinstance(node, dict):
        return {k: _expand_env(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_expand_env(v) for v in node]
    if isinstance(node, str):
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), ""), node)
    return node


def _merge_into(target: Dict[str, Any], updates: Dict[str, Any]) -> None:
    for key, value in updates.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _merge_into(current, value)
        else:
            target[key] = value


def _dotted_to_nested(flat: Dict[str, Any]) -> Dict[str, Any]:
    """{'selection.n_folds': 3} -> {'selection': {'n_folds': 3}}; None values dropped."""
    nested: Dict[str, Any] = {}
    for dotted, value in flat.items():
        if value is None:
            continue
        *parents, leaf = dotted.split(".")
        node = nested
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
    return nested


def _read_yaml(yaml_path: str) -> Dict[str, Any]:
    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise ConfigurationError(f"Config file not found: {yaml_path}")
    try:
        raw = yaml.safe_load(yaml_file.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {yaml_path}", cause=e)

    raw = _expand_env(raw)
    # A relative input file is looked up next to the YAML first
    data_cfg = raw.get("data") or {}
    input_path = data_cfg.get("input_path")
    if input_path and not Path(input_path).is_absolute():
        candidate = (yaml_file.parent / input_path).resolve()
        if candidate.exists():
            data_cfg["input_path"] = str(candidate)

    logger.info(f"CONFIG | Loaded {yaml_path}")
    return raw


def load_config(
    yaml_path: Optional[str] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> PipelineConfig:
    """Load the run configuration.

    Args:
        yaml_path: YAML file; defaults only when None.
        cli_overrides: Dotted keys from the command line, e.g.
            {"selection.n_folds": 5}. None values are ignored.
        overrides: Nested dict merged last.

    Raises:
        ConfigurationError: Missing file, malformed YAML, or values that
            fail validation (the pydantic error is the cause).
    """
    raw = _read_yaml(yaml_path) if yaml_path is not None else {}
    for layer in (_dotted_to_nested(cli_overrides or {}), overrides or {}):
        _merge_into(raw, layer)

    try:
        return PipelineConfig(**raw)
    except ValidationError as e:
        raise ConfigurationError("Invalid pipeline configuration", cause=e)


def save_config(config: PipelineConfig, path: str) -> None:
    """Write the config as YAML (.yaml/.yml) or JSON (anything else)."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = config.model_dump()

    if out_path.suffix in (".yaml", ".yml"):
        text = yaml.dump(payload, default_flow_style=False, sort_keys=False)
    else:
        text = json.dumps(payload, indent=2, default=str)
    out_path.write_text(text, encoding="utf-8")
    logger.info(f"CONFIG | Saved snapshot to {path}")
