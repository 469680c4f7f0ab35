"""Load htmlkit configuration and data files."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import yaml
from pydantic import ValidationError

from .environment import EnvironmentSubstitutionError, substitute_environment_variables
from .models import KitConfig

logger = logging.getLogger(__name__)

DATA_SUFFIXES = {".yaml", ".yml", ".json"}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two mappings, recursing into nested mappings.

    Args:
        base: Base mapping
        override: Mapping whose values win on conflicts

    Returns:
        New merged mapping
    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_data_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML or JSON data file whose top level is a mapping.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the extension is unsupported or the content is not a mapping
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(
            f"Data file not found: {path}. "
            f"Suggestion: Check the path relative to the configuration file."
        )

    suffix = path.suffix.lower()
    if suffix not in DATA_SUFFIXES:
        raise ValueError(
            f"Unsupported data file extension: {path.suffix}. "
            f"Suggestion: Use one of {', '.join(sorted(DATA_SUFFIXES))}"
        )

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f) if suffix == ".json" else yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Data file {path} must contain a mapping at the top level")
    return data


def merge_data_files(
    data: Dict[str, Any], files: Iterable[Union[str, Path]], base_dir: Optional[Path] = None
) -> Dict[str, Any]:
    """Merge data files into ``data`` in order, later files winning."""
    merged = dict(data)
    for entry in files:
        path = Path(entry)
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        logger.info(f"Loading data file {path}")
        merged = deep_merge(merged, load_data_file(path))
    return merged


def config_from_mapping(
    data: Dict[str, Any], base_dir: Optional[Path] = None
) -> KitConfig:
    """Validate a configuration mapping.

    Relative ``root`` and ``data_files`` entries are resolved against
    ``base_dir``, and data files are merged into ``data``.

    Raises:
        ValueError: If the configuration doesn't match the schema
    """
    try:
        config = KitConfig(**data)
    except ValidationError as e:
        raise ValueError(f"Configuration validation failed:\n{e}") from e

    if base_dir is not None and not config.root.is_absolute():
        config.root = base_dir / config.root

    if config.data_files:
        config.data = merge_data_files(config.data, config.data_files, base_dir)

    return config


def load_config(
    file_path: Union[str, Path],
    enable_env_substitution: bool = True,
    env_strict: bool = False,
) -> KitConfig:
    """Load and validate an htmlkit YAML configuration file.

    Args:
        file_path: Path to the YAML configuration file
        enable_env_substitution: Whether to substitute ``${VAR}`` references
        env_strict: Whether environment variable substitution is strict

    Returns:
        Validated KitConfig object

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the YAML is invalid
        ValueError: If the configuration doesn't match the schema
        EnvironmentSubstitutionError: If environment variable substitution fails
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(
            f"Configuration file not found: {path}. "
            f"Suggestion: Create it or pass --config with a valid path."
        )

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    if enable_env_substitution:
        try:
            data = substitute_environment_variables(data, strict=env_strict)
        except EnvironmentSubstitutionError as e:
            raise EnvironmentSubstitutionError(
                f"Environment variable substitution failed in {path}: {e}"
            ) from e

    config = config_from_mapping(data, base_dir=path.parent)
    logger.info(f"Loaded configuration from {path}")
    return config
