"""Configuration models and loading."""

from .environment import EnvironmentSubstitutionError, substitute_environment_variables
from .loader import config_from_mapping, deep_merge, load_config, load_data_file
from .models import CacheSettings, InterpolationConfig, KitConfig

__all__ = [
    "CacheSettings",
    "EnvironmentSubstitutionError",
    "InterpolationConfig",
    "KitConfig",
    "config_from_mapping",
    "deep_merge",
    "load_config",
    "load_data_file",
    "substitute_environment_variables",
]
