"""Pipeline configuration."""

from .loader import DEFAULT_CONFIG_PATH, PipelineConfig, load_config

__all__ = ["PipelineConfig", "load_config", "DEFAULT_CONFIG_PATH"]
