"""Configuration loading utilities for cloudhull."""

from .schema import (
    HullConfig,
    OutputConfig,
    ReconstructionConfig,
    SmoothingConfig,
    load_config,
)

__all__ = ["HullConfig", "OutputConfig", "ReconstructionConfig", "SmoothingConfig", "load_config"]
