from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator


class SmoothingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    search_radius: float = Field(0.03, gt=0.0)
    polynomial_fit: bool = True
    polynomial_order: int = Field(2, ge=1)
    min_neighbors: int = Field(3, ge=1)
    sqr_gauss_param: Optional[float] = Field(None, gt=0.0)
    compute_normals: bool = True


class HullConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dedup_tolerance: float = Field(1e-9, ge=0.0)
    planar_tolerance: float = Field(1e-9, gt=0.0)
    min_triangle_area: float = Field(1e-12, ge=0.0)


MESH_FORMATS = ("ply", "npz")


class OutputConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: Optional[Path] = None
    format: Literal["ply", "npz"] = "ply"

    @model_validator(mode="after")
    def _infer_format(self) -> "OutputConfig":
        if self.path is not None:
            ext = self.path.suffix.lower().lstrip(".")
            if ext in MESH_FORMATS:
                self.format = ext
        return self


class ReconstructionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    smoothing: SmoothingConfig = Field(default_factory=SmoothingConfig)
    hull: HullConfig = Field(default_factory=HullConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_log_level(self) -> "ReconstructionConfig":
        level = self.log_level.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level '{self.log_level}'")
        self.log_level = level
        return self


def load_config(path: str | Path) -> ReconstructionConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping.")
    cfg = ReconstructionConfig.model_validate(data)
    if cfg.output.path is not None and not cfg.output.path.is_absolute():
        cfg.output.path = (path.parent / cfg.output.path).resolve()
    return cfg
