from __future__ import annotations
from dataclasses import dataclass, field
import numpy as np
from typing import List, Optional

from .errors import RecoverableAnomaly
from .utils import as_points

@dataclass
class PointCloud:
    """An ordered set of 3D points; row order defines the point indices."""
    xyz: np.ndarray                          # (N, 3)
    normals: Optional[np.ndarray] = None     # (N, 3)

    def __post_init__(self) -> None:
        # Each cloud owns a read-only buffer; stages build new clouds instead of editing one.
        self.xyz = as_points(self.xyz)
        self.xyz.setflags(write=False)
        if self.normals is not None:
            normals = as_points(self.normals, name="normals")
            if normals.shape[0] != len(self.xyz):
                raise ValueError(f"normals length {normals.shape[0]} != {len(self.xyz)}")
            normals.setflags(write=False)
            self.normals = normals

    def __len__(self) -> int:
        return int(self.xyz.shape[0])

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    @classmethod
    def empty(cls) -> "PointCloud":
        return cls(np.zeros((0, 3), dtype=np.float64))

    def subset(self, indices) -> "PointCloud":
        idx = np.asarray(indices, dtype=np.int64)
        normals = self.normals[idx] if self.normals is not None else None
        return PointCloud(self.xyz[idx], normals)


@dataclass
class SmoothedCloud:
    cloud: PointCloud
    source_index: np.ndarray                 # (M,) index of the input point behind each output point
    anomalies: List[RecoverableAnomaly] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.source_index = np.asarray(self.source_index, dtype=np.int64).reshape(-1)
        if len(self.source_index) != len(self.cloud):
            raise ValueError(f"source_index length {len(self.source_index)} != {len(self.cloud)}")

    def __len__(self) -> int:
        return len(self.cloud)

    @property
    def dropped(self) -> int:
        return len(self.anomalies)
