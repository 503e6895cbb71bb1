from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np


def fibonacci_sphere(count: int, radius: float = 1.0) -> np.ndarray:
    """Nearly uniform samples on a sphere surface."""
    i = np.arange(count, dtype=np.float64) + 0.5
    phi = np.arccos(1.0 - 2.0 * i / count)
    theta = np.pi * (1.0 + 5.0 ** 0.5) * i
    return radius * np.column_stack([np.cos(theta) * np.sin(phi), np.sin(theta) * np.sin(phi), np.cos(phi)])


def cube_surface(divisions: int, size: float = 1.0) -> np.ndarray:
    lin = np.linspace(-size / 2.0, size / 2.0, divisions + 1)
    uu, vv = np.meshgrid(lin, lin, indexing="ij")
    u, v = uu.ravel(), vv.ravel()
    h = np.full_like(u, size / 2.0)
    faces = [
        np.column_stack([u, v, h]), np.column_stack([u, v, -h]),
        np.column_stack([u, h, v]), np.column_stack([u, -h, v]),
        np.column_stack([h, u, v]), np.column_stack([-h, u, v]),
    ]
    pts = np.vstack(faces)
    # Edges and corners are shared by several faces.
    return np.unique(np.round(pts, 12), axis=0)


def tetrahedron(size: float = 1.0) -> np.ndarray:
    """Regular tetrahedron centred on the origin; circumradius ``size``."""
    return size * np.array([
        [0.0, 0.0, 1.0],
        [np.sqrt(8.0 / 9.0), 0.0, -1.0 / 3.0],
        [-np.sqrt(2.0 / 9.0), np.sqrt(2.0 / 3.0), -1.0 / 3.0],
        [-np.sqrt(2.0 / 9.0), -np.sqrt(2.0 / 3.0), -1.0 / 3.0],
    ])


def grid_plane(divisions: int, size: float = 1.0, z: float = 0.0) -> np.ndarray:
    lin = np.linspace(-size / 2.0, size / 2.0, divisions + 1)
    xv, yv = np.meshgrid(lin, lin, indexing="ij")
    return np.column_stack([xv.ravel(), yv.ravel(), np.full(xv.size, z)])


def generate_cloud(
    preset: str,
    count: int = 500,
    size: float = 1.0,
    noise: float = 0.0,
    seed: Optional[int] = None,
) -> np.ndarray:
    preset = preset.lower()
    if preset == "sphere":
        xyz = fibonacci_sphere(count, radius=size)
    elif preset == "cube":
        divisions = max(1, int(round(np.sqrt(count / 6.0))))
        xyz = cube_surface(divisions, size=size)
    elif preset == "tetrahedron":
        xyz = tetrahedron(size)
    elif preset == "plane":
        divisions = max(1, int(round(np.sqrt(count))) - 1)
        xyz = grid_plane(divisions, size=size)
    else:
        raise ValueError(f"Unknown synthetic point cloud preset '{preset}'.")
    if noise > 0.0:
        rng = np.random.default_rng(seed)
        xyz = xyz + rng.normal(scale=noise, size=xyz.shape)
    return xyz


def write_cloud(path: Path, xyz: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower()
    if suffix == ".npz":
        np.savez_compressed(path, xyz=xyz)
        return
    if suffix in {".xyz", ".txt"}:
        np.savetxt(path, xyz, fmt="%.9f")
        return
    if suffix == ".ply":
        with open(path, "w", encoding="utf-8") as f:
            f.write("ply\n")
            f.write("format ascii 1.0\n")
            f.write(f"element vertex {len(xyz)}\n")
            f.write("property double x\nproperty double y\nproperty double z\n")
            f.write("end_header\n")
            for x, y, z in xyz:
                f.write(f"{x:.9f} {y:.9f} {z:.9f}\n")
        return
    raise ValueError(f"Unsupported point cloud format '{path.suffix}'")
