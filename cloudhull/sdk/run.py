from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..config import ReconstructionConfig, load_config
from ..core.exporter import read_point_cloud, write_mesh
from ..core.pipeline import ReconstructionResult, Reconstructor


@dataclass(frozen=True)
class FileRunResult:
    """Summary of a reconstruction driven by a point cloud file."""

    result: ReconstructionResult
    output_path: Optional[Path]
    config: ReconstructionConfig


def triangulate_file(
    input_path: Union[str, Path],
    *,
    output: Optional[Path] = None,
    config: Union[str, Path, ReconstructionConfig, None] = None,
    search_radius: Optional[float] = None,
) -> FileRunResult:
    """Reconstruct a mesh from a point cloud file.

    Parameters
    ----------
    input_path:
        Point cloud file (``.npz``, ASCII ``.ply``, ``.xyz`` or ``.txt``).
    output:
        Optional mesh file to write. The extension selects the format
        (``.ply`` or ``.npz``). Falls back to ``output.path`` from the config;
        when neither is set nothing is written.
    config:
        Path to a YAML file or a pre-loaded
        :class:`~cloudhull.config.schema.ReconstructionConfig`. Defaults apply
        when omitted.
    search_radius:
        Optional override for the MLS search radius.

    Returns
    -------
    FileRunResult
        The reconstruction result, the path written (if any) and the resolved
        configuration.

    Raises
    ------
    ReconstructionError
        When the pipeline fails; no file is written in that case.
    """

    if config is None:
        cfg = ReconstructionConfig()
    elif isinstance(config, ReconstructionConfig):
        cfg = config.model_copy(deep=True)
    else:
        cfg = load_config(config)

    if search_radius is not None:
        if search_radius <= 0:
            raise ValueError(f"search_radius must be positive, got {search_radius}")
        cfg.smoothing = cfg.smoothing.model_copy(update={"search_radius": search_radius})

    out_path: Optional[Path] = None
    if output is not None:
        out_path = Path(output).resolve()
        ext = out_path.suffix.lower()
        if ext not in {".ply", ".npz"}:
            raise ValueError(f"Unsupported output extension '{ext}'")
        cfg.output.path = out_path
        cfg.output.format = ext.lstrip(".")
    elif cfg.output.path is not None:
        out_path = Path(cfg.output.path).resolve()
        if out_path.suffix.lower() != f".{cfg.output.format}":
            out_path = out_path.with_suffix(f".{cfg.output.format}")

    cloud = read_point_cloud(input_path)
    result = Reconstructor(cfg).run(cloud)

    if out_path is not None:
        write_mesh(result.mesh, out_path)

    return FileRunResult(result=result, output_path=out_path, config=cfg)
