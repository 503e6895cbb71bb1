from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from ..config import ReconstructionConfig, load_config
from ..core.errors import ReconstructionError
from ..examples.synthetic import generate_cloud, write_cloud
from ..sdk.run import triangulate_file
from ..service.handler import handle_request

app = typer.Typer(help="cloudhull point cloud triangulation")
cloud_app = typer.Typer(help="Synthetic point cloud helpers")
app.add_typer(cloud_app, name="cloud")


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("cloudhull").setLevel(numeric)


def _resolve_config(config: Optional[Path]) -> ReconstructionConfig:
    return load_config(config) if config is not None else ReconstructionConfig()


@app.command("triangulate")
def triangulate(
    input_path: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="Point cloud (.npz/.ply/.xyz/.txt)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Mesh output path (extension sets format: .ply or .npz)."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, readable=True, help="YAML configuration file."),
    search_radius: Optional[float] = typer.Option(None, "--search-radius", "-r", help="Override the MLS search radius."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Reconstruct a convex mesh from a point cloud file."""

    cfg = _resolve_config(config)
    _configure_logging(log_level or cfg.log_level)

    if output is not None and output.suffix.lower() not in {".ply", ".npz"}:
        raise typer.BadParameter(f"Unsupported output extension '{output.suffix}'", param_hint="--output")
    if search_radius is not None and search_radius <= 0:
        raise typer.BadParameter("search radius must be positive.", param_hint="--search-radius")

    try:
        run = triangulate_file(input_path, output=output, config=cfg, search_radius=search_radius)
    except ReconstructionError as exc:
        typer.echo(f"Triangulation failed ({exc.kind}): {exc}", err=True)
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(f"Could not read {input_path}: {exc}", err=True)
        raise typer.Exit(code=1)

    mesh = run.result.mesh
    target = f" → {run.output_path}" if run.output_path is not None else ""
    typer.echo(
        f"Completed {run.result.hull_kind.value} mesh with {mesh.n_vertices} vertices and "
        f"{mesh.n_triangles} triangles from {run.result.stats['input_points']} points{target}"
    )


@app.command("request")
def request(
    request_path: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="JSON request with a 'points' list."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON response here instead of stdout."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, readable=True, help="YAML configuration file."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Answer a single triangulate request the way the service would."""

    cfg = _resolve_config(config)
    _configure_logging(log_level or cfg.log_level)

    with open(request_path, "r", encoding="utf-8") as f:
        try:
            body = json.load(f)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"Invalid JSON: {exc}", param_hint="REQUEST_PATH")

    response = handle_request(body, cfg)
    payload = response.model_dump_json(indent=2)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload, encoding="utf-8")
    else:
        typer.echo(payload)
    if not response.success:
        raise typer.Exit(code=1)


@cloud_app.command("generate")
def cloud_generate(
    output: Path = typer.Argument(..., help="Output point cloud path (.npz/.ply/.xyz)."),
    preset: str = typer.Option("sphere", "--preset", help="Synthetic preset (sphere, cube, tetrahedron, plane)."),
    count: int = typer.Option(500, "--count", help="Approximate number of points."),
    size: float = typer.Option(1.0, "--size", help="Extent scaling factor."),
    noise: float = typer.Option(0.0, "--noise", help="Gaussian noise sigma added to every coordinate."),
    seed: int = typer.Option(12345, "--seed", help="Random seed for the noise."),
) -> None:
    """Generate a synthetic point cloud useful for triangulation demos."""

    out = output.resolve()
    try:
        xyz = generate_cloud(preset, count=count, size=size, noise=noise, seed=seed)
        write_cloud(out, xyz)
    except ValueError as exc:
        raise typer.BadParameter(str(exc))
    typer.echo(f"Wrote {len(xyz)} points to {out}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
