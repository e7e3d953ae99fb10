"""Main CLI application using Typer."""

import json
from pathlib import Path

import typer
from pydantic import ValidationError

from hotspotflow.core.utils import DeadlineExceeded

app = typer.Typer(help="Hotspotflow: KDE and Getis-Ord Gi* hotspot analysis")

_TABLE_FORMATS = {".parquet": "parquet", ".pq": "parquet", ".csv": "csv", ".json": "json"}
_RASTER_FORMATS = {".npz": "numpy", ".json": "json"}


def _format_for(path: Path, formats: dict[str, str], kind: str) -> str:
    try:
        return formats[path.suffix.lower()]
    except KeyError:
        typer.echo(
            f"Error: Unsupported {kind} output suffix '{path.suffix}' "
            f"(expected one of {sorted(formats)})",
            err=True,
        )
        raise typer.Exit(code=1) from None


@app.command()
def analyze(
    points: Path = typer.Argument(..., help="Points file (CSV, Parquet or JSON)"),
    config: Path | None = typer.Option(None, help="Path to analysis options YAML"),
    output: Path | None = typer.Option(None, help="Write the full result as JSON"),
    table: Path | None = typer.Option(None, help="Write Gi* results (.parquet/.csv/.json)"),
    raster: Path | None = typer.Option(None, help="Write the KDE raster (.npz/.json)"),
    lat_col: str = typer.Option("lat", help="Latitude column"),
    lng_col: str = typer.Option("lng", help="Longitude column"),
    value_col: str = typer.Option("value", help="Attribute column"),
) -> None:
    """
    Run KDE and Gi* hotspot analysis on a points file.

    Example:
        hotspotflow analyze incidents.csv --config options.yaml --table hotspots.parquet
    """
    from hotspotflow.core.adapters import RasterAdapter, TableAdapter
    from hotspotflow.core.analysis import analyze as run_analysis
    from hotspotflow.core.io import read_points
    from hotspotflow.core.schema import AnalysisOptions

    table_fmt = _format_for(table, _TABLE_FORMATS, "table") if table else None
    raster_fmt = _format_for(raster, _RASTER_FORMATS, "raster") if raster else None

    try:
        options = AnalysisOptions.from_yaml(config) if config else AnalysisOptions()
        records = read_points(points, lat_col=lat_col, lng_col=lng_col, value_col=value_col)
        result = run_analysis(records, options)
    except (FileNotFoundError, ValidationError, ValueError, DeadlineExceeded) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    summary = result.gi_star.summary
    typer.echo(f"Analyzed {len(result.points)} points")
    typer.echo(
        f"  KDE: {len(result.kde.grid)} grid cells, bandwidth {result.kde.bandwidth:.4f} km"
    )
    typer.echo(
        f"  Gi*: {summary.total_hotspots} hotspots, {summary.total_coldspots} coldspots, "
        f"{summary.not_significant} not significant "
        f"(threshold {summary.distance_threshold:.4f} km)"
    )

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
        typer.echo(f"Wrote result to {output}")

    if table and table_fmt:
        adapter = TableAdapter()
        adapter.serialize(adapter.convert(result), table, table_fmt)
        typer.echo(f"Wrote table to {table}")

    if raster and raster_fmt:
        raster_adapter = RasterAdapter()
        raster_adapter.serialize(raster_adapter.convert(result), raster, raster_fmt)
        typer.echo(f"Wrote raster to {raster}")


@app.command()
def validate(
    config: Path = typer.Argument(..., help="Path to analysis options YAML to validate"),
) -> None:
    """Validate an analysis options file."""
    from hotspotflow.core.schema import AnalysisOptions

    try:
        options = AnalysisOptions.from_yaml(config)
    except FileNotFoundError:
        typer.echo(f"Error: Config file not found: {config}", err=True)
        raise typer.Exit(code=1) from None
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"✓ Valid analysis configuration: {config}")
    for name, value in options.model_dump().items():
        typer.echo(f"  {name}: {value}")


@app.command()
def version() -> None:
    """Show hotspotflow version."""
    from hotspotflow import __version__

    typer.echo(f"hotspotflow version {__version__}")


if __name__ == "__main__":
    app()
