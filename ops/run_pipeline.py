#!/usr/bin/env python3
"""
Voter Aggregates Pipeline with Click CLI

Drives the aggregation pipeline from files on disk: reads a voter file
(JSON or CSV), optionally a county census record and a precinct boundary
file, and writes the dashboard payload as JSON.

Usage:
    voter-aggregates aggregate voters.json
    voter-aggregates aggregate voters.csv --census census.json --output dashboard.json

    # Processing overrides:
    voter-aggregates aggregate voters.csv --chunk-size 2000 --workers 8

    # Check input files before running:
    voter-aggregates validate voters.json --boundaries precincts.geojson

    # Verbose logging:
    voter-aggregates --verbose aggregate voters.json
"""

import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

import click
import pandas as pd
import yaml  # type: ignore[import-untyped]
from loguru import logger

from aggregation import run_pipeline, validate_geo_data, validate_voter_data
from aggregation.boundaries import load_boundary_precinct_ids
from aggregation.exceptions import AggregationError
from ops.config_loader import Config, load_config


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        log_file: Also log to this file (rotated at 10 MB, kept for a week)
    """
    # Remove default logger
    logger.remove()

    if verbose:
        log_level = "DEBUG"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_level = "INFO"
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(sys.stderr, format=log_format, level=log_level, colorize=True)

    if log_file:
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",  # Rotate when file gets large
            retention="7 days",  # Keep logs for a week
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")


def handle_critical_error(error: Exception, context: str = "") -> None:
    """Log a fatal error with its details before the CLI exits."""
    prefix = f"{context}: " if context else ""
    logger.critical(f"💥 {prefix}{error}")
    if isinstance(error, AggregationError) and error.details:
        for key, value in error.details.items():
            logger.debug(f"  {key}: {value}")


def load_json_file(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_voter_file(path: Path) -> Any:
    """
    Read a voter file.

    CSV files are read with pandas, every column as text so that flags such
    as "1" / "0" reach the field normalizer unchanged. JSON files may hold
    an array of voters or an object with a "voters" array.
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        logger.info(f"📂 Loaded {len(df):,} rows from {path.name}")
        return df
    if suffix == ".json":
        data = load_json_file(path)
        logger.info(f"📂 Loaded {path.name}")
        return data
    raise click.BadParameter(f"Unsupported voter file type: {path.suffix}", param_hint="VOTERS")


def write_output(payload: Dict[str, Any], output_path: Optional[Path]) -> None:
    text = json.dumps(payload, indent=2)
    if output_path is None:
        click.echo(text)
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    logger.success(f"💾 Saved dashboard data to {output_path}")


# Main CLI group
@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to config.yaml (default: VOTER_AGGREGATES_CONFIG, ./config.yaml, ops/config.yaml)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, config_path, verbose, log_file):
    """
    Voter Aggregates: precinct-level dashboard data from voter files.

    \b
    Examples:
      voter-aggregates aggregate voters.json                      # Print dashboard JSON
      voter-aggregates aggregate voters.csv -o dashboard.json     # Save to file
      voter-aggregates aggregate voters.csv --census census.json  # Add census estimates
      voter-aggregates validate voters.json                       # Diagnose input files
    """
    # Set up logging first, before anything else
    setup_logging(verbose=verbose, log_file=log_file)

    try:
        config = load_config(config_path)
    except (AggregationError, OSError, yaml.YAMLError) as e:
        handle_critical_error(e, "Configuration error")
        logger.info("💡 Make sure config.yaml exists and is valid")
        ctx.exit(1)

    config.print_config_summary()
    ctx.obj = config


@cli.command("aggregate")
@click.argument("voters_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--census",
    "census_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="County census record (JSON object or ACS response rows)",
)
@click.option(
    "--boundaries",
    "boundaries_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Precinct boundary file (GeoJSON, shapefile, ...)",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write dashboard JSON here instead of stdout",
)
@click.option("--chunk-size", type=click.IntRange(min=1), help="Override processing.chunk_size")
@click.option("--workers", type=click.IntRange(min=1), help="Override processing.max_workers")
@click.pass_context
def aggregate_command(ctx, voters_path, census_path, boundaries_path, output_path, chunk_size, workers):
    """Aggregate a voter file into dashboard data."""
    config: Config = ctx.obj
    if chunk_size:
        config.add_override("processing.chunk_size", chunk_size)
    if workers:
        config.add_override("processing.max_workers", workers)

    start = time.time()
    logger.info("🗳️ Voter Aggregates Pipeline")

    try:
        voter_data = load_voter_file(voters_path)
        census = load_json_file(census_path) if census_path else None
        boundary_ids = load_boundary_precinct_ids(boundaries_path) if boundaries_path else None

        dashboard = run_pipeline(voter_data, census=census, config=config, boundary_ids=boundary_ids)
    except (AggregationError, OSError, RuntimeError, ValueError) as e:
        handle_critical_error(e, "Pipeline failed")
        ctx.exit(1)

    write_output(dashboard.to_dict(), output_path)
    logger.success(f"🎉 Pipeline complete in {time.time() - start:.1f}s")


@cli.command("validate")
@click.argument("voters_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--boundaries",
    "boundaries_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="GeoJSON boundary file to check",
)
@click.pass_context
def validate_command(ctx, voters_path, boundaries_path):
    """Check voter data (and boundaries) without processing them."""
    try:
        voter_data = load_voter_file(voters_path)
        geo_data = load_json_file(boundaries_path) if boundaries_path else None
    except (OSError, ValueError) as e:
        handle_critical_error(e, "Could not read input")
        ctx.exit(1)

    if isinstance(voter_data, pd.DataFrame):
        voter_data = voter_data.to_dict("records")

    reports = {"voter_data": validate_voter_data(voter_data)}
    if boundaries_path:
        reports["geo_data"] = validate_geo_data(geo_data)

    is_valid = all(report.is_valid for report in reports.values())
    for name, report in reports.items():
        status = "✅" if report.is_valid else "❌"
        logger.info(f"{status} {name}")
        for issue, recommendation in zip(report.issues, report.recommendations):
            logger.warning(f"  ⚠️ {issue}")
            logger.info(f"  💡 {recommendation}")

    payload = {name: report.to_dict() for name, report in reports.items()}
    payload["is_valid"] = is_valid
    click.echo(json.dumps(payload, indent=2))

    if not is_valid:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
