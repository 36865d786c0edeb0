from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import typer

from backend.table_loader import TableLoader, missing_columns
from config.facet_config import FacetConfig, load_facet_config
from core.dependencies import DependencyContainer
from core.errors import ConfigError, QueryExecutionError
from utils.logger_setup import setup_logging

logger = setup_logging(logger_name="singletablefacets_cli", console_output=False)

app = typer.Typer(
    name="singletablefacets",
    help="CLI tool to load, check and query a single-table faceted search.",
    add_completion=False
)

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to the facet configuration TOML file. Defaults to $SINGLETABLEFACETS_CONFIG or ./singletablefacets.toml."
)
DB_OPTION = typer.Option(
    None,
    "--db",
    help="DuckDB database file. Defaults to the 'database file' configuration key."
)


def _load_config(config_path: Optional[Path]) -> FacetConfig:
    try:
        return load_facet_config(config_path)
    except ConfigError as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _parse_param_options(values: List[str]) -> Dict[str, List[str]]:
    """Turn repeated ``key=value`` options into a query mapping."""
    raw: Dict[str, List[str]] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            typer.secho(f"Ignoring malformed parameter '{item}', expected key=value", fg=typer.colors.YELLOW, err=True)
            continue
        raw.setdefault(key, []).append(value)
    return raw


@app.command()
def load(
    source: Path = typer.Argument(..., help="CSV or Parquet file to load into the search table."),
    config: Optional[Path] = CONFIG_OPTION,
    db: Optional[Path] = DB_OPTION,
):
    """
    Replace the search table with the contents of a CSV or Parquet file.
    """
    facet_config = _load_config(config)
    db_path = db or facet_config.get_db_path()
    loader = TableLoader(db_path, logger)
    try:
        count = loader.load_file(source, facet_config.table_name)
    except (ValueError, QueryExecutionError) as e:
        typer.secho(f"Error loading {source}: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.secho(f"Loaded {count} rows into '{facet_config.table_name}' at {db_path}.", fg=typer.colors.GREEN)


@app.command("check-config")
def check_config(
    config: Optional[Path] = CONFIG_OPTION,
    db: Optional[Path] = DB_OPTION,
):
    """
    Validate the configuration and, when the database exists, its columns.
    """
    facet_config = _load_config(config)
    typer.echo(f"Table: {facet_config.table_name}")
    typer.echo(f"Facets: {', '.join(facet_config.facet_names)}")
    typer.echo(f"Page size: {facet_config.page_size}")

    db_path = db or facet_config.get_db_path()
    if not db_path.exists():
        typer.secho(f"Database {db_path} not found; skipping column check.", fg=typer.colors.YELLOW)
        return

    try:
        missing = missing_columns(facet_config, TableLoader(db_path, logger))
    except QueryExecutionError as e:
        typer.secho(f"Could not inspect table '{facet_config.table_name}': {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    if missing:
        typer.secho(f"Columns missing from '{facet_config.table_name}': {', '.join(missing)}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.secho("Configuration OK.", fg=typer.colors.GREEN)


@app.command()
def search(
    param: List[str] = typer.Option(
        [],
        "--param",
        "-p",
        help="Query parameter as key=value; repeat for several values, e.g. -p state=TX -p keys=fraud."
    ),
    config: Optional[Path] = CONFIG_OPTION,
    db: Optional[Path] = DB_OPTION,
    show_sql: bool = typer.Option(False, "--show-sql", help="Print the generated SQL and bound parameters."),
):
    """
    Run a search and print the result rows and facet counts.
    """
    container = DependencyContainer(config_path=config, db_path=db, logger_name="singletablefacets_cli")
    try:
        facet_config = container.config
    except ConfigError as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    params = container.parameter_store.parse(_parse_param_options(param))
    executor = container.executor

    if show_sql:
        for key, query in executor.build_queries(params).items():
            typer.echo(f"-- {key}\n{query.sql}\n-- params: {query.params}\n")

    try:
        result = executor.search(params)
    except QueryExecutionError as e:
        typer.secho(f"Search failed ({e.category.value}): {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo(f"{result.total_rows} matching rows (page {params.page + 1} of {result.page_count})")
    if result.is_empty:
        typer.echo(facet_config.no_results_message)
    else:
        typer.echo(pd.DataFrame(result.rows).to_string(index=False))

    for facet in facet_config.facet_names:
        entries = result.facet_counts.get(facet, [])
        if entries:
            counts = ", ".join(f"{entry.value} ({entry.count})" for entry in entries)
            typer.echo(f"{facet_config.facet_label(facet)}: {counts}")


if __name__ == "__main__":
    app()
