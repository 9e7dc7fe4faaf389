import functools
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from vecload.core.errors import ConfigurationError, VecloadError
from vecload.core.registry import build_registry
from vecload.core.settings import Settings, build_generator_config, build_run_config, require_connection
from vecload.version import __version__

console = Console()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=False, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def handle_errors(func):
    """Convierte errores de vecload en un mensaje rojo y exit code 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except VecloadError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise click.exceptions.Exit(1)
    return wrapper


def load_config(config_path, overrides: dict) -> dict:
    config = Settings(user_config=config_path).load(overrides)
    setup_logging(config.get("log_level") or "INFO")
    return config


@click.group()
@click.version_option(__version__, prog_name="vecload")
@click.pass_context
def main(ctx):
    """vecload: synthetic data and workload simulator for PostgreSQL + pgvector"""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("registry", build_registry())


@main.command()
@click.pass_context
def apps(ctx):
    """List the available applications."""
    table = Table(title="Applications")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("pgvector", justify="center")
    table.add_column("Description", style="dim")

    for workload in ctx.obj["registry"]:
        table.add_row(workload.name, workload.workload_type,
                      "yes" if workload.requires_vector_extension else "no",
                      workload.description)
    console.print(table)


@main.command()
@click.argument("app")
@click.pass_context
@handle_errors
def queries(ctx, app):
    """Show the query mix of an application."""
    workload = ctx.obj["registry"].get(app)
    query_defs = workload.get_queries()
    total = sum(q.weight for q in query_defs)

    table = Table(title=f"Queries: {workload.name}")
    table.add_column("Query", style="cyan")
    table.add_column("Kind")
    table.add_column("Weight", justify="right")
    table.add_column("Probability", justify="right")
    table.add_column("Description", style="dim")

    for q in query_defs:
        table.add_row(q.name, q.kind.value, str(q.weight), f"{q.weight / total:.1%}", q.description)
    console.print(table)


@main.command()
@click.argument("app")
@click.option("--connection", "-c", help="PostgreSQL connection string")
@click.option("--size", "-s", help="Target data size (e.g. 500MB, 5GB)")
@click.option("--embedding-mode", type=click.Choice(["random", "openai", "vectorizer"]))
@click.option("--embedding-dimensions", type=int)
@click.option("--vectorizer-url")
@click.option("--openai-api-key")
@click.option("--seed", type=int, help="Seed for reproducible data")
@click.option("--drop-existing", is_flag=True, help="Drop an existing schema first")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML config file")
@click.option("--log-level")
@click.pass_context
@handle_errors
def init(ctx, app, connection, size, embedding_mode, embedding_dimensions, vectorizer_url,
         openai_api_key, seed, drop_existing, config_path, log_level):
    """Create the schema of APP and fill it with generated data."""
    from vecload.core.database import (PooledDatabase, connect_pool, drop_metadata,
                                       get_metadata_value, has_extension, save_metadata)
    from vecload.core.estimator import format_size

    config = load_config(config_path, {
        "log_level": log_level,
        "connection": connection,
        "init": {
            "size": size,
            "embedding_mode": embedding_mode,
            "embedding_dimensions": embedding_dimensions,
            "seed": seed,
            "drop_existing": True if drop_existing else None,
        },
        "embeddings": {"vectorizer_url": vectorizer_url, "openai_api_key": openai_api_key},
    })

    registry = ctx.obj["registry"]
    workload = registry.get(app)
    gen_config = build_generator_config(config)
    conninfo = require_connection(config)

    calc, plan = workload.plan(gen_config.target_size, gen_config.embedding_dimensions)
    console.print(
        f"[yellow]Planning {workload.name}:[/yellow] target {format_size(gen_config.target_size)} | "
        f"~{sum(plan.values()):,} rows | estimated {format_size(calc.estimated_size(plan))}")

    pool = connect_pool(conninfo, max_size=2, application_name="vecload init")
    try:
        db = PooledDatabase(pool)

        if workload.requires_vector_extension and not has_extension(db, "vector"):
            raise ConfigurationError(
                f"{workload.name} requires the pgvector extension, which is not available on this server")

        existing = get_metadata_value(db, "app")
        if existing:
            if not config["init"].get("drop_existing"):
                raise ConfigurationError(
                    f"database already initialized for '{existing}' (use --drop-existing to replace it)")
            console.print(f"[yellow]Dropping existing schema for {existing}...[/yellow]")
            previous = registry.get(existing) if existing in registry else workload
            previous.drop_schema(db)
            drop_metadata(db)

        workload.configure(gen_config)
        workload.create_schema(db)

        with console.status(f"[bold green]Generating {workload.name} data...[/bold green]", spinner="dots"):
            written = workload.generate_data(db, gen_config)

        save_metadata(db, workload.name, str(config["init"]["size"]), extra={
            "embedding_mode": gen_config.embedding_mode.value,
            "embedding_dimensions": gen_config.embedding_dimensions,
        })
    finally:
        pool.close()

    table = Table(title="Generated data")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")
    for name, count in written.items():
        table.add_row(name, f"{count:,}")
    console.print(table)
    console.print(Panel(f"✅ {workload.name} initialized ({format_size(gen_config.target_size)} target)",
                        style="bold green"))


@main.command()
@click.argument("app")
@click.option("--connection", "-c", help="PostgreSQL connection string")
@click.option("--connections", "-n", type=int, help="Concurrent workers")
@click.option("--duration", "-d", type=float, help="Minutes to run (0 = until Ctrl+C)")
@click.option("--connection-mode", type=click.Choice(["pool", "session"]))
@click.option("--report-interval", type=float, help="Seconds between reports")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Save the summary (.parquet or .csv)")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML config file")
@click.option("--log-level")
@click.pass_context
@handle_errors
def run(ctx, app, connection, connections, duration, connection_mode, report_interval, output,
        config_path, log_level):
    """Run the query workload of APP against an initialized database."""
    from vecload.core.database import PooledDatabase, connect_pool, connect_single, get_all_metadata
    from vecload.core.runner import ConnectionMode, WorkloadRunner
    from vecload.core.system import MemoryGuard
    from vecload.sinks.definitions import SinkFactory

    config = load_config(config_path, {
        "log_level": log_level,
        "connection": connection,
        "run": {
            "connections": connections,
            "duration": duration,
            "connection_mode": connection_mode,
            "report_interval": report_interval,
            "output": output,
        },
    })

    workload = ctx.obj["registry"].get(app)
    run_config = build_run_config(config)
    conninfo = require_connection(config)

    pool = connect_pool(conninfo, max_size=run_config.connections, application_name="vecload")
    try:
        metadata = get_all_metadata(PooledDatabase(pool))
        if metadata.get("app") != workload.name:
            found = metadata.get("app") or "nothing"
            raise ConfigurationError(
                f"database is initialized for {found}, not {workload.name} (run 'vecload init {workload.name}' first)")

        # Query vectors must match the stored column dimensions
        init_overrides = {"embedding_dimensions": int(metadata.get("embedding_dimensions", 384))}
        if metadata.get("embedding_mode"):
            init_overrides["embedding_mode"] = metadata["embedding_mode"]
        workload.configure(build_generator_config(
            Settings.merge_configs(config, {"init": init_overrides})))

        if run_config.connection_mode is ConnectionMode.POOL:
            runner = WorkloadRunner(workload, run_config, pool=pool)
        else:
            runner = WorkloadRunner(
                workload, run_config,
                connect=lambda n: connect_single(conninfo, application_name=f"vecload client {n}"))

        console.print(
            f"[bold green]Running {workload.name}[/bold green] with {run_config.connections} "
            f"{run_config.connection_mode.value} connections"
            + (f" for {run_config.duration:g} min" if run_config.duration else " (Ctrl+C to stop)"))
        try:
            stats = runner.run()
        except KeyboardInterrupt:
            console.print("[yellow]Interrupted, stopping workers...[/yellow]")
            stats = runner.stats
    finally:
        pool.close()

    summary = stats.to_frame()
    totals = stats.totals()

    table = Table(title=f"Workload summary: {workload.name}")
    for col in ["query", "count", "errors", "share_pct", "avg_ms", "max_ms"]:
        table.add_column(col, justify="left" if col == "query" else "right",
                         style="cyan" if col == "query" else None)
    for row in summary.iter_rows(named=True):
        table.add_row(row["query"], f"{row['count']:,}", f"{row['errors']:,}",
                      f"{row['share_pct']:.1f}", f"{row['avg_ms']:.2f}", f"{row['max_ms']:.2f}")
    console.print(table)

    failing = summary.filter(summary["errors"] > 0)
    for row in failing.iter_rows(named=True):
        console.print(f"[red]{row['query']}[/red]: {row['errors']} errors, last: {row['last_error']}")

    if config["run"].get("output"):
        path = SinkFactory.for_path(config["run"]["output"]).write(workload.name, summary)
        console.print(f"📂 Summary saved to [blue]{path}[/blue]")

    console.print(Panel(
        f"{totals['total']:,} queries | {totals['failed']:,} failed | avg {totals['avg_ms']:.2f} ms\n"
        f"[dim]Peak client RAM: {MemoryGuard.peak_rss_mb():.0f} MB | "
        f"peak host RAM usage: {MemoryGuard.peak_system_pct():.0f}%[/dim]",
        style="bold green"))


@main.command()
@click.argument("app")
@click.option("--connection", "-c", help="PostgreSQL connection string")
@click.option("--force", "-f", is_flag=True, help="Do not ask for confirmation")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML config file")
@click.pass_context
@handle_errors
def clean(ctx, app, connection, force, config_path):
    """Drop the schema and metadata of APP."""
    from vecload.core.database import PooledDatabase, connect_pool, drop_metadata

    config = load_config(config_path, {"connection": connection})
    workload = ctx.obj["registry"].get(app)
    conninfo = require_connection(config)

    console.print(f"[bold red]All {workload.name} tables will be dropped.[/bold red]")
    if not force and not Confirm.ask("Are you sure?"):
        return

    pool = connect_pool(conninfo, max_size=1, application_name="vecload clean")
    try:
        db = PooledDatabase(pool)
        workload.drop_schema(db)
        drop_metadata(db)
    finally:
        pool.close()
    console.print(f"[green]{workload.name} schema dropped.[/green]")


if __name__ == "__main__":
    main()
