"""Main CLI entry point."""

import random
from datetime import date
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="casino",
    help="Casino ledger analytics and seeding CLI",
    add_completion=False,
)

console = Console()


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD option."""
    from casino.services._helpers import parse_iso_date
    from casino.services.errors import InvalidArgumentError

    try:
        return parse_iso_date(value)
    except InvalidArgumentError:
        raise typer.BadParameter(f"Invalid date '{value}'. Expected format: YYYY-MM-DD")


@app.command()
def init_db(
    force: bool = typer.Option(False, "--force", "-f", help="Drop and recreate tables"),
):
    """Initialize the database schema."""
    from db.connection import init_database

    with console.status("Initializing database..."):
        init_database(drop_existing=force)
    if force:
        console.print("[yellow]Dropped existing tables[/yellow]")
    console.print("[green]Database initialized successfully[/green]")


@app.command()
def seed(
    rounds: Optional[int] = typer.Option(None, "--rounds", "-r", help="Rounds to generate"),
    users: Optional[int] = typer.Option(None, "--users", "-u", help="Distinct users"),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", "-b", help="Rounds per insert"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Insert worker threads"),
    max_in_flight: Optional[int] = typer.Option(
        None, "--max-in-flight", help="Batches queued or running at once"
    ),
    random_seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Seed for reproducible ids, amounts and offsets (timestamps stay relative to now)",
    ),
):
    """Populate the ledger with synthetic wager/payout rounds."""
    from config import get_settings
    from casino.services._helpers import new_id, seeded_id_factory
    from casino.services.errors import FatalLoadFailureError, InvalidArgumentError
    from casino.services.generator import TransactionGenerator
    from casino.services.loader import BatchLoader, LedgerWriter
    from db.connection import get_session_factory, init_database

    cfg = get_settings().seed
    seed_value = random_seed if random_seed is not None else cfg.random_seed
    rng = random.Random(seed_value)
    id_factory = seeded_id_factory(rng) if seed_value is not None else new_id

    init_database()
    generator = TransactionGenerator(
        rng=rng,
        wager_min=cfg.wager_min,
        wager_max=cfg.wager_max,
        payout_min_multiplier=cfg.payout_min_multiplier,
        payout_max_multiplier=cfg.payout_max_multiplier,
        id_factory=id_factory,
    )

    try:
        loader = BatchLoader(
            LedgerWriter(get_session_factory()),
            generator=generator,
            max_workers=workers if workers is not None else cfg.max_workers,
            max_in_flight=max_in_flight if max_in_flight is not None else cfg.max_in_flight,
            rng=rng,
            id_factory=id_factory,
        )
        with console.status("Seeding ledger..."):
            result = loader.load(
                total_rounds=rounds if rounds is not None else cfg.num_rounds,
                user_pool_size=users if users is not None else cfg.num_users,
                batch_size=batch_size if batch_size is not None else cfg.batch_size,
            )
    except InvalidArgumentError as e:
        raise typer.BadParameter(str(e))
    except FatalLoadFailureError as e:
        console.print(f"[red]Load failed:[/red] {e}")
        if e.__cause__ is not None:
            console.print(f"  cause: {e.__cause__}")
        raise typer.Exit(1)

    table = Table(title="Seeding Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Run ID", result.run_id)
    table.add_row("Rounds Generated", str(result.rounds_generated))
    table.add_row("Events Inserted", str(result.events_inserted))
    table.add_row("Batches", str(result.batches_dispatched))
    table.add_row("Partial Flushes", str(result.partial_flushes))
    table.add_row("Duration (s)", f"{result.duration_seconds:.2f}")
    console.print(table)


@app.command()
def ggr(
    from_date: str = typer.Option(..., "--from", help="Start date (YYYY-MM-DD)"),
    to_date: str = typer.Option(..., "--to", help="End date (YYYY-MM-DD)"),
):
    """Show gross gaming revenue per currency."""
    from casino.services.errors import InvalidArgumentError, StoreUnavailableError
    from casino.services.revenue import RevenueService
    from db.connection import get_session

    start, end = parse_date(from_date), parse_date(to_date)
    try:
        with get_session() as session:
            rows = RevenueService(session).compute_ggr(start, end)
    except InvalidArgumentError as e:
        raise typer.BadParameter(str(e))
    except StoreUnavailableError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not rows:
        console.print("[yellow]No transactions in range[/yellow]")
        return

    table = Table(title=f"Gross Gaming Revenue {start} to {end}")
    table.add_column("Currency", style="cyan")
    table.add_column("Wagered", justify="right")
    table.add_column("Paid Out", justify="right")
    table.add_column("GGR", justify="right", style="green")
    table.add_column("GGR (USD)", justify="right", style="green")
    for row in rows:
        table.add_row(
            row.currency,
            str(row.total_wagered),
            str(row.total_payout),
            str(row.ggr),
            str(row.ggr_usd),
        )
    console.print(table)


@app.command()
def volume(
    from_date: str = typer.Option(..., "--from", help="Start date (YYYY-MM-DD)"),
    to_date: str = typer.Option(..., "--to", help="End date (YYYY-MM-DD)"),
):
    """Show daily wagered volume per currency."""
    from casino.services.errors import InvalidArgumentError, NoDataError, StoreUnavailableError
    from casino.services.volume import VolumeService
    from db.connection import get_session

    start, end = parse_date(from_date), parse_date(to_date)
    try:
        with get_session() as session:
            rows = VolumeService(session).compute_daily_volume(start, end)
    except InvalidArgumentError as e:
        raise typer.BadParameter(str(e))
    except NoDataError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return
    except StoreUnavailableError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Daily Wager Volume {start} to {end}")
    table.add_column("Day", style="cyan")
    table.add_column("Currency")
    table.add_column("Amount", justify="right")
    table.add_column("USD", justify="right", style="green")
    for row in rows:
        table.add_row(row.day, row.currency, str(row.total_amount), str(row.total_usd_amount))
    console.print(table)


@app.command()
def percentile(
    user_id: str = typer.Argument(..., help="User identifier (UUID)"),
    from_date: str = typer.Option(..., "--from", help="Start date (YYYY-MM-DD)"),
    to_date: str = typer.Option(..., "--to", help="End date (YYYY-MM-DD)"),
):
    """Show a user's percentile rank by USD wagered."""
    from casino.services.errors import (
        InvalidArgumentError,
        NotFoundError,
        StoreUnavailableError,
    )
    from casino.services.percentile import PercentileService
    from db.connection import get_session

    start, end = parse_date(from_date), parse_date(to_date)
    try:
        with get_session() as session:
            result = PercentileService(session).compute_user_percentile(user_id, start, end)
    except InvalidArgumentError as e:
        raise typer.BadParameter(str(e))
    except NotFoundError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)
    except StoreUnavailableError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"User [cyan]{result.user_id}[/cyan]: rank {result.rank} of {result.total_users}, "
        f"[green]{result.percentile:.2f}th percentile[/green] "
        f"(${result.total_usd_amount} wagered)"
    )


if __name__ == "__main__":
    app()
