"""Management commands for the barber scheduler."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

import click

from barber_scheduler.core.config import get_settings
from barber_scheduler.core.exceptions import SchedulingError
from barber_scheduler.db.session import SessionLocal, create_tables
from barber_scheduler.services.appointment_service import AppointmentService

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@click.group()
def cli() -> None:
    """Entry point for management commands."""


@cli.command("init-db")
def init_db() -> None:
    """Create all tables on the configured database."""
    create_tables()
    logging.info("Tables created.")


@cli.command("slots")
@click.argument("provider_id", type=int)
@click.argument("day", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--duration", type=int, default=None, help="Slot length in minutes.")
@click.option(
    "--all", "show_all", is_flag=True, help="Include slots that are already taken."
)
def slots(
    provider_id: int, day: datetime, duration: Optional[int], show_all: bool
) -> None:
    """Print the bookable slots of PROVIDER_ID on DAY (YYYY-MM-DD)."""
    target: date = day.date()
    session = SessionLocal()
    try:
        service = AppointmentService.from_session(session, get_settings())
        result = service.get_available_slots(provider_id, target, duration_minutes=duration)
    except SchedulingError as e:
        raise click.ClickException(e.message) from e
    finally:
        session.close()

    if not result:
        click.echo(f"Provider {provider_id} is not working on {target.isoformat()}.")
        return
    for slot in result:
        if slot.available or show_all:
            marker = "free" if slot.available else "taken"
            click.echo(f"{slot.start:%H:%M}-{slot.end:%H:%M}  {marker}")


if __name__ == "__main__":
    cli()
