"""Management commands for the reservation backend."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

import click

from reservations.core import config
from reservations.core.exceptions import ReservationError
from reservations.core.logging_config import setup_logging
from reservations.db.session import create_tables
from reservations.services.billing_service import BillingService
from reservations.services.commission_service import CommissionService

logger = logging.getLogger(__name__)


@click.group()
@click.option("--log-level", default=None, help="Overrides LOG_LEVEL.")
def cli(log_level: Optional[str]) -> None:
    """Entry point for management commands."""
    setup_logging(
        log_level=log_level or config.get_log_level(),
        log_to_file=config.get_log_to_file(),
        use_json_format=config.get_log_json(),
    )
    config.log_config()


@cli.command("init_db")
def init_db() -> None:
    """Create all tables in the configured database."""
    create_tables()
    click.echo("Tables created.")


@cli.command("calculate_commissions")
@click.option(
    "--month",
    default=None,
    help="Month as YYYY-MM. Defaults to the previous calendar month.",
)
@click.option("--vendor-id", type=int, default=None, help="Only this vendor.")
def calculate_commissions(month: Optional[str], vendor_id: Optional[int]) -> None:
    """Calculate monthly commissions for one vendor or all of them."""
    month = month or _previous_month()
    service = CommissionService()
    try:
        if vendor_id is not None:
            records = [service.calculate_commission(vendor_id, month)]
        else:
            records = service.calculate_all(month)
    except ReservationError as e:
        raise click.ClickException(f"{e.kind.value}: {e.message}")

    for record in records:
        click.echo(
            f"vendor={record.vendor_id} month={record.month} "
            f"sales={record.total_sales} commission={record.commission_amount}"
        )


@cli.command("generate_bill")
@click.option("--patient-id", type=int, required=True, help="Patient to bill.")
def generate_bill(patient_id: int) -> None:
    """Generate a bill for the patient's treatments to date."""
    try:
        bill_id = BillingService().generate_bill(patient_id)
    except ReservationError as e:
        raise click.ClickException(f"{e.kind.value}: {e.message}")
    click.echo(f"Bill {bill_id} generated for patient {patient_id}.")


def _previous_month() -> str:
    today = datetime.now(config.APP_TZ)
    if today.month == 1:
        return f"{today.year - 1}-12"
    return f"{today.year}-{today.month - 1:02d}"


if __name__ == "__main__":
    cli()
