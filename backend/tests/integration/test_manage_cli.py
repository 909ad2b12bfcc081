"""
Integration tests for the management CLI.
"""

import logging
from functools import partial

import pytest
from click.testing import CliRunner

import manage
from reservations.db.session import get_sessionmaker
from reservations.db.unit_of_work import UnitOfWork
from reservations.services.order_service import OrderService
from tests.fixtures.domain_fixtures import seed_clinic, seed_marketplace
from tests.fixtures.service_fixtures import FixedClock

pytestmark = pytest.mark.cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_database(tmp_path, monkeypatch):
    """Point the lazy engine at a fresh file database for the CLI."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level

    yield

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


def _init_db(runner):
    result = runner.invoke(manage.cli, ["--log-level", "WARNING", "init_db"])
    assert result.exit_code == 0, result.output
    return partial(UnitOfWork, get_sessionmaker())


def test_init_db(runner, cli_database):
    result = runner.invoke(manage.cli, ["--log-level", "WARNING", "init_db"])

    assert result.exit_code == 0
    assert "Tables created." in result.output


def test_calculate_commissions_for_all_vendors(runner, cli_database):
    uow_factory = _init_db(runner)
    seeded = seed_marketplace(uow_factory)
    OrderService(uow_factory, clock=FixedClock()).place_order(
        seeded.customer_id, seeded.product_id, 2
    )

    result = runner.invoke(
        manage.cli,
        ["--log-level", "WARNING", "calculate_commissions", "--month", "2024-05"],
    )

    assert result.exit_code == 0, result.output
    assert (
        f"vendor={seeded.vendor_id} month=2024-05 sales=500.00 commission=50.00"
        in result.output
    )
    assert (
        f"vendor={seeded.other_vendor_id} month=2024-05 sales=0.00 commission=0.00"
        in result.output
    )


def test_calculate_commissions_rejects_bad_month(runner, cli_database):
    uow_factory = _init_db(runner)
    seeded = seed_marketplace(uow_factory)

    result = runner.invoke(
        manage.cli,
        [
            "--log-level",
            "WARNING",
            "calculate_commissions",
            "--month",
            "May",
            "--vendor-id",
            str(seeded.vendor_id),
        ],
    )

    assert result.exit_code == 1
    assert "invalid: Month must be formatted as YYYY-MM" in result.output


def test_generate_bill(runner, cli_database):
    uow_factory = _init_db(runner)
    seeded = seed_clinic(uow_factory)

    result = runner.invoke(
        manage.cli,
        ["--log-level", "WARNING", "generate_bill", "--patient-id", str(seeded.patient_id)],
    )

    assert result.exit_code == 0, result.output
    assert f"generated for patient {seeded.patient_id}" in result.output


def test_generate_bill_for_unknown_patient(runner, cli_database):
    _init_db(runner)

    result = runner.invoke(
        manage.cli, ["--log-level", "WARNING", "generate_bill", "--patient-id", "9999"]
    )

    assert result.exit_code == 1
    assert "not_found: Patient not found" in result.output
