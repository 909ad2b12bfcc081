import itertools
from typing import Any, Dict, List

import pytest
from sqlalchemy import create_engine, text

from reservations.core import db as slow_db


@pytest.fixture(autouse=True)
def enable_alerts(monkeypatch):
    monkeypatch.setenv("ALERT_SLOW_QUERY_ENABLED", "true")
    monkeypatch.setenv("ALERT_QUERY_MS_THRESHOLD", "50")


@pytest.fixture
def instrumented_engine():
    engine = create_engine("sqlite:///:memory:")
    slow_db.register_query_timing(engine)
    return engine


def _capture_logger_calls(monkeypatch) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []

    def record_warning(message: str, *args, **kwargs):
        records.append(
            {
                "message": message,
                "context": kwargs.get("extra", {}).get("context"),
            }
        )

    monkeypatch.setattr(slow_db.logger, "warning", record_warning)
    return records


def test_slow_query_alert_payload(monkeypatch, instrumented_engine):
    records = _capture_logger_calls(monkeypatch)
    perf_values = itertools.cycle([1.0, 1.25])
    monkeypatch.setattr(slow_db.time, "perf_counter", lambda: next(perf_values))

    with instrumented_engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    assert len(records) == 1
    payload = records[0]["context"]
    assert payload["alert_type"] == "slow_query"
    assert payload["duration_ms"] == 250.0
    assert payload["statement"] == "SELECT 1"
    assert payload["context"]["db_name"] == ":memory:"


def test_mask_sensitive_parameters(monkeypatch, instrumented_engine):
    records = _capture_logger_calls(monkeypatch)
    perf_values = itertools.cycle([1.0, 1.2])
    monkeypatch.setattr(slow_db.time, "perf_counter", lambda: next(perf_values))

    with instrumented_engine.connect() as conn:
        conn.execute(
            text("SELECT :email AS email, :password AS password, :qty AS qty"),
            {"email": "user@example.com", "password": "supersecret", "qty": 3},
        )

    assert len(records) == 1
    params = records[0]["context"]["params"]
    assert params["email"] == "***"
    assert params["password"] == "***"
    assert params["qty"] == "3"


def test_threshold_reflects_environment(monkeypatch, instrumented_engine):
    records = _capture_logger_calls(monkeypatch)
    perf_values = iter([1.0, 1.1, 2.0, 2.1])
    monkeypatch.setattr(slow_db.time, "perf_counter", lambda: next(perf_values))

    monkeypatch.setenv("ALERT_QUERY_MS_THRESHOLD", "150")
    with instrumented_engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    assert not records

    monkeypatch.setenv("ALERT_QUERY_MS_THRESHOLD", "50")
    with instrumented_engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    assert len(records) == 1


def test_disabled_alerts_emit_nothing(monkeypatch, instrumented_engine):
    records = _capture_logger_calls(monkeypatch)
    monkeypatch.setenv("ALERT_SLOW_QUERY_ENABLED", "false")
    perf_values = itertools.cycle([1.0, 5.0])
    monkeypatch.setattr(slow_db.time, "perf_counter", lambda: next(perf_values))

    with instrumented_engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    assert not records


def test_registration_is_idempotent(monkeypatch, instrumented_engine):
    records = _capture_logger_calls(monkeypatch)
    slow_db.register_query_timing(instrumented_engine)
    perf_values = itertools.cycle([1.0, 1.25])
    monkeypatch.setattr(slow_db.time, "perf_counter", lambda: next(perf_values))

    with instrumented_engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    assert len(records) == 1
