"""
Central pytest configuration for the reservation core tests.

Environment variables are set before any ``reservations`` module is
imported so configuration getters and the lazy engine see test values.
Fixtures live in ``tests/fixtures`` and markers in ``tests/config``; both
are loaded as plugins below.
"""

import os

# Test database configuration (set early so import-time config uses it)
TEST_DATABASE_URL = "sqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["TESTING"] = "true"
os.environ["TZ"] = "UTC"
os.environ["ALERT_SLOW_QUERY_ENABLED"] = "false"
os.environ.setdefault("LOCK_TIMEOUT_SECONDS", "5")

pytest_plugins = [
    "tests.config.markers",
    "tests.fixtures.database_fixtures",
    "tests.fixtures.domain_fixtures",
    "tests.fixtures.service_fixtures",
]
