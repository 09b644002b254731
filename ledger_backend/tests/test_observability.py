"""
Observability Tests.

Correlation IDs, tenant context in request and error logs, and engine
options per database backend.
"""

import logging

import pytest

from ledger_backend.app.core.config import settings
from ledger_backend.app.db.session import engine_options


@pytest.mark.asyncio
async def test_correlation_id_is_generated(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.headers["X-Correlation-ID"]
    assert float(response.headers["X-Process-Time"]) >= 0


@pytest.mark.asyncio
async def test_request_log_carries_tenant(client, caplog):
    caplog.set_level(logging.INFO, logger="ledger")

    response = await client.get("/health", headers={
        "X-Correlation-ID": "req-7f3a", "X-Company-ID": "1", "X-User-ID": "42",
    })

    assert response.headers["X-Correlation-ID"] == "req-7f3a"
    [record] = [r for r in caplog.records if r.name == "ledger" and r.correlation_id == "req-7f3a"]
    assert record.levelno == logging.INFO
    assert (record.company_id, record.user_id) == ("1", "42")
    assert (record.method, record.path, record.status_code) == ("GET", "/health", 200)
    assert record.getMessage() == "GET /health -> 200 [company=1 user=42]"


@pytest.mark.asyncio
async def test_anonymous_request_is_logged_without_tenant(client, caplog):
    caplog.set_level(logging.INFO, logger="ledger")

    await client.get("/health", headers={"X-Correlation-ID": "req-anon"})

    [record] = [r for r in caplog.records if r.name == "ledger" and r.correlation_id == "req-anon"]
    assert record.company_id is None
    assert record.user_id is None
    assert record.getMessage().endswith("[company=- user=-]")


@pytest.mark.asyncio
async def test_application_error_is_logged_with_request_context(client, company, caplog):
    caplog.set_level(logging.INFO, logger="ledger")
    cash, sales = company.ledgers["Cash-in-Hand"], company.ledgers["Sales"]

    response = await client.post(
        "/v1/accounting/journal-entries",
        headers={"X-Company-ID": "1", "X-User-ID": "42", "X-Correlation-ID": "req-unbalanced"},
        json={
            "entry_date": "2025-04-01",
            "narration": "Typo",
            "lines": [
                {"ledger_account_id": cash.id, "debit_amount": 1000},
                {"ledger_account_id": sales.id, "credit_amount": 100},
            ],
        },
    )

    assert response.status_code == 422
    [error] = [r for r in caplog.records if r.name == "ledger.errors"]
    assert error.levelno == logging.WARNING
    assert error.error_code == "ERR_JE_BALANCE"
    assert (error.correlation_id, error.company_id, error.user_id) == ("req-unbalanced", "1", "42")

    [request_log] = [r for r in caplog.records if r.name == "ledger"]
    assert request_log.levelno == logging.WARNING
    assert request_log.status_code == 422


def test_engine_options_size_server_pools():
    options = engine_options("postgresql+asyncpg://user:password@db:5432/ledger_db")

    assert options["pool_size"] == settings.db_pool_size
    assert options["max_overflow"] == settings.db_max_overflow
    assert options["pool_pre_ping"] is True


def test_engine_options_leave_sqlite_pool_alone():
    options = engine_options("sqlite+aiosqlite:///./ledger.db")

    assert "pool_size" not in options
    assert "max_overflow" not in options
    assert options["echo"] == settings.db_echo
