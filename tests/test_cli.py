"""Tests for the biller CLI."""

import json
import sqlite3
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

import cli
import store as store_mod
from errors import CancellationError
from store import BillingAccount, Lease, Order, SpendStore

UTC = timezone.utc
START = datetime(2020, 1, 1, tzinfo=UTC)
END = datetime(2020, 1, 30, tzinfo=UTC)


@pytest.fixture
def seeded(tmp_path, monkeypatch):
    db_file = str(tmp_path / "cli_biller.db")
    monkeypatch.setenv("BILLER_DB_PATH", db_file)
    store = SpendStore(backend="sqlite")
    monkeypatch.setattr(store_mod, "_store", store)
    store.create_billing_account(BillingAccount("ba-1", START - timedelta(days=1)))
    store.create_order(Order("ord-1", "ba-1", "proj-1", price_hr=100.0))
    store.create_lease(Lease("l-1", "ord-1", START, START + timedelta(days=1), price_hr=100.0))
    return store


class _FailingStore:
    def __init__(self, exc):
        self.exc = exc

    def list_all_billing_accounts(self, ctx):
        raise self.exc


class TestParseTime:
    def test_date_is_utc_midnight(self):
        assert cli._parse_time("2020-01-01") == START

    def test_offset_kept(self):
        dt = cli._parse_time("2020-01-01T05:00:00+05:00")
        assert dt == START

    def test_garbage(self):
        with pytest.raises(Exception):
            cli._parse_time("first of january")


class TestRunCommand:
    def test_run_prints_totals(self, seeded, capsys):
        cli.main(["run", "--start", "2020-01-01", "--end", "2020-01-30"])
        out = capsys.readouterr().out
        assert "ba-1" in out
        assert "2400" in out

    def test_run_json(self, seeded, capsys):
        cli.main(["run", "--start", "2020-01-01", "--end", "2020-01-30", "--json"])
        data = json.loads(capsys.readouterr().out)
        assert Decimal(data[0]["spend"]) == Decimal("2400")
        assert Decimal(data[0]["projects"]["proj-1"]["orders"]["ord-1"]) == Decimal("2400")

    def test_run_persists(self, seeded):
        cli.main(["run", "--start", "2020-01-01", "--end", "2020-01-30"])
        record = seeded.find_billing_account_spend_for_time_range(None, "ba-1", START, END)
        assert record.spend == Decimal("2400")

    def test_failure_exits_1(self, monkeypatch):
        monkeypatch.setattr(cli, "get_store", lambda: _FailingStore(sqlite3.OperationalError("db down")))
        with pytest.raises(SystemExit) as exc:
            cli.main(["run", "--start", "2020-01-01", "--end", "2020-01-30"])
        assert exc.value.code == 1

    def test_cancellation_exits_2(self, monkeypatch):
        monkeypatch.setattr(cli, "get_store", lambda: _FailingStore(CancellationError("context canceled")))
        with pytest.raises(SystemExit) as exc:
            cli.main(["run", "--start", "2020-01-01", "--end", "2020-01-30"])
        assert exc.value.code == 2

    def test_half_period_rejected(self):
        with pytest.raises(SystemExit):
            cli.main(["run", "--start", "2020-01-01"])

    def test_reversed_period_rejected(self):
        with pytest.raises(SystemExit):
            cli.main(["run", "--start", "2020-01-30", "--end", "2020-01-01"])


class TestReadCommands:
    def test_spend_account(self, seeded, capsys):
        cli.main(["run", "--start", "2020-01-01", "--end", "2020-01-30"])
        capsys.readouterr()
        cli.main(["spend", "account", "ba-1", "--start", "2020-01-01", "--end", "2020-01-30"])
        assert "2400" in capsys.readouterr().out

    def test_spend_missing_exits_1(self, seeded):
        with pytest.raises(SystemExit) as exc:
            cli.main(["spend", "order", "nope", "--start", "2020-01-01", "--end", "2020-01-30"])
        assert exc.value.code == 1

    def test_history(self, seeded, capsys):
        cli.main(["run", "--start", "2020-01-01", "--end", "2020-01-30"])
        capsys.readouterr()
        cli.main(["history", "proj-1"])
        assert "2400" in capsys.readouterr().out

    def test_no_command_prints_help(self):
        with pytest.raises(SystemExit):
            cli.main([])
