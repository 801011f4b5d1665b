"""
Tests for the CLI interface.
"""
import os
import tempfile
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from ecocharge.cli.main import app, EXIT_CODE_FAIL, EXIT_CODE_OK
from ecocharge.storage.errors import StoreUnavailable
from ecocharge.storage.repository import SessionRepository, reset_repository

runner = CliRunner()


@pytest.fixture
def db_path():
    """Initialized database in a temporary directory."""
    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "cli.db")
        result = runner.invoke(app, ["--db", path, "init"])
        assert result.exit_code == EXIT_CODE_OK
        yield path
        reset_repository()


def _add(db_path, provider, date, duration="30", price="10", kwh="10", *extra):
    return runner.invoke(app, [
        "--db", db_path, "add",
        "--provider", provider,
        "--date", date,
        "--duration", duration,
        "--price", price,
        "--kwh", kwh,
        *extra
    ])


@pytest.fixture
def populated(db_path):
    """Database with the May/June 2024 example sessions."""
    assert _add(db_path, "ZES", "2024-05-01", "30", "10", "10").exit_code == EXIT_CODE_OK
    assert _add(db_path, "ZES", "2024-05-20", "20", "10", "5").exit_code == EXIT_CODE_OK
    assert _add(db_path, "Trugo", "2024-06-01", "40", "10", "7.5").exit_code == EXIT_CODE_OK
    return db_path


class TestSetupCommands:
    """Test init, providers and config handling."""

    def test_init_creates_database(self, db_path):
        assert os.path.exists(db_path)
        assert SessionRepository(db_path).list_all() == []

    def test_providers_lists_known_names(self, db_path):
        result = runner.invoke(app, ["--db", db_path, "providers"])
        assert result.exit_code == EXIT_CODE_OK
        assert "Tesla Supercharger" in result.output

    def test_bad_config_fails(self, db_path):
        result = runner.invoke(app, ["--config", db_path + ".missing.yaml", "providers"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error loading config" in result.output

    def test_config_currency_used(self, populated):
        config_path = populated + ".yaml"
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump({"currency_symbol": "€"}, f)
        result = runner.invoke(app, ["--config", config_path, "--db", populated, "stats"])
        assert result.exit_code == EXIT_CODE_OK
        assert "€225.00" in result.output


class TestAddAndList:
    """Test logging sessions and listing history."""

    def test_add_computes_cost(self, db_path):
        result = _add(db_path, "Eşarj", "2024-05-01", "45", "8.99", "22.5")
        assert result.exit_code == EXIT_CODE_OK
        assert "₺202.28" in result.output

        sessions = SessionRepository(db_path).list_all()
        assert len(sessions) == 1
        assert sessions[0].total_cost == 202.28

    def test_add_invalid_input_fails(self, db_path):
        result = _add(db_path, "ZES", "2024-05-01", "abc")
        assert result.exit_code == EXIT_CODE_FAIL
        assert "duration_minutes" in result.output
        assert SessionRepository(db_path).list_all() == []

    def test_add_store_failure_fails(self, db_path):
        with patch.object(SessionRepository, "insert", side_effect=StoreUnavailable("offline")):
            result = _add(db_path, "ZES", "2024-05-01")
        assert result.exit_code == EXIT_CODE_FAIL
        assert "could not save session" in result.output

    def test_list_empty(self, db_path):
        result = runner.invoke(app, ["--db", db_path, "list"])
        assert result.exit_code == EXIT_CODE_OK
        assert "No sessions yet" in result.output

    def test_list_filtered(self, populated):
        result = runner.invoke(app, ["--db", populated, "list", "--month", "2024-05"])
        assert result.exit_code == EXIT_CODE_OK
        assert "20.05.2024" in result.output
        assert "01.06.2024" not in result.output

    def test_list_without_schema_fails(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            result = runner.invoke(app, ["--db", os.path.join(temp_dir, "none.db"), "list"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "could not load sessions" in result.output

    def test_invalid_month_rejected(self, populated):
        result = runner.invoke(app, ["--db", populated, "stats", "--month", "May"])
        assert result.exit_code == EXIT_CODE_FAIL


class TestStatsAndCharts:
    """Test summary and chart output."""

    def test_stats_all(self, populated):
        result = runner.invoke(app, ["--db", populated, "stats"])
        assert result.exit_code == EXIT_CODE_OK
        assert "₺225.00" in result.output
        assert "22.5 kWh" in result.output
        assert "1s 30dk" in result.output
        assert "~9.0 kg" in result.output

    def test_stats_month(self, populated):
        result = runner.invoke(app, ["--db", populated, "stats", "--month", "2024-05"])
        assert result.exit_code == EXIT_CODE_OK
        assert "₺150.00" in result.output

    def test_chart_monthly(self, populated):
        result = runner.invoke(app, ["--db", populated, "chart"])
        assert result.exit_code == EXIT_CODE_OK
        assert "Monthly Spending" in result.output
        assert "Mayıs 24" in result.output
        assert "Haziran 24" in result.output
        assert "Trugo" in result.output

    def test_chart_daily(self, populated):
        result = runner.invoke(app, ["--db", populated, "chart", "--month", "2024-05"])
        assert result.exit_code == EXIT_CODE_OK
        assert "Daily Spending" in result.output
        assert "20 May" in result.output
        assert "Trugo" not in result.output

    def test_months(self, populated):
        result = runner.invoke(app, ["--db", populated, "months"])
        assert result.exit_code == EXIT_CODE_OK
        assert result.output.split() == ["2024-06", "2024-05"]


class TestImportAndDelete:
    """Test batch import and confirmed deletion."""

    def test_import_batch(self, db_path):
        import_path = db_path + ".import.yaml"
        with open(import_path, 'w', encoding='utf-8') as f:
            yaml.dump({"sessions": [
                {"provider": "ZES", "date": "2024-05-01", "duration_minutes": 30,
                 "price_per_kwh": 10, "total_kwh": 10},
                {"company": "Trugo", "date": "2024-06-01", "durationMinutes": 40,
                 "pricePerKwh": 10, "totalKwh": 7.5, "totalCost": 75},
            ]}, f, allow_unicode=True)

        result = runner.invoke(app, ["--db", db_path, "import", import_path])

        assert result.exit_code == EXIT_CODE_OK
        assert "Imported 2 sessions" in result.output
        assert [s.provider for s in SessionRepository(db_path).list_all()] == ["Trugo", "ZES"]

    def test_import_invalid_record_writes_nothing(self, db_path):
        import_path = db_path + ".import.yaml"
        with open(import_path, 'w', encoding='utf-8') as f:
            yaml.dump([
                {"provider": "ZES", "date": "2024-05-01", "duration_minutes": 30,
                 "price_per_kwh": 10, "total_kwh": 10},
                {"provider": "ZES", "date": "2024-05-02", "duration_minutes": 0,
                 "price_per_kwh": 10, "total_kwh": 10},
            ], f)

        result = runner.invoke(app, ["--db", db_path, "import", import_path])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "record 2" in result.output
        assert SessionRepository(db_path).list_all() == []

    def test_delete_requires_confirmation(self, populated):
        session = SessionRepository(populated).list_all()[0]

        result = runner.invoke(app, ["--db", populated, "delete", session.id], input="n\n")

        assert result.exit_code == EXIT_CODE_OK
        assert "Cancelled" in result.output
        assert len(SessionRepository(populated).list_all()) == 3

    def test_delete_confirmed(self, populated):
        session = SessionRepository(populated).list_all()[0]

        result = runner.invoke(app, ["--db", populated, "delete", session.id], input="y\n")

        assert result.exit_code == EXIT_CODE_OK
        remaining = SessionRepository(populated).list_all()
        assert session.id not in [s.id for s in remaining]
        assert len(remaining) == 2

    def test_delete_with_yes_flag(self, populated):
        session = SessionRepository(populated).list_all()[-1]
        result = runner.invoke(app, ["--db", populated, "delete", session.id, "--yes"])
        assert result.exit_code == EXIT_CODE_OK
        assert len(SessionRepository(populated).list_all()) == 2

    def test_delete_unknown_id(self, populated):
        result = runner.invoke(app, ["--db", populated, "delete", "does-not-exist", "--yes"])
        assert result.exit_code == EXIT_CODE_OK
        assert "No session found" in result.output
        assert len(SessionRepository(populated).list_all()) == 3

    @pytest.mark.parametrize("session_id", ["", "   "])
    def test_delete_blank_id_rejected(self, db_path, session_id):
        assert _add(db_path, "ZES", "2024-05-01").exit_code == EXIT_CODE_OK

        result = runner.invoke(app, ["--db", db_path, "delete", session_id, "--yes"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "cannot be empty" in result.output
        assert len(SessionRepository(db_path).list_all()) == 1

    def test_delete_store_failure_keeps_record(self, populated):
        session = SessionRepository(populated).list_all()[0]
        with patch.object(SessionRepository, "delete_by_id", side_effect=StoreUnavailable("offline")):
            result = runner.invoke(app, ["--db", populated, "delete", session.id, "--yes"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert len(SessionRepository(populated).list_all()) == 3
