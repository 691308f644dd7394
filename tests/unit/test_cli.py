"""
Unit tests for the userbase CLI interface.
"""

from contextlib import asynccontextmanager

import pytest
import yaml
from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner

from userbase import __version__
from userbase.accounts import LoginResult
from userbase.accounts.models import DashboardStats, UserSummary
from userbase.cli import main
from userbase.exceptions import (
    AuthenticationError,
    DatabaseConnectionError,
    DuplicateEmailError,
)
from userbase.schema.operations import rename_table_change
from userbase.schema.reconciler import ReconciliationResult, ReconciliationStatus
from tests.fakes import FakeCatalogConnection, FakePool


@pytest.fixture
def runner():
    """Click test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("userbase.cli.configure_logging"):
        yield


@pytest.fixture
def mock_pool():
    return MagicMock()


@pytest.fixture
def patched_database(mock_pool):
    """Replace open_database with one yielding a mock pool."""
    calls = []

    @asynccontextmanager
    async def fake_open_database(config, prepare_schema=True):
        calls.append(prepare_schema)
        yield mock_pool

    with patch("userbase.cli.open_database", fake_open_database):
        yield calls


@pytest.fixture
def mock_service():
    service = MagicMock()
    service.register = AsyncMock(return_value=7)
    service.login = AsyncMock()
    service.get_stats = AsyncMock(return_value=DashboardStats(total_users=5, active_users=3))
    service.authenticate = MagicMock(return_value=7)
    with patch("userbase.cli.build_account_service", return_value=service):
        yield service


class TestCLIMain:
    """Test main CLI functionality."""

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Minimal PostgreSQL user-account backend" in result.output
        assert "schema-reconcile" in result.output
        assert "register-user" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestConfigCommands:

    def test_init_creates_config(self, runner, tmp_path):
        output = tmp_path / "userbase.yaml"

        result = runner.invoke(main, ["init", "--output", str(output)])

        assert result.exit_code == 0
        data = yaml.safe_load(output.read_text())
        assert data["database"]["password"] == "${POSTGRES_PASSWORD}"
        assert data["auth"]["jwt_key"] == "${USERBASE_JWT_KEY}"

    def test_init_declines_overwrite(self, runner, tmp_path):
        output = tmp_path / "userbase.yaml"
        output.write_text("keep: me\n")

        result = runner.invoke(main, ["init", "--output", str(output)], input="n\n")

        assert result.exit_code == 0
        assert output.read_text() == "keep: me\n"

    def test_validate_config(self, runner, temp_config_file):
        result = runner.invoke(main, ["validate-config", "--config", temp_config_file])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_validate_config_invalid(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({"auth": {"token_lifetime_hours": -1}}))

        result = runner.invoke(main, ["validate-config", "--config", str(path)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_validate_config_missing_file(self, runner):
        result = runner.invoke(main, ["validate-config", "--config", "/nonexistent.yaml"])

        assert result.exit_code != 0


class TestSchemaCommands:

    def test_reconcile_success(self, runner, temp_config_file, patched_database):
        result_obj = ReconciliationResult(
            status=ReconciliationStatus.SUCCESS,
            changes_applied=[rename_table_change("users", "Users")],
        )
        result_obj.changes_applied[0].executed = True
        with patch("userbase.cli.ensure_database_schema",
                   AsyncMock(return_value=result_obj)) as ensure:
            result = runner.invoke(main, ["schema-reconcile", "--config", temp_config_file])

        assert result.exit_code == 0, result.output
        assert "success" in result.output
        assert patched_database == [False]
        settings = ensure.call_args.args[1]
        assert settings.mode == "safe"

    def test_reconcile_dry_run(self, runner, temp_config_file, patched_database):
        with patch("userbase.cli.ensure_database_schema",
                   AsyncMock(return_value=ReconciliationResult(
                       status=ReconciliationStatus.SUCCESS))) as ensure:
            result = runner.invoke(
                main, ["schema-reconcile", "--config", temp_config_file, "--dry-run"]
            )

        assert result.exit_code == 0
        assert "Dry run mode" in result.output
        assert ensure.call_args.args[1].mode == "dry_run"

    def test_reconcile_failure_exits_nonzero(self, runner, temp_config_file, patched_database):
        failed = ReconciliationResult(
            status=ReconciliationStatus.FAILED, errors=["permission denied"]
        )
        with patch("userbase.cli.ensure_database_schema", AsyncMock(return_value=failed)):
            result = runner.invoke(main, ["schema-reconcile", "--config", temp_config_file])

        assert result.exit_code == 1
        assert "permission denied" in result.output


class TestAccountCommands:

    def test_register_user(self, runner, temp_config_file, patched_database, mock_service):
        result = runner.invoke(
            main,
            [
                "register-user", "--config", temp_config_file,
                "--name", "Ada", "--email", "Ada@Example.com",
                "--phone", "+447700900123", "--gender", "Female",
                "--password", "analytical",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "user id 7" in result.output
        registration = mock_service.register.call_args.args[0]
        assert registration.email == "ada@example.com"
        assert patched_database == [True]

    def test_register_user_validation_error(self, runner, temp_config_file, mock_service):
        result = runner.invoke(
            main,
            [
                "register-user", "--config", temp_config_file,
                "--name", "Ada", "--email", "not-an-email",
                "--phone", "+447700900123", "--gender", "Female",
                "--password", "analytical",
            ],
        )

        assert result.exit_code == 1
        assert "email" in result.output
        mock_service.register.assert_not_called()

    def test_register_user_duplicate(self, runner, temp_config_file, patched_database, mock_service):
        mock_service.register.side_effect = DuplicateEmailError("ada@example.com")

        result = runner.invoke(
            main,
            [
                "register-user", "--config", temp_config_file,
                "--name", "Ada", "--email", "ada@example.com",
                "--phone", "+447700900123", "--gender", "Female",
                "--password", "analytical",
            ],
        )

        assert result.exit_code == 1
        assert "Email already exists" in result.output

    def test_login_prints_token(self, runner, temp_config_file, patched_database, mock_service):
        mock_service.login.return_value = LoginResult(
            token="header.payload.signature",
            user=UserSummary(
                id=7,
                name="Ada",
                email="ada@example.com",
                phone="+447700900123",
                gender="Female",
                registration_date="2024-03-01T09:30:00+00:00",
            ),
        )

        result = runner.invoke(
            main,
            ["login", "--config", temp_config_file, "--email", "ada@example.com"],
            input="analytical\n",
        )

        assert result.exit_code == 0, result.output
        assert "header.payload.signature" in result.output

    def test_login_failure(self, runner, temp_config_file, patched_database, mock_service):
        mock_service.login.side_effect = AuthenticationError()

        result = runner.invoke(
            main,
            ["login", "--config", temp_config_file,
             "--email", "ada@example.com", "--password", "wrong"],
        )

        assert result.exit_code == 1
        assert "Invalid email or password" in result.output

    def test_stats_uses_token_from_env(self, runner, temp_config_file, patched_database, mock_service):
        result = runner.invoke(
            main,
            ["stats", "--config", temp_config_file],
            env={"USERBASE_TOKEN": "session-token"},
        )

        assert result.exit_code == 0, result.output
        assert "Total users: 5" in result.output
        mock_service.authenticate.assert_called_once_with("session-token")

    def test_stats_requires_token(self, runner, temp_config_file):
        result = runner.invoke(main, ["stats", "--config", temp_config_file], env={"USERBASE_TOKEN": None})

        assert result.exit_code == 2


class TestDiagnosticCommands:

    def test_test_connection(self, runner, temp_config_file, patched_database, mock_pool):
        mock_pool.server_info = AsyncMock(return_value={
            "version": "PostgreSQL 16.1 on x86_64-pc-linux-gnu",
            "database": "userbase_test",
            "user": "test_user",
        })

        result = runner.invoke(main, ["test-connection", "--config", temp_config_file])

        assert result.exit_code == 0, result.output
        assert "Connected to userbase_test as test_user" in result.output
        assert patched_database == [False]

    def test_test_connection_failure(self, runner, temp_config_file, patched_database, mock_pool):
        mock_pool.server_info = AsyncMock(
            side_effect=DatabaseConnectionError("Cannot connect to localhost:5432/userbase_test")
        )

        result = runner.invoke(main, ["test-connection", "--config", temp_config_file])

        assert result.exit_code == 1
        assert "Cannot connect" in result.output

    def test_schema_status_reports_pending_changes(self, runner, temp_config_file):
        catalog = FakeCatalogConnection({"users": ["id", "name", "email", "password"]})

        @asynccontextmanager
        async def fake_open_database(config, prepare_schema=True):
            yield FakePool(catalog)

        with patch("userbase.cli.open_database", fake_open_database):
            result = runner.invoke(main, ["schema-status", "--config", temp_config_file])

        assert result.exit_code == 0, result.output
        assert "pending change" in result.output
        assert catalog.executed == []

    def test_validate_config_flags_unexpanded_key(self, runner, tmp_path, monkeypatch):
        monkeypatch.delenv("USERBASE_JWT_KEY", raising=False)
        output = tmp_path / "userbase.yaml"
        runner.invoke(main, ["init", "--output", str(output)])

        result = runner.invoke(main, ["validate-config", "--config", str(output)])

        assert result.exit_code == 0
        assert "missing" in result.output
