"""Tests for the typer command line interface."""

import pytest
from typer.testing import CliRunner

from urna.cli import app
from urna.config import UrnaSettings
from urna.errors import InitializationError
from urna.models import RoleSnapshot, VotingSystem
from urna.session import Session

runner = CliRunner()
CONTRACT = "0x" + "12" * 20


@pytest.fixture(autouse=True)
def cli_settings(monkeypatch):
    settings = UrnaSettings(CONTRACT_ADDRESS=CONTRACT)
    monkeypatch.setattr("urna.cli.load_settings", lambda path: settings)
    return settings


@pytest.fixture
def cli_session(monkeypatch, gateway, wallet):
    async def fake_open_session(settings=None, config_path=None):
        return Session(gateway, wallet, poll_interval=0.01)

    monkeypatch.setattr("urna.cli.open_session", fake_open_session)
    return gateway


def test_status_prints_view(cli_session) -> None:
    cli_session.role_state = RoleSnapshot(is_admin=True)
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0
    assert "Voting system:    FPTP_Quorum" in result.stdout
    assert "Election status:  Open" in result.stdout
    assert "Admin action:     Close Election (enabled)" in result.stdout


def test_status_reports_read_error(cli_session) -> None:
    cli_session.failures["election"] = RuntimeError("node down")
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 1
    assert "Error loading status: node down" in result.output


def test_vote_single_choice(cli_session) -> None:
    result = runner.invoke(app, ["vote", "--card-id", "card-1", "--candidate", "2"])
    assert result.exit_code == 0
    assert "Vote successful! Tx: 0x" in result.stdout
    assert cli_session.count("cast_vote") == 1


def test_vote_ranked_choice(cli_session, fakes) -> None:
    cli_session.voting_system = VotingSystem.INSTANT_RUNOFF
    result = runner.invoke(app, ["vote", "--card-id", "card-1", "--ranking", "3,1,2,5,4"])
    assert result.exit_code == 0
    assert ("cast_vote", [3, 1, 2, 5, 4], "card-1", fakes.alice) in cli_session.calls


def test_vote_invalid_ranking_makes_no_call(cli_session) -> None:
    cli_session.voting_system = VotingSystem.INSTANT_RUNOFF
    result = runner.invoke(app, ["vote", "--card-id", "card-1", "--ranking", "1,1,2,3,4"])
    assert result.exit_code == 1
    assert "Must rank all 5 different candidates!" in result.output
    assert cli_session.count("cast_vote") == 0


def test_vote_rejection_is_prefixed(cli_session) -> None:
    cli_session.failures["cast_vote"] = RuntimeError("already voted")
    result = runner.invoke(app, ["vote", "--card-id", "card-1", "--candidate", "1"])
    assert result.exit_code == 1
    assert "Vote failed: already voted" in result.output


def test_close_on_closed_election(cli_session) -> None:
    cli_session.closed = True
    result = runner.invoke(app, ["close"])
    assert result.exit_code == 1
    assert "Election already closed!" in result.output
    assert "Proposal failed" not in result.output


def test_validate(cli_session, fakes) -> None:
    result = runner.invoke(app, ["validate", fakes.bob, "card-5"])
    assert result.exit_code == 0
    assert "Validation successful!" in result.stdout


def test_register_acknowledges() -> None:
    result = runner.invoke(app, ["register", "card-9"])
    assert result.exit_code == 0
    assert "Waiting for registrar verification" in result.stdout


def test_results_requires_closed_election(cli_session) -> None:
    result = runner.invoke(app, ["results"])
    assert result.exit_code == 1
    assert "Election is still open." in result.output


def test_results_writes_html(cli_session, tmp_path) -> None:
    cli_session.closed = True
    target = tmp_path / "results.html"
    result = runner.invoke(app, ["results", "--html", str(target)])
    assert result.exit_code == 0
    assert "Winner: Candidat 3" in result.stdout
    assert "Cand 3: 20" in result.stdout
    assert target.exists()


def test_watch_stops_after_ticks(cli_session) -> None:
    result = runner.invoke(app, ["watch", "--ticks", "2"])
    assert result.exit_code == 0
    assert result.stdout.count("Voting system:") == 2


def test_initialization_error_exits(monkeypatch) -> None:
    async def broken(settings=None, config_path=None):
        raise InitializationError("Unable to connect to blockchain provider.")

    monkeypatch.setattr("urna.cli.open_session", broken)
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 1
    assert "Unable to connect" in result.output


def test_logging_follows_settings(cli_session, cli_settings, monkeypatch, tmp_path) -> None:
    settings = cli_settings.model_copy(update={"LOG_LEVEL": "WARNING", "LOG_DIR": tmp_path})
    monkeypatch.setattr("urna.cli.load_settings", lambda path: settings)
    cli_session.failures["election"] = RuntimeError("node down")

    result = runner.invoke(app, ["status"])

    assert result.exit_code == 1
    assert "poll_tick_failed" in (tmp_path / "urna.log").read_text(encoding="utf-8")


def test_log_level_option_overrides_settings(cli_session, cli_settings, monkeypatch) -> None:
    levels = []
    monkeypatch.setattr("urna.cli.setup_logging", lambda level, log_dir=None: levels.append(level))
    result = runner.invoke(app, ["--log-level", "DEBUG", "status"])
    assert result.exit_code == 0
    assert levels[-1] == "DEBUG"

    runner.invoke(app, ["status"])
    assert levels[-1] == cli_settings.LOG_LEVEL


def test_invalid_configuration_exits(monkeypatch) -> None:
    def broken(path):
        raise ValueError("Invalid configuration: CONTRACT_ADDRESS")

    monkeypatch.setattr("urna.cli.load_settings", broken)
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
