"""Tests for the typer CLI."""

import pytest
from typer.testing import CliRunner

from conftest import FakeTransport, json_response

from tinker_http.cli import doctor
from tinker_http.cli import main as cli_main
from tinker_http.core.config import write_user_env_vars
from tinker_http.core.services.client import TinkerClient

runner = CliRunner()


@pytest.fixture
def fake_client(monkeypatch):
    """Route CLI commands to a scripted transport instead of the network."""
    transport = FakeTransport(json_response(200, {}))

    def factory(settings):
        return TinkerClient(settings, transport=transport)

    monkeypatch.setenv("TINKER_API_KEY", "tml-cli-key-0000")
    monkeypatch.setattr(cli_main, "TinkerClient", factory)
    return transport


class TestCommands:
    """Tests for the main commands."""

    def test_capabilities_json(self, fake_client):
        fake_client.outcomes = [
            json_response(200, {"supported_models": ["legacy", {"model_name": "m", "arch": "llama"}]})
        ]

        result = runner.invoke(cli_main.app, ["capabilities", "--json", "--base-url", "https://api.example.com"])

        assert result.exit_code == 0, result.output
        assert "legacy" in result.output
        assert "llama" in result.output
        assert fake_client.requests[0]["url"] == "https://api.example.com/api/v1/get_server_capabilities"

    def test_capabilities_table(self, fake_client):
        fake_client.outcomes = [json_response(200, {"supported_models": [{"model_name": "m", "arch": "llama"}]})]

        result = runner.invoke(cli_main.app, ["capabilities"])

        assert result.exit_code == 0, result.output
        assert "Supported Models" in result.output

    def test_health(self, fake_client):
        fake_client.outcomes = [json_response(200, {"status": "ok"})]

        result = runner.invoke(cli_main.app, ["health"])

        assert result.exit_code == 0, result.output
        assert "status=ok" in result.output

    def test_model_info(self, fake_client):
        fake_client.outcomes = [
            json_response(200, {"model_id": "m-1", "model_data": {"arch": "llama", "tokenizer_id": "tok"}})
        ]

        result = runner.invoke(cli_main.app, ["model-info", "m-1"])

        assert result.exit_code == 0, result.output
        assert "m-1" in result.output
        assert "tok" in result.output

    def test_service_error_exit_code(self, fake_client):
        fake_client.outcomes = [json_response(404, {"message": "unknown model"})]

        result = runner.invoke(cli_main.app, ["model-info", "nope"])

        assert result.exit_code == 1

    def test_invalid_proxy_option(self, fake_client):
        result = runner.invoke(cli_main.app, ["health", "--proxy", "socks5://proxy.local"])

        assert result.exit_code != 0

    def test_config_masks_key(self, monkeypatch):
        monkeypatch.setenv("TINKER_API_KEY", "tml-abcdefghijkl")

        result = runner.invoke(cli_main.app, ["config"])

        assert result.exit_code == 0, result.output
        assert "tml-abcdefghijkl" not in result.output
        assert "ijkl" in result.output

    def test_bad_log_level(self):
        result = runner.invoke(cli_main.app, ["--log-level", "LOUD", "config"])

        assert result.exit_code != 0


class TestDoctor:
    """Tests for the doctor sub-commands."""

    def test_run_without_api_key(self):
        result = runner.invoke(cli_main.app, ["doctor", "run"])

        assert result.exit_code == 0, result.output
        assert "TINKER_API_KEY" in result.output
        assert "SKIPPED" in result.output

    def test_setup_proxy(self, tmp_path, monkeypatch):
        env_path = tmp_path / ".env"
        monkeypatch.setattr(doctor, "write_user_env_vars", lambda values: write_user_env_vars(values, env_path))

        result = runner.invoke(cli_main.app, ["doctor", "setup-proxy"], input="http://alice:pw@proxy.local:3128\n")

        assert result.exit_code == 0, result.output
        assert "TINKER_PROXY=http://alice:pw@proxy.local:3128" in env_path.read_text(encoding="utf-8")
        assert "Saved proxy http://proxy.local:3128" in result.output

    def test_setup_proxy_rejects_invalid(self, tmp_path, monkeypatch):
        env_path = tmp_path / ".env"
        monkeypatch.setattr(doctor, "write_user_env_vars", lambda values: write_user_env_vars(values, env_path))

        result = runner.invoke(cli_main.app, ["doctor", "setup-proxy"], input="socks5://proxy.local\n")

        assert result.exit_code != 0
        assert not env_path.exists()

    def test_setup_proxy_clear(self, tmp_path, monkeypatch):
        env_path = tmp_path / ".env"
        write_user_env_vars({"TINKER_PROXY": "http://p:3128", "TINKER_API_KEY": "k"}, env_path)
        monkeypatch.setattr(doctor, "write_user_env_vars", lambda values: write_user_env_vars(values, env_path))

        result = runner.invoke(cli_main.app, ["doctor", "setup-proxy", "--clear"])

        assert result.exit_code == 0, result.output
        assert "TINKER_PROXY" not in env_path.read_text(encoding="utf-8")
