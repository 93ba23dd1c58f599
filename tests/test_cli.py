"""Tests for the CLI entry point."""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from rpcprobe.chains import ChainLookupError
from rpcprobe.cli import main
from rpcprobe.models import Endpoint, ProbeReport, ProbeResult, Transport

_CHAINS = [
    {
        "chainId": 1,
        "shortName": "eth",
        "rpc": ["https://a.example", "wss://b.example", "https://c.example"],
    }
]


def _fake_check(endpoints, timeout_ms, **kwargs) -> ProbeReport:
    """Mark every endpoint as working at height 1."""
    return ProbeReport.from_results(
        [ProbeResult(e, True, 1, 5) for e in endpoints]
    )


@pytest.fixture(autouse=True)
def _no_user_config(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr("rpcprobe.config.DEFAULT_CONFIG_PATH", tmp_path / "nope.yaml")


@pytest.fixture
def mock_check():
    with patch("rpcprobe.cli.check_endpoints", side_effect=_fake_check) as mock:
        yield mock


class TestCliHelp:
    """--help flag produces usage information."""

    def test_help_exits_zero(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Check which blockchain RPC endpoints are alive" in result.output

    @pytest.mark.parametrize(
        "flag", ["--chain", "--file", "--timeout", "--format", "--config", "--watch"]
    )
    def test_help_shows_option(self, flag: str) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert flag in result.output


class TestEndpointSources:
    """Endpoints come from arguments, a file, and a chain lookup."""

    def test_positional_urls(self, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, ["https://a.example", "wss://b.example"])
        assert result.exit_code == 0
        endpoints = mock_check.call_args.args[0]
        assert endpoints == [
            Endpoint("https://a.example", Transport.HTTP),
            Endpoint("wss://b.example", Transport.WEBSOCKET),
        ]

    def test_endpoints_file(self, mock_check: MagicMock, tmp_path) -> None:
        f = tmp_path / "rpcs.txt"
        f.write_text("# mainnet\nhttps://a.example\n\nwss://b.example  # socket\n")

        result = CliRunner().invoke(main, ["--file", str(f)])

        assert result.exit_code == 0
        urls = [e.url for e in mock_check.call_args.args[0]]
        assert urls == ["https://a.example", "wss://b.example"]

    def test_fragment_is_not_a_comment(self, mock_check: MagicMock, tmp_path) -> None:
        f = tmp_path / "rpcs.txt"
        f.write_text("https://a.example/rpc#main\nwss://b.example/#ws # backup\n")

        result = CliRunner().invoke(main, ["--file", str(f)])

        assert result.exit_code == 0
        urls = [e.url for e in mock_check.call_args.args[0]]
        assert urls == ["https://a.example/rpc#main", "wss://b.example/#ws"]

    def test_missing_endpoints_file(self, mock_check: MagicMock, tmp_path) -> None:
        result = CliRunner().invoke(main, ["--file", str(tmp_path / "none.txt")])
        assert result.exit_code == 1
        assert "Error" in result.output
        mock_check.assert_not_called()

    @patch("rpcprobe.cli.fetch_chains", return_value=_CHAINS)
    def test_chain_lookup(self, mock_fetch: MagicMock, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, ["--chain", "eth"])

        assert result.exit_code == 0
        mock_fetch.assert_called_once_with("https://chainid.network/chains.json")
        urls = [e.url for e in mock_check.call_args.args[0]]
        assert urls == ["https://a.example", "wss://b.example", "https://c.example"]
        assert "eth" in result.output

    @patch("rpcprobe.cli.fetch_chains", return_value=_CHAINS)
    def test_chain_lookup_by_id_with_preferred_rpc(
        self, _mock_fetch: MagicMock, mock_check: MagicMock, tmp_path
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("preferred_rpcs:\n  1: https://c.example\n")

        result = CliRunner().invoke(main, ["--chain", "1", "--config", str(cfg_file)])

        assert result.exit_code == 0
        urls = [e.url for e in mock_check.call_args.args[0]]
        assert urls == ["https://c.example", "https://a.example", "wss://b.example"]

    @patch("rpcprobe.cli.fetch_chains", return_value=_CHAINS)
    def test_chain_not_found(self, _mock_fetch: MagicMock, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, ["--chain", "nope"])
        assert result.exit_code == 1
        assert "chain not found" in result.output
        mock_check.assert_not_called()

    @patch("rpcprobe.cli.fetch_chains", side_effect=ChainLookupError("registry down"))
    def test_registry_failure(self, _mock_fetch: MagicMock, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, ["--chain", "eth"])
        assert result.exit_code == 1
        assert "registry down" in result.output

    def test_no_endpoints(self, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, [])
        assert result.exit_code == 1
        assert "no endpoints given" in result.output
        mock_check.assert_not_called()


class TestTimeoutOption:
    """--timeout overrides the configured timeout."""

    def test_default_from_config(self, mock_check: MagicMock) -> None:
        CliRunner().invoke(main, ["https://a.example"])
        assert mock_check.call_args.args[1] == 1000

    def test_explicit(self, mock_check: MagicMock) -> None:
        CliRunner().invoke(main, ["https://a.example", "--timeout", "0"])
        assert mock_check.call_args.args[1] == 0

    def test_config_value(self, mock_check: MagicMock, tmp_path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("timeout_ms: 3000\nmax_concurrency: 4\n")

        CliRunner().invoke(main, ["https://a.example", "-c", str(cfg_file)])

        assert mock_check.call_args.args[1] == 3000
        assert mock_check.call_args.kwargs["max_concurrency"] == 4

    def test_negative_rejected(self, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, ["https://a.example", "--timeout", "-5"])
        assert result.exit_code != 0
        assert "Invalid value" in result.output


class TestFormatOption:
    """--format flag validation."""

    def test_default_is_table(self, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, ["https://a.example"])
        assert result.exit_code == 0
        assert "1 working, 0 not working" in result.output

    def test_json_format(self, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, ["https://a.example", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["workingRpcs"][0]["rpc"] == {"url": "https://a.example"}

    def test_format_case_insensitive(self, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, ["https://a.example", "-f", "JSON"])
        assert result.exit_code == 0
        assert "allRpcs" in result.output

    def test_invalid_format_rejected(self, mock_check: MagicMock) -> None:
        result = CliRunner().invoke(main, ["https://a.example", "--format", "xml"])
        assert result.exit_code != 0
        assert "Invalid value" in result.output


class TestConfigOption:
    """--config flag validation."""

    def test_missing_config_file_errors(self, mock_check: MagicMock, tmp_path) -> None:
        missing = str(tmp_path / "nonexistent.yaml")
        result = CliRunner().invoke(main, ["https://a.example", "--config", missing])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_yaml_errors(self, mock_check: MagicMock, tmp_path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(": : : bad yaml\n")
        result = CliRunner().invoke(main, ["https://a.example", "--config", str(cfg_file)])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestWatch:
    """--watch re-runs until interrupted."""

    @patch("rpcprobe.cli.time.sleep", side_effect=[None, KeyboardInterrupt])
    def test_runs_until_interrupted(
        self, mock_sleep: MagicMock, mock_check: MagicMock, tmp_path
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("refetch_interval_ms: 2500\n")

        result = CliRunner().invoke(
            main, ["https://a.example", "--watch", "-c", str(cfg_file)]
        )

        assert result.exit_code == 0
        assert mock_check.call_count == 2
        mock_sleep.assert_called_with(2.5)

    def test_single_run_without_watch(self, mock_check: MagicMock) -> None:
        CliRunner().invoke(main, ["https://a.example"])
        assert mock_check.call_count == 1

    @patch("rpcprobe.cli.check_endpoints")
    def test_interrupt_during_run(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = [
            _fake_check([Endpoint.from_url("https://a.example")], 1000),
            KeyboardInterrupt,
        ]
        with patch("rpcprobe.cli.time.sleep"):
            result = CliRunner().invoke(main, ["https://a.example", "--watch"])

        assert result.exit_code == 0
        assert mock_run.call_count == 2
        assert "Aborted" not in result.output
        assert "1 working, 0 not working" in result.output
