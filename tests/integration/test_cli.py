"""Tests for the stream-bouncer CLI option handling."""

from click.testing import CliRunner

from stream_bouncer.cli import main


class TestCliOptions:
    def test_help(self):
        result = CliRunner().invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "--client" in result.output
        assert "--dedup-window" in result.output

    def test_bad_client_path(self):
        result = CliRunner().invoke(main, ["--client", "no-colon-here"])

        assert result.exit_code == 2
        assert "--client" in result.output

    def test_missing_client_module(self):
        result = CliRunner().invoke(main, ["--client", "stream_bouncer_nope:factory"])

        assert result.exit_code == 2

    def test_invalid_dedup_window(self):
        result = CliRunner().invoke(main, ["--dedup-window", "-1"])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output
