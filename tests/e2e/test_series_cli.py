# ABOUTME: End-to-end tests for the bookenrich series CLI command.
# ABOUTME: Runs the command through CliRunner with series discovery patched out.

import json
from unittest.mock import patch

from click.testing import CliRunner

from bookenrich.cli import cli
from bookenrich.metadata.types import CandidateRecord, Provider

RUN = "bookenrich.cli.commands.series_cmd._run_discovery"


def _volumes() -> list[CandidateRecord]:
    return [
        CandidateRecord(
            title="Thorgal T01",
            source_provider=Provider.GOOGLE_BOOKS,
            authors=("Jean Van Hamme",),
            isbn13="9782803600038",
            series="Thorgal",
            series_number=1,
        ),
        CandidateRecord(
            title="Thorgal - Tome 2",
            source_provider=Provider.OPEN_LIBRARY,
            isbn13="9782803600045",
            series="Thorgal",
            series_number=2,
        ),
    ]


class TestSeriesCli:
    """End-to-end tests for bookenrich series."""

    def test_table_output(self) -> None:
        with patch(RUN, return_value=_volumes()):
            result = CliRunner().invoke(cli, ["series", "Thorgal"])
        assert result.exit_code == 0, result.output
        assert "Thorgal T01" in result.output
        assert "2 volume(s)" in result.output

    def test_options_passed_through(self) -> None:
        with patch(RUN, return_value=[]) as run:
            CliRunner().invoke(cli, ["series", "Thorgal", "--language", "fr", "--max-volumes", "5"])
        name, language, max_volumes, _settings = run.call_args.args
        assert (name, language, max_volumes) == ("Thorgal", "fr", 5)

    def test_default_max_volumes(self) -> None:
        with patch(RUN, return_value=[]) as run:
            CliRunner().invoke(cli, ["series", "Thorgal"])
        assert run.call_args.args[2] == 100

    def test_json_output(self) -> None:
        with patch(RUN, return_value=_volumes()):
            result = CliRunner().invoke(cli, ["series", "Thorgal", "--json"])
        payload = json.loads(result.output)
        assert [v["series_number"] for v in payload] == [1, 2]
        assert payload[1]["source_provider"] == "openlibrary"

    def test_no_volumes(self) -> None:
        with patch(RUN, return_value=[]):
            result = CliRunner().invoke(cli, ["series", "Nonexistent"])
        assert result.exit_code == 0
        assert "No volumes found" in result.output

    def test_max_volumes_must_be_positive(self) -> None:
        with patch(RUN) as run:
            result = CliRunner().invoke(cli, ["series", "Thorgal", "--max-volumes", "0"])
        assert result.exit_code == 2
        run.assert_not_called()
