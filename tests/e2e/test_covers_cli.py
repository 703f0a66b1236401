# ABOUTME: End-to-end tests for the bookenrich covers CLI command.
# ABOUTME: Listing needs no network; --select is exercised with cover validation patched out.

import json
from unittest.mock import patch

from click.testing import CliRunner

from bookenrich.cli import cli

SELECT = "bookenrich.cli.commands.covers_cmd._select_cover"


class TestCoversCli:
    """End-to-end tests for bookenrich covers."""

    def test_json_lists_ranked_candidates(self) -> None:
        result = CliRunner().invoke(cli, ["covers", "9780156001311", "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        priorities = [c["priority"] for c in payload["candidates"]]
        assert priorities == sorted(priorities, reverse=True)
        assert payload["candidates"][0]["source"] == "Amazon"
        assert any("covers.openlibrary.org/b/isbn/9780156001311" in c["url"] for c in payload["candidates"])
        assert payload["selected"] is None

    def test_isbn10_input_derives_isbn13(self) -> None:
        result = CliRunner().invoke(cli, ["covers", "0156001314", "--json"])
        urls = [c["url"] for c in json.loads(result.output)["candidates"]]
        assert any("9780156001311" in url for url in urls)
        assert any("0156001314" in url for url in urls)

    def test_table_output(self) -> None:
        result = CliRunner().invoke(cli, ["covers", "9780156001311"])
        assert result.exit_code == 0, result.output
        assert "Cover candidates for 9780156001311" in result.output

    def test_select(self) -> None:
        chosen = "https://covers.openlibrary.org/b/isbn/9780156001311-L.jpg"
        with patch(SELECT, return_value=chosen) as select:
            result = CliRunner().invoke(cli, ["covers", "9780156001311", "--select", "--json"])
        assert json.loads(result.output)["selected"] == chosen
        select.assert_called_once()

    def test_no_select_makes_no_requests(self) -> None:
        with patch(SELECT) as select:
            CliRunner().invoke(cli, ["covers", "9780156001311"])
        select.assert_not_called()

    def test_ismn_has_no_heuristic_covers(self) -> None:
        result = CliRunner().invoke(cli, ["covers", "9790201802136"])
        assert result.exit_code == 0
        assert "No heuristic covers" in result.output

    def test_invalid_isbn(self) -> None:
        result = CliRunner().invoke(cli, ["covers", "not-an-isbn"])
        assert result.exit_code == 2
        assert "Invalid ISBN" in result.output
