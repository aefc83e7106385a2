"""Tests for CLI commands."""

import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from llm_lint.cli import cli, document_from_path


class TestCLI:
    """Tests for CLI commands."""

    def test_cli_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "LLM Lint" in result.output

    def test_review_command(self, tmp_path):
        source = tmp_path / "app.py"
        source.write_text("print('hi')\n")
        config = tmp_path / "llm-lint.yaml"
        config.write_text("llm:\n  model: local-model\n")
        runner = CliRunner()

        with patch("llm_lint.cli.review_files_async", new_callable=AsyncMock) as mock_review:
            result = runner.invoke(
                cli,
                ["review", str(source), "--plain", "--config", str(config)],
                catch_exceptions=False,
            )

        assert result.exit_code == 0
        mock_review.assert_called_once()
        paths, config, output = mock_review.call_args.args
        assert [p.name for p in paths] == ["app.py"]
        assert config.llm.use_function_calling is False
        assert output == "table"

    def test_review_requires_files(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["review"])

        assert result.exit_code != 0

    def test_parse_freeform_json_output(self, tmp_path):
        response = tmp_path / "response.txt"
        response.write_text(
            "Here are the results\n- [ERROR] broken [Ln 2, Col 1]\n[HINT]: tidy up\n"
        )
        runner = CliRunner()

        result = runner.invoke(cli, ["parse", str(response), "--output", "json"])

        assert result.exit_code == 0
        findings = json.loads(result.stdout)
        assert findings == [
            {"severity": "ERROR", "message": "broken", "code_snippet": None, "line": 1, "column": 1},
            {"severity": "HINT", "message": "tidy up", "code_snippet": None, "line": None,
             "column": None},
        ]

    def test_parse_structured_with_document(self, tmp_path):
        document = tmp_path / "app.py"
        document.write_text("a = 1\nb = a / 0\n")
        response = tmp_path / "response.json"
        response.write_text(
            json.dumps({"reviews": [{"severity": "ERROR", "message": "division by zero",
                                     "codeSnippet": "a / 0"}]})
        )
        runner = CliRunner()

        result = runner.invoke(
            cli, ["parse", str(response), "--document", str(document), "--output", "json"]
        )

        assert result.exit_code == 0
        (finding,) = json.loads(result.stdout)
        assert (finding["line"], finding["column"]) == (1, 4)

    def test_parse_table_output_no_findings(self, tmp_path):
        response = tmp_path / "response.txt"
        response.write_text("Everything looks fine.")
        runner = CliRunner()

        result = runner.invoke(cli, ["parse", str(response)])

        assert result.exit_code == 0
        assert "no findings" in result.output

    def test_config_validate_invalid(self, tmp_path):
        config = tmp_path / "llm-lint.yaml"
        config.write_text("llm:\n  port: 70000\n")
        runner = CliRunner()

        result = runner.invoke(cli, ["config", "validate", "--config", str(config)])

        assert result.exit_code == 1
        assert "invalid" in result.output

    def test_serve_reports_unset_port_variable(self, tmp_path, monkeypatch):
        monkeypatch.delenv("BRIDGE_PORT", raising=False)
        config = tmp_path / "llm-lint.yaml"
        config.write_text("server:\n  port: ${BRIDGE_PORT}\n")
        runner = CliRunner()

        with patch("llm_lint.cli.uvicorn.run") as mock_run:
            result = runner.invoke(cli, ["serve", "--config", str(config)])

        assert result.exit_code == 1
        assert "server.port must be a number" in result.output
        mock_run.assert_not_called()

    def test_config_validate_valid(self, tmp_path):
        config = tmp_path / "llm-lint.yaml"
        config.write_text("llm:\n  model: local-model\n")
        runner = CliRunner()

        result = runner.invoke(cli, ["config", "validate", "--config", str(config)])

        assert result.exit_code == 0
        assert "valid" in result.output

    def test_config_show(self, tmp_path):
        config = tmp_path / "llm-lint.yaml"
        config.write_text("llm:\n  model: local-model\n")
        runner = CliRunner()

        result = runner.invoke(cli, ["config", "show", "--config", str(config)])

        assert result.exit_code == 0
        assert "local-model" in result.output


def test_document_from_path(tmp_path):
    source = tmp_path / "main.rs"
    source.write_text("fn main() {}\n")

    document = document_from_path(source)

    assert document.uri.startswith("file://")
    assert document.language_id == "rust"
    assert document.text == "fn main() {}\n"
