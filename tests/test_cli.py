"""Tests for formrules CLI commands."""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from formrules.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FORMRULES_DEBOUNCE_MS", "FORMRULES_SCHEMA_PATH", "FORMRULES_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def schemas_arg(example_schemas) -> list[str]:
    return ["--schemas", str(example_schemas)]


def write_json(path: Path, data: dict) -> Path:
    path.write_text(json.dumps(data))
    return path


VALID_OPPORTUNITY = {
    "name": "Acme renewal",
    "stage": "proposal",
    "probability": 40,
    "openDate": "2024-01-10",
    "expectedCloseDate": "2024-03-01",
}


class TestCheck:
    def test_examples_pass(self, runner, schemas_arg):
        result = runner.invoke(cli, [*schemas_arg, "check"])
        assert result.exit_code == 0, result.output
        assert "opportunity" in result.output
        assert "All schemas are valid" in result.output

    def test_reports_schema_errors(self, runner, tmp_path):
        forms = tmp_path / "forms"
        forms.mkdir()
        (forms / "lead.yaml").write_text("form: lead\nfields:\n  name:\n    minlength: 2\n")
        result = runner.invoke(cli, ["--schemas", str(tmp_path), "check"])
        assert result.exit_code == 1
        assert "minlength" in result.output
        assert "1 schema error(s) found" in result.output

    def test_reports_semantic_errors(self, runner, tmp_path):
        forms = tmp_path / "forms"
        forms.mkdir()
        (forms / "lead.yaml").write_text("form: lead\nfields:\n  pwd:\n    custom: noSuchRule\n")
        result = runner.invoke(cli, ["--schemas", str(tmp_path), "check"])
        assert result.exit_code == 1
        assert "noSuchRule" in result.output

    def test_single_file(self, runner, example_schemas):
        path = example_schemas / "blocks" / "address.yaml"
        result = runner.invoke(cli, ["check", "--path", str(path)])
        assert result.exit_code == 0
        assert "All schemas are valid" in result.output

    def test_missing_directory(self, runner, tmp_path):
        result = runner.invoke(cli, ["--schemas", str(tmp_path / "nope"), "check"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_schema_path_from_env(self, runner, monkeypatch, example_schemas):
        monkeypatch.setenv("FORMRULES_SCHEMA_PATH", str(example_schemas))
        result = runner.invoke(cli, ["check"])
        assert result.exit_code == 0

    def test_invalid_env_config(self, runner, monkeypatch):
        monkeypatch.setenv("FORMRULES_DEBOUNCE_MS", "later")
        result = runner.invoke(cli, ["check"])
        assert result.exit_code == 1
        assert "FORMRULES_DEBOUNCE_MS" in result.output


class TestList:
    def test_lists_forms_and_rules(self, runner, schemas_arg):
        result = runner.invoke(cli, [*schemas_arg, "list"])
        assert result.exit_code == 0
        assert "contact: Contact" in result.output
        assert "opportunity: Opportunity" in result.output
        assert "name: required, minLength, maxLength, custom" in result.output
        assert "mailing_postalCode: pattern" in result.output

    def test_no_forms(self, runner, tmp_path):
        result = runner.invoke(cli, ["--schemas", str(tmp_path), "list"])
        assert result.exit_code == 0
        assert "No forms found." in result.output


class TestValidate:
    def test_valid_data(self, runner, schemas_arg, tmp_path):
        data = write_json(tmp_path / "opp.json", VALID_OPPORTUNITY)
        result = runner.invoke(cli, [*schemas_arg, "validate", "opportunity", "--data", str(data)])
        assert result.exit_code == 0, result.output
        assert "Ready to save" in result.output

    def test_invalid_data(self, runner, schemas_arg, tmp_path):
        data = write_json(tmp_path / "opp.json", {**VALID_OPPORTUNITY, "name": "", "probability": 150})
        result = runner.invoke(cli, [*schemas_arg, "validate", "opportunity", "--data", str(data)])
        assert result.exit_code == 1
        assert "name: Opportunity Name is required" in result.output
        assert "probability: Probability must be at most 100" in result.output
        assert "2 errors must be fixed" in result.output

    def test_json_output(self, runner, schemas_arg, tmp_path):
        data = write_json(tmp_path / "opp.json", {**VALID_OPPORTUNITY, "website": "acme"})
        result = runner.invoke(
            cli, [*schemas_arg, "validate", "opportunity", "--data", str(data), "--json"]
        )
        assert result.exit_code == 1
        assert json.loads(result.output) == {
            "isValid": False,
            "errors": {"website": "Website must be a valid URL"},
        }

    def test_single_field(self, runner, schemas_arg, tmp_path):
        data = write_json(tmp_path / "c.json", {"email": "nope"})
        result = runner.invoke(
            cli,
            [*schemas_arg, "validate", "contact", "--data", str(data), "--field", "email", "--json"],
        )
        assert result.exit_code == 1
        assert json.loads(result.output) == {
            "isValid": False,
            "error": "Email must be a valid email address",
        }

    def test_yaml_data(self, runner, schemas_arg, tmp_path):
        data = tmp_path / "contact.yaml"
        data.write_text(textwrap.dedent("""
            firstName: Ada
            lastName: Lovelace
            email: ada@example.com
            phone: +44 20 7946 0958
        """))
        result = runner.invoke(cli, [*schemas_arg, "validate", "contact", "--data", str(data)])
        assert result.exit_code == 0, result.output

    def test_unknown_form(self, runner, schemas_arg, tmp_path):
        data = write_json(tmp_path / "x.json", {})
        result = runner.invoke(cli, [*schemas_arg, "validate", "invoice", "--data", str(data)])
        assert result.exit_code == 1
        assert "Form 'invoice' not found" in result.output

    def test_data_must_be_mapping(self, runner, schemas_arg, tmp_path):
        data = tmp_path / "x.json"
        data.write_text("[1, 2]")
        result = runner.invoke(cli, [*schemas_arg, "validate", "contact", "--data", str(data)])
        assert result.exit_code == 1
        assert "must contain a mapping" in result.output
