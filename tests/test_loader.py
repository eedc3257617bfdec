"""Tests for loading form schemas from YAML."""

import textwrap
from pathlib import Path

import pytest

from formrules.loader import SchemaLoader, load_form
from formrules.types import SchemaError
from formrules.validator import FormValidator


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content))
    return path


@pytest.fixture
def schema_dir(tmp_path) -> Path:
    write(tmp_path / "blocks" / "address.yaml", """
        block: address
        fields:
          city:
            required: true
          postalCode:
            pattern: "^[0-9]{5}$"
    """)
    write(tmp_path / "forms" / "account.yaml", """
        form: account
        displayName: Account
        includes:
          - address
          - block: address
            prefix: billing_
        fields:
          name:
            required: true
            minLength: 2
          city:
            maxLength: 40
    """)
    return tmp_path


class TestSchemaLoader:
    def test_load_all(self, schema_dir):
        loader = SchemaLoader(schema_dir)
        loader.load_all()
        assert list(loader.blocks) == ["address"]
        assert list(loader.forms) == ["account"]
        assert loader.get("account").display_name == "Account"
        assert loader.get("account").source == schema_dir / "forms" / "account.yaml"

    def test_includes_and_prefix(self, schema_dir):
        loader = SchemaLoader(schema_dir)
        loader.load_all()
        schema = loader.get("account").schema
        assert list(schema) == ["city", "postalCode", "billing_city", "billing_postalCode", "name"]

    def test_own_fields_override_block_fields(self, schema_dir):
        loader = SchemaLoader(schema_dir)
        loader.load_all()
        city = loader.get("account").schema["city"]
        assert [rule.kind.value for rule in city.rules] == ["maxLength"]

    def test_loaded_schema_validates(self, schema_dir):
        loader = SchemaLoader(schema_dir)
        loader.load_all()
        validator = FormValidator(loader.get("account").schema)
        report = validator.validate({"name": "A", "billing_postalCode": "abc"})
        assert report.errors == {
            "billing_city": "Billing City is required",
            "billing_postalCode": "Billing Postal Code format is invalid",
            "name": "Name must be at least 2 characters",
        }

    def test_get_unknown_form(self, schema_dir):
        loader = SchemaLoader(schema_dir)
        loader.load_all()
        with pytest.raises(KeyError, match="Available forms: account"):
            loader.get("lead")

    def test_missing_directories(self, tmp_path):
        loader = SchemaLoader(tmp_path)
        loader.load_all()
        assert loader.forms == {}

    def test_unknown_block(self, tmp_path):
        write(tmp_path / "forms" / "lead.yaml", """
            form: lead
            includes: [nowhere]
        """)
        with pytest.raises(SchemaError, match="unknown block 'nowhere'"):
            SchemaLoader(tmp_path).load_all()

    def test_include_must_be_name_or_mapping(self, tmp_path):
        write(tmp_path / "forms" / "lead.yaml", """
            form: lead
            includes:
              - 3
        """)
        with pytest.raises(SchemaError, match="invalid include 3"):
            SchemaLoader(tmp_path).load_all()

    def test_duplicate_form(self, tmp_path):
        write(tmp_path / "forms" / "a.yaml", "form: lead\n")
        write(tmp_path / "forms" / "b.yaml", "form: lead\n")
        with pytest.raises(SchemaError, match="Duplicate form 'lead'"):
            SchemaLoader(tmp_path).load_all()

    def test_invalid_declaration_names_form(self, tmp_path):
        write(tmp_path / "forms" / "lead.yaml", """
            form: lead
            fields:
              score:
                min: high
        """)
        with pytest.raises(SchemaError, match="Form 'lead'.*Field 'score'"):
            SchemaLoader(tmp_path).load_all()

    def test_yaml_syntax_error(self, tmp_path):
        write(tmp_path / "forms" / "broken.yaml", "form: [unclosed\n")
        with pytest.raises(SchemaError, match="YAML parse error"):
            SchemaLoader(tmp_path).load_all()

    def test_custom_rule_by_name(self, tmp_path):
        write(tmp_path / "forms" / "signup.yaml", """
            form: signup
            fields:
              password:
                required: true
                custom: strongPassword
        """)
        loader = SchemaLoader(tmp_path)
        loader.load_all()
        result = FormValidator(loader.get("signup").schema).validate_field("password", "weak")
        assert result.error == (
            "Password must contain uppercase, lowercase, numbers, and special characters"
        )


class TestLoadForm:
    def test_single_file(self, tmp_path):
        path = write(tmp_path / "lead.yaml", """
            form: lead
            fields:
              email:
                required: true
                email: true
        """)
        form = load_form(path)
        assert form.name == "lead"
        assert form.display_name == "lead"
        assert list(form.schema) == ["email"]

    def test_not_a_form(self, tmp_path):
        path = write(tmp_path / "thing.yaml", "block: address\n")
        with pytest.raises(SchemaError, match="not a form definition"):
            load_form(path)


class TestExampleSchemas:
    def test_examples_load(self, example_schemas):
        loader = SchemaLoader(example_schemas)
        loader.load_all()
        assert set(loader.forms) == {"contact", "opportunity"}

    def test_opportunity_stage_rules(self, example_schemas):
        loader = SchemaLoader(example_schemas)
        loader.load_all()
        validator = FormValidator(loader.get("opportunity").schema)
        report = validator.validate({
            "name": "Acme renewal",
            "stage": "closed_won",
            "probability": 60,
            "expectedCloseDate": "2024-03-01",
            "openDate": "2024-04-01",
        })
        assert report.errors == {
            "probability": "Must be at least 100 when Stage is closed_won",
            "expectedCloseDate": "Must be after Open Date",
        }
