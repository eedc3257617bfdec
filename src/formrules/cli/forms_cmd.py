"""Form schema CLI commands: check, list and validate."""

import json
from pathlib import Path
from typing import Any

import click
import yaml

from formrules.config import EngineConfig
from formrules.loader import SchemaLoader
from formrules.schema_check import SUBDIR_SCHEMA, check_schema_dir, check_yaml_file
from formrules.types import SchemaError
from formrules.validator import FormValidator


def _load_schemas(config: EngineConfig) -> SchemaLoader:
    if not config.schema_path.is_dir():
        click.echo(f"Error: Schema directory not found at {config.schema_path}", err=True)
        raise SystemExit(1)

    loader = SchemaLoader(config.schema_path)
    try:
        loader.load_all()
    except SchemaError as e:
        click.echo(click.style(f"Schema error: {e}", fg="red"), err=True)
        raise SystemExit(1)
    return loader


def _read_data(path: Path) -> dict[str, Any]:
    text = path.read_text()
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise click.ClickException(f"Cannot parse {path}: {e}")

    if not isinstance(data, dict):
        raise click.ClickException(f"{path} must contain a mapping of field values")
    return data


@click.command()
@click.option(
    "--path",
    "target_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Check a single YAML file instead of the whole schema directory.",
)
@click.pass_obj
def check(config: EngineConfig, target_path: Path | None):
    """Check schema YAML files against the bundled JSON Schemas."""
    if target_path is not None:
        schema_name = SUBDIR_SCHEMA.get(target_path.parent.name)
        if schema_name is None:
            click.echo(
                f"Warning: cannot determine schema for directory '{target_path.parent.name}', "
                "assuming a form definition.",
                err=True,
            )
            schema_name = SUBDIR_SCHEMA["forms"]
        issues = check_yaml_file(target_path, schema_name)
    else:
        if not config.schema_path.is_dir():
            click.echo(f"Error: Schema directory not found at {config.schema_path}", err=True)
            raise SystemExit(1)
        issues = check_schema_dir(config.schema_path)

    for issue in issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    errors = [i for i in issues if i.severity == "error"]
    if errors:
        click.echo(click.style(f"\n{len(errors)} schema error(s) found", fg="red", bold=True))
        raise SystemExit(1)

    # Semantic check (custom rule names, regexes, blocks) only for the full directory
    if target_path is None:
        loader = _load_schemas(config)
        click.echo(f"Loaded {len(loader.forms)} form(s):")
        for name in sorted(loader.forms):
            click.echo(f"  ✓ {name} ({len(loader.forms[name].schema)} fields)")

    click.echo(click.style("\nAll schemas are valid.", fg="green", bold=True))


@click.command("list")
@click.pass_obj
def list_forms(config: EngineConfig):
    """List forms and their fields."""
    loader = _load_schemas(config)
    if not loader.forms:
        click.echo("No forms found.")
        return

    for name in sorted(loader.forms):
        form = loader.forms[name]
        click.echo(f"{name}: {form.display_name}")
        for field_name, field_schema in form.schema.items():
            kinds = ", ".join(rule.kind.value for rule in field_schema.rules) or "no rules"
            click.echo(f"  {field_name}: {kinds}")


@click.command()
@click.argument("form_name")
@click.option(
    "--data",
    "data_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON or YAML file with the form values.",
)
@click.option("--field", "field_name", default=None, help="Validate a single field.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON.")
@click.pass_obj
def validate(
    config: EngineConfig,
    form_name: str,
    data_path: Path,
    field_name: str | None,
    as_json: bool,
):
    """Validate a data file against a form. Exits with status 1 when invalid."""
    loader = _load_schemas(config)
    try:
        form = loader.get(form_name)
    except KeyError as e:
        raise click.ClickException(e.args[0])

    data = _read_data(data_path)
    validator = FormValidator(form.schema)

    if field_name is not None:
        result = validator.validate_field(field_name, data.get(field_name), data)
        valid = result.is_valid
        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2))
        elif valid:
            click.echo(click.style(f"{field_name}: ok", fg="green"))
        else:
            click.echo(click.style(f"{field_name}: {result.error}", fg="red"))
    else:
        report = validator.validate(data)
        valid = report.is_valid
        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2))
        else:
            for name, error in report.errors.items():
                click.echo(click.style(f"  ✗ {name}: {error}", fg="red"))
            summary = report.summary()
            colour = "green" if valid else "red"
            click.echo(click.style(summary["message"], fg=colour, bold=True))

    if not valid:
        raise SystemExit(1)
