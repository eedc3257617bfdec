"""formrules CLI entry point."""

import logging
from pathlib import Path

import click

from formrules.canned import register_canned_rules
from formrules.config import ConfigError, EngineConfig


@click.group()
@click.option(
    "--schemas",
    "schema_path",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Schema directory (contains forms/ and blocks/). Defaults to FORMRULES_SCHEMA_PATH.",
)
@click.pass_context
def cli(ctx: click.Context, schema_path: Path | None):
    """formrules: declarative form validation CLI."""
    try:
        config = EngineConfig.from_env()
    except ConfigError as e:
        raise click.ClickException(str(e))

    if schema_path is not None:
        config.schema_path = schema_path

    logging.basicConfig(
        level=config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    register_canned_rules()
    ctx.obj = config


# Register subcommands
from formrules.cli.forms_cmd import check, list_forms, validate  # noqa: E402

cli.add_command(check)
cli.add_command(list_forms)
cli.add_command(validate)
