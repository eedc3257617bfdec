"""Load form schemas from YAML files.

Layout of a schema directory:

    schemas/
      blocks/   reusable field groups   (block: <name>, fields: {...})
      forms/    form definitions        (form: <name>, includes: [...], fields: {...})

A form's included block fields come first (optionally prefixed), then
its own fields, which override block fields of the same name. Custom
rules are referenced by their registered name.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from formrules.schema import FormSchema
from formrules.types import SchemaError

logger = logging.getLogger(__name__)


@dataclass
class FormDefinition:
    name: str
    display_name: str
    schema: FormSchema
    source: Path | None = None


class SchemaLoader:
    """Loads form and block definitions from YAML files."""

    def __init__(self, schema_path: Path):
        self.schema_path = schema_path
        self.forms: dict[str, FormDefinition] = {}
        self.blocks: dict[str, dict[str, Any]] = {}

    def load_all(self) -> None:
        """Load all blocks, then all forms."""
        self._load_blocks()
        self._load_forms()
        logger.debug(
            "Loaded %d form(s) and %d block(s) from %s",
            len(self.forms), len(self.blocks), self.schema_path,
        )

    def get(self, name: str) -> FormDefinition:
        if name not in self.forms:
            raise KeyError(
                f"Form '{name}' not found. Available forms: "
                + (", ".join(sorted(self.forms)) or "none")
            )
        return self.forms[name]

    def _load_blocks(self) -> None:
        blocks_path = self.schema_path / "blocks"
        if not blocks_path.exists():
            return

        for yaml_file in sorted(blocks_path.glob("*.yaml")):
            data = _read_yaml(yaml_file)
            if data and "block" in data:
                self.blocks[data["block"]] = _fields_of(data, yaml_file)

    def _load_forms(self) -> None:
        forms_path = self.schema_path / "forms"
        if not forms_path.exists():
            return

        for yaml_file in sorted(forms_path.glob("*.yaml")):
            data = _read_yaml(yaml_file)
            if data and "form" in data:
                form = self.resolve_form(data, source=yaml_file)
                if form.name in self.forms:
                    raise SchemaError(
                        f"Duplicate form '{form.name}' in {yaml_file} "
                        f"and {self.forms[form.name].source}"
                    )
                self.forms[form.name] = form

    def resolve_form(self, data: dict[str, Any], source: Path | None = None) -> FormDefinition:
        """Resolve a form document, expanding included blocks."""
        name = data["form"]
        declarations: dict[str, Any] = {}

        for include in data.get("includes") or []:
            if isinstance(include, str):
                include = {"block": include}
            elif not isinstance(include, dict):
                raise SchemaError(f"Form '{name}': invalid include {include!r}")
            block_name = include.get("block")
            prefix = include.get("prefix", "")

            if block_name not in self.blocks:
                raise SchemaError(f"Form '{name}' includes unknown block '{block_name}'")
            for field_name, declaration in self.blocks[block_name].items():
                declarations[prefix + field_name] = declaration

        declarations.update(_fields_of(data, source))

        try:
            schema = FormSchema.from_dict(declarations)
        except SchemaError as e:
            where = f" ({source})" if source else ""
            raise SchemaError(f"Form '{name}'{where}: {e}") from None

        return FormDefinition(
            name=name,
            display_name=data.get("displayName", name),
            schema=schema,
            source=source,
        )


def _read_yaml(path: Path) -> Any:
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SchemaError(f"YAML parse error in {path}: {e}") from None


def _fields_of(data: dict[str, Any], source: Path | None) -> dict[str, Any]:
    fields = data.get("fields") or {}
    if not isinstance(fields, dict):
        raise SchemaError(f"'fields' must be a mapping in {source}")
    return fields


def load_form(path: Path) -> FormDefinition:
    """Load a single form file that does not include blocks."""
    data = _read_yaml(path)
    if not isinstance(data, dict) or "form" not in data:
        raise SchemaError(f"{path} is not a form definition")
    return SchemaLoader(path.parent).resolve_form(data, source=path)
