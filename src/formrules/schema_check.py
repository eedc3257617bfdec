"""
JSON Schema validation for formrules YAML documents.

Checks form and block YAML files against the JSON Schemas bundled in
``formrules/schemas``. This catches typos (``minlength`` for
``minLength``), wrong types and malformed custom rule references before
the loader builds anything.

Usage:
    from formrules.schema_check import check_schema_dir

    issues = check_schema_dir(Path("schemas"))
    for issue in issues:
        print(issue)
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

_SCHEMAS_DIR = Path(__file__).parent / "schemas"

# Map subdirectory name → schema filename
SUBDIR_SCHEMA: dict[str, str] = {
    "forms": "form.schema.json",
    "blocks": "block.schema.json",
}


@dataclass
class SchemaIssue:
    """A single finding for a schema YAML file."""

    file: Path
    message: str
    path: str = ""           # location within the document, e.g. "fields/title/minLength"
    severity: str = "error"  # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


def _load_schema(name: str) -> dict[str, Any]:
    with (_SCHEMAS_DIR / name).open() as fh:
        return json.load(fh)


def load_registry() -> Registry:
    """Build a jsonschema Registry containing all bundled schemas."""
    resources = []
    for name in ("_defs.schema.json", *SUBDIR_SCHEMA.values()):
        schema = _load_schema(name)
        resources.append(
            (schema["$id"], Resource(contents=schema, specification=DRAFT202012))
        )
    return Registry().with_resources(resources)


def _json_path(error: ValidationError) -> str:
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def check_document(
    doc: Any,
    schema_name: str,
    source: Path,
    *,
    registry: Registry | None = None,
) -> list[SchemaIssue]:
    """Check an already-parsed document against the named schema."""
    if registry is None:
        registry = load_registry()

    validator = Draft202012Validator(_load_schema(schema_name), registry=registry)
    return [
        SchemaIssue(file=source, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(doc), key=lambda e: list(map(str, e.path)))
    ]


def check_yaml_file(
    yaml_path: Path,
    schema_name: str | None = None,
    *,
    registry: Registry | None = None,
) -> list[SchemaIssue]:
    """
    Check a single YAML file.

    Args:
        yaml_path:   Path to the YAML file.
        schema_name: Schema filename; inferred from the parent directory
                     (``forms`` or ``blocks``) when omitted.
        registry:    Pre-built schema registry. Built automatically if omitted.

    Returns:
        A list of :class:`SchemaIssue` objects (empty on success).
    """
    if schema_name is None:
        schema_name = SUBDIR_SCHEMA.get(yaml_path.parent.name)
        if schema_name is None:
            return [
                SchemaIssue(
                    file=yaml_path,
                    message=(
                        f"Cannot determine schema for directory '{yaml_path.parent.name}'. "
                        "Expected one of: " + ", ".join(SUBDIR_SCHEMA)
                    ),
                )
            ]

    try:
        with yaml_path.open() as fh:
            doc = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [SchemaIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    if doc is None:
        return [SchemaIssue(file=yaml_path, message="File is empty or contains only whitespace")]

    return check_document(doc, schema_name, yaml_path, registry=registry)


def check_schema_dir(schema_dir: Path) -> list[SchemaIssue]:
    """
    Check every YAML file under ``forms/`` and ``blocks/`` of *schema_dir*.

    Returns:
        A flat list of issues across all files. Empty means all files are valid.
    """
    if not schema_dir.is_dir():
        return [
            SchemaIssue(file=schema_dir, message=f"Schema directory does not exist: {schema_dir}")
        ]

    registry = load_registry()
    issues: list[SchemaIssue] = []

    for subdir, schema_name in SUBDIR_SCHEMA.items():
        target = schema_dir / subdir
        if not target.is_dir():
            continue
        for yaml_file in sorted(target.glob("*.yaml")):
            issues.extend(check_yaml_file(yaml_file, schema_name, registry=registry))

    return issues
