"""JSON Schema validation infrastructure.

Validates the public state layouts that zkaccess modules expose to external
collaborators:
- Automatic schema resolution via $ref
- Registry over every schema shipped in ``zkaccess/schemas``
- Cached validators
- Clear error reporting
"""

from __future__ import annotations

import json
import pathlib
from functools import lru_cache
from typing import Any, List

from jsonschema import Draft202012Validator
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

SCHEMAS_DIR = pathlib.Path(__file__).resolve().parent / "schemas"

OWNERSHIP_STATE_SCHEMA = "ownership-state.schema.json"
LIFECYCLE_STATE_SCHEMA = "lifecycle-state.schema.json"
ROLE_STATE_SCHEMA = "role-state.schema.json"


def load_json(path: pathlib.Path) -> Any:
    """Load JSON file with UTF-8 encoding."""
    return json.loads(pathlib.Path(path).read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def _schema_registry() -> Registry:
    """Build a registry for all zkaccess schemas so $ref resolves across files."""
    resources = []
    for schema_path in sorted(SCHEMAS_DIR.glob("*.schema.json")):
        schema = load_json(schema_path)
        schema_id = schema.get("$id") or f"https://zkaccess.dev/schemas/{schema_path.name}"
        resources.append((schema_id, Resource.from_contents(schema, default_specification=DRAFT202012)))
    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(schema_name: str) -> Draft202012Validator:
    """Create (and cache) a validator for a schema shipped with the package."""
    schema_path = SCHEMAS_DIR / schema_name
    if not schema_path.is_file():
        raise FileNotFoundError(f"Unknown schema: {schema_name}")
    schema = load_json(schema_path)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema, registry=_schema_registry())


def validate_against_schema(obj: Any, schema_name: str) -> List[str]:
    """Validate an object, returning error messages (empty if valid)."""
    validator = schema_validator(schema_name)
    return [
        f"{error.json_path}: {error.message}"
        for error in sorted(validator.iter_errors(obj), key=lambda e: e.json_path)
    ]
