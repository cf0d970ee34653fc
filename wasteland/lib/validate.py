"""
JSON Schema checks for workspace records.

Records are checked when the config file is read and again before it is
written, so a hand-edited file is reported with the offending field instead
of turning into a broken WorkspaceConfig.
"""

import json
from functools import lru_cache
from pathlib import Path

import jsonschema

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"


class ValidationError(Exception):
    """A record does not match its schema."""

    def __init__(self, schema_name: str, message: str, path: str | None = None):
        self.schema_name = schema_name
        self.path = path
        where = f" at {path}" if path else ""
        super().__init__(f"[{schema_name}] {message}{where}")


@lru_cache(maxsize=None)
def load_schema(schema_name: str) -> dict:
    schema_path = SCHEMA_DIR / f"{schema_name}.schema.json"
    try:
        return json.loads(schema_path.read_text())
    except FileNotFoundError:
        raise ValidationError(schema_name, f"no schema file {schema_path}") from None


def _field_path(error: jsonschema.ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


def validate(data: dict, schema_name: str) -> None:
    """Raise ValidationError naming the first bad field (ordered by path)."""
    validator = jsonschema.Draft7Validator(load_schema(schema_name))
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        raise ValidationError(schema_name, errors[0].message, _field_path(errors[0]))


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """Refuse to write a record that could not be loaded back."""
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(schema_name, f"Refusing to write invalid data to {filepath}: {e}") from None
