"""Schema validation for stored project documents.

Project documents are the camelCase JSON form of ``Project``. The file
backend validates every document it writes and reads against
``config/schemas/project.schema.json`` so a hand-edited or truncated file is
caught at the storage boundary instead of deep inside a transition.
"""

import json
from functools import lru_cache
from pathlib import Path

from jsonschema import Draft202012Validator, ValidationError

from config.settings import PROJECT_SCHEMA


@lru_cache(maxsize=8)
def _validator_for(schema_path: str) -> Draft202012Validator:
    path = Path(schema_path)
    with open(path, "r", encoding="utf-8") as f:
        schema = json.load(f)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def load_schema(schema_path: str | Path) -> dict:
    """Load a JSON Schema file.

    Raises:
        FileNotFoundError: If the schema file does not exist.
    """
    return _validator_for(str(schema_path)).schema


def get_validation_errors(document: dict, schema_path: str | Path = PROJECT_SCHEMA) -> list[str]:
    """Return all validation errors for a document, sorted by location.

    Args:
        document: The data to validate.
        schema_path: Path to the JSON Schema file.

    Returns:
        List of 'path: message' strings. Empty if valid.
    """
    validator = _validator_for(str(schema_path))
    errors = sorted(validator.iter_errors(document), key=lambda e: list(map(str, e.path)))
    return [
        f"{'.'.join(str(p) for p in error.absolute_path) or 'root'}: {error.message}"
        for error in errors
    ]


def validate_project_document(document: dict) -> bool:
    """Validate a project document against the project schema.

    Returns:
        True if valid.

    Raises:
        ValidationError: On the first schema violation.
    """
    _validator_for(str(PROJECT_SCHEMA)).validate(document)
    return True


def is_valid_project_document(document: dict) -> bool:
    """Check a project document without raising."""
    try:
        return validate_project_document(document)
    except ValidationError:
        return False
