"""
Shape validation for project documents read from disk or imported.

Imported records may omit ids and collections (they are backfilled), so the
import schema is deliberately looser than the schema generated from the
models, which describes what the application writes.
"""
from typing import List, Any, Dict
from jsonschema import validate, ValidationError, SchemaError
from pydantic import TypeAdapter

from itpm.models import Project
from itpm.recovery import SerializationError, FatalError
from itpm.logs import get_logger

log = get_logger("validate")

_ENTITY_RECORD = {
    "type": "object",
    "properties": {
        "id": {"type": ["string", "null"]},
        "title": {"type": ["string", "null"]},
        "description": {"type": ["string", "null"]},
        "status": {"type": ["string", "null"]},
        "color": {"type": ["string", "null"]},
    },
}

IMPORT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Project document (import)",
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "id": {"type": ["string", "null"]},
            "name": {"type": ["string", "null"]},
            "description": {"type": ["string", "null"]},
            "team": {
                "anyOf": [
                    {"type": "array", "items": {"type": "string"}},
                    {"type": "string"},
                    {"type": "null"},
                ]
            },
            "milestones": {"type": ["array", "null"], "items": _ENTITY_RECORD},
            "tasks": {"type": ["array", "null"], "items": _ENTITY_RECORD},
        },
    },
}

def validate_payload(data: Any) -> List[Dict[str, Any]]:
    """
    Check a decoded document against the import schema.

    Raises:
        SerializationError: if the root is not an array of project records
    """
    if not isinstance(data, list):
        raise SerializationError("Invalid JSON format: expected an array of projects")
    try:
        validate(instance=data, schema=IMPORT_SCHEMA)
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        log.error(f"Project document FAILED validation at {location}: {e.message}")
        raise SerializationError(f"Invalid project document at {location}: {e.message}") from e
    except SchemaError as e:
        raise FatalError(f"Import schema is invalid: {e.message}") from e
    return data

def document_schema() -> Dict[str, Any]:
    """JSON schema of the persisted document, generated from the models."""
    schema = TypeAdapter(List[Project]).json_schema(by_alias=True, mode='serialization')
    schema["$schema"] = "https://json-schema.org/draft/2020-12/schema"
    return schema
