"""
Schema loading from dicts, JSON and YAML.

Duplicate keys are rejected while parsing. A plain `json.load` or
`yaml.safe_load` would silently keep the last one, which would hide a
duplicated field key from the schema validators.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from schemaform.core.schema import FormSchema

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class SchemaLoadError(ValueError):
    """Raised when a schema document cannot be parsed into a mapping."""


def _reject_duplicate_pairs(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise SchemaLoadError(f"Duplicate key in schema document: '{key}'")
        result[key] = value
    return result


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that refuses mappings with repeated keys."""


def _construct_unique_mapping(loader: _UniqueKeyLoader, node: yaml.MappingNode) -> dict[str, Any]:
    loader.flatten_mapping(node)
    pairs = [
        (
            loader.construct_object(key_node, deep=True),
            loader.construct_object(value_node, deep=True),
        )
        for key_node, value_node in node.value
    ]
    return _reject_duplicate_pairs(pairs)


_UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_unique_mapping,
)


def parse_schema(data: dict[str, Any]) -> FormSchema:
    """Validate a raw schema mapping into a FormSchema.

    Raises:
        SchemaLoadError: If `data` is not a mapping.
        pydantic.ValidationError: If the schema is malformed.
    """
    if not isinstance(data, dict):
        raise SchemaLoadError("Schema document must be a mapping at the top level")
    return FormSchema.model_validate(data)


def decode_json(text: str | bytes) -> Any:
    """Decode a JSON document, refusing objects with repeated keys.

    Raises:
        SchemaLoadError: On malformed JSON or a duplicate key.
    """
    try:
        return json.loads(text, object_pairs_hook=_reject_duplicate_pairs)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SchemaLoadError(f"Invalid JSON schema document: {e}") from e


def loads_json(text: str) -> FormSchema:
    return parse_schema(decode_json(text))


def loads_yaml(text: str) -> FormSchema:
    try:
        data = yaml.load(text, Loader=_UniqueKeyLoader)
    except yaml.YAMLError as e:
        raise SchemaLoadError(f"Invalid YAML schema document: {e}") from e
    return parse_schema(data)


def load_schema(path: str | Path) -> FormSchema:
    """Load a schema file, choosing the parser from its suffix."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")

    if path.suffix.lower() in YAML_SUFFIXES:
        schema = loads_yaml(text)
    else:
        schema = loads_json(text)

    logger.info("Loaded schema '%s' from %s (%d fields)", schema.id, path.name, len(schema.fields))
    return schema
