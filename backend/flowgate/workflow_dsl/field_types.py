# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Node field contracts used by the data-edge checks.

A contract is a flat map of field path -> normalized type token, read from a
node's declared output or input schema.
"""

import re
from typing import Any, Dict, Optional

from .models import WorkflowNode


FieldTypeMap = Dict[str, str]

KNOWN_TYPES = {"string", "number", "boolean", "object", "array", "null", "unknown"}
NUMERIC_ALIASES = {"int", "integer", "float", "double"}

OUTPUT_SCHEMA_KEYS = ("outputSchema", "outputSchemaDef", "outputFields")
INPUT_SCHEMA_KEYS = ("inputSchema", "expectedInputSchema", "inputFields")

_INDEX_PATTERN = re.compile(r"\[(\d+)\]")


def normalize_type(raw_type: str) -> str:
    normalized = raw_type.strip().lower()
    if normalized in NUMERIC_ALIASES:
        return "number"
    if normalized in KNOWN_TYPES:
        return normalized
    return "unknown"


def _type_token(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return normalize_type(value)
    if isinstance(value, dict) and isinstance(value.get("type"), str):
        return normalize_type(value["type"])
    return None


def field_type_map(schema: Any) -> Optional[FieldTypeMap]:
    """
    Read a field map from a JSON-schema `properties` map, a `fields` map,
    or a flat {field: type} map. Returns None when nothing is typed.
    """
    if not isinstance(schema, dict):
        return None

    for nested_key in ("properties", "fields"):
        nested = schema.get(nested_key)
        if isinstance(nested, dict):
            source = nested
            break
    else:
        source = schema

    types: FieldTypeMap = {}
    for key, value in source.items():
        token = _type_token(value)
        if token:
            types[key] = token
    return types or None


def _first_map(candidates) -> Optional[FieldTypeMap]:
    for candidate in candidates:
        types = field_type_map(candidate)
        if types:
            return types
    return None


def output_field_types(node: WorkflowNode) -> Optional[FieldTypeMap]:
    candidates = [node.output_schema]
    candidates.extend(node.config.get(key) for key in OUTPUT_SCHEMA_KEYS)
    return _first_map(candidates)


def input_field_types(node: WorkflowNode) -> Optional[FieldTypeMap]:
    return _first_map(node.config.get(key) for key in INPUT_SCHEMA_KEYS)


def resolve_field_type(types: FieldTypeMap, field_path: str) -> Optional[str]:
    """
    Type of `field_path`, falling back to the closest declared ancestor
    (`a.b.c` -> `a.b` -> `a`). `items[0]` is treated as `items.0`.
    """
    if field_path in types:
        return types[field_path]

    normalized = _INDEX_PATTERN.sub(r".\1", field_path)
    if normalized in types:
        return types[normalized]

    tokens = normalized.split(".")
    while len(tokens) > 1:
        tokens.pop()
        candidate = ".".join(tokens)
        if candidate in types:
            return types[candidate]
    return None


def is_type_compatible(source: str, target: str) -> bool:
    if source == "unknown" or target == "unknown":
        return True
    return source == target
