"""
schemas/__init__.py

JSON Schema definition and validation for stored layout documents.
"""

from __future__ import annotations

import json
import os
from typing import Dict, List, Optional, Tuple

from jsonschema import Draft202012Validator

# Schema file paths
SCHEMA_DIR = os.path.dirname(os.path.abspath(__file__))
LAYOUT_SCHEMA_PATH = os.path.join(SCHEMA_DIR, "layout_schema.json")

# Cached schema
_layout_schema: Optional[Dict] = None


def get_layout_schema() -> Dict:
    """Load and return the layout document schema."""
    global _layout_schema
    if _layout_schema is None:
        with open(LAYOUT_SCHEMA_PATH, "r", encoding="utf-8") as f:
            _layout_schema = json.load(f)
    return _layout_schema


def _format_errors(validator: Draft202012Validator, data) -> List[str]:
    error_messages = []
    for error in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path]):
        path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        error_messages.append(f"{path}: {error.message}")
    return error_messages


def validate_layout(data: Dict) -> Tuple[bool, List[str]]:
    """
    Validate a stored layout document.

    Args:
        data: The layout document ({"nodes": [...], "edges": [...], "viewport": {...}})

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    validator = Draft202012Validator(get_layout_schema())
    errors = _format_errors(validator, data)
    return not errors, errors


def validate_key_node(node: Dict) -> Tuple[bool, List[str]]:
    """
    Validate a single key node record.

    Args:
        node: A node dictionary as produced by ``Key.to_dict()``

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    schema = get_layout_schema()
    full_schema = {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "$defs": schema.get("$defs", {}),
        **schema["$defs"]["keyNode"],
    }
    validator = Draft202012Validator(full_schema)
    errors = _format_errors(validator, node)
    return not errors, errors
